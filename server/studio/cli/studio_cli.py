#!/usr/bin/env python3
"""
Command-line interface for the Image Studio.

Usage:
    python -m studio.cli.studio_cli serve
    python -m studio.cli.studio_cli generate --prompt <text> [--aspect-ratio 16:9] --output out.jpg
    python -m studio.cli.studio_cli edit --image in.png --prompt <text> [--strokes strokes.json] --output out.jpg

Strokes are a JSON list of strokes, each a list of [x, y] points. With
--display-size WxH the points are read as display coordinates and scaled onto
the image, exactly like pointer input over a resized canvas.
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from shared.clients.studio_client import StudioClient, get_studio_url

from ..core.config import settings
from ..models.schemas import ASPECT_RATIOS, DEFAULT_ASPECT_RATIO
from ..services.image_processing import strip_data_url
from ..services.mask_canvas import DEFAULT_BRUSH_SIZE, MAX_BRUSH_SIZE, MIN_BRUSH_SIZE
from ..services.session import SetMode, SetAspectRatio, SetPrompt, StudioSession, download_filename

logger = logging.getLogger(__name__)


def parse_display_size(value: str) -> Tuple[float, float]:
    try:
        width, height = value.lower().split("x", 1)
        return (float(width), float(height))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected WIDTHxHEIGHT, got '{value}'") from exc


def parse_brush_size(value: str) -> int:
    try:
        size = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Brush size must be an integer, got '{value}'") from exc
    if not MIN_BRUSH_SIZE <= size <= MAX_BRUSH_SIZE:
        raise argparse.ArgumentTypeError(
            f"Brush size must be between {MIN_BRUSH_SIZE} and {MAX_BRUSH_SIZE}, got {size}"
        )
    return size


def load_strokes(path: Path) -> List[List[Tuple[float, float]]]:
    """
    Read strokes from JSON: [[[x, y], ...], ...].

    Raises:
        ValueError: If the file is unreadable, not JSON, or not a list of point lists
    """
    try:
        raw = json.loads(path.read_text())
    except OSError as exc:
        raise ValueError(f"Could not read strokes file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Strokes file {path} is not valid JSON: {exc}") from exc

    if not isinstance(raw, list):
        raise ValueError("Strokes file must contain a list of strokes")
    try:
        return [[(float(x), float(y)) for x, y in stroke] for stroke in raw]
    except (TypeError, ValueError) as exc:
        raise ValueError("Each stroke must be a list of [x, y] points") from exc


def write_result(session: StudioSession, output: Optional[Path]) -> int:
    state = session.state
    if state.error:
        print(f"❌ {state.error}", file=sys.stderr)
        return 1

    target = output or Path(download_filename(state.prompt))
    target.write_bytes(base64.b64decode(strip_data_url(state.generated_image)))
    print(f"✅ Saved result to {target}")
    return 0


async def run_generate(args: argparse.Namespace) -> int:
    async with StudioClient(args.url, timeout=args.timeout) as client:
        session = StudioSession(client)
        session.dispatch(SetMode("generate"))
        session.dispatch(SetPrompt(args.prompt))
        session.dispatch(SetAspectRatio(args.aspect_ratio))
        await session.submit()
        return write_result(session, args.output)


async def run_edit(args: argparse.Namespace) -> int:
    async with StudioClient(args.url, timeout=args.timeout) as client:
        session = StudioSession(client)
        session.dispatch(SetMode("edit"))
        session.upload(args.image)
        if session.state.error:
            print(f"❌ {session.state.error}", file=sys.stderr)
            return 1

        session.canvas.brush_size = args.brush_size
        if args.strokes:
            try:
                for stroke in load_strokes(args.strokes):
                    session.canvas.paint_stroke(stroke, display_size=args.display_size)
            except ValueError as exc:
                print(f"❌ {exc}", file=sys.stderr)
                return 1
            logger.info(f"🖌️ Painted mask from {args.strokes}")

        if args.save_mask:
            mask_image = session.canvas.export_mask_image()
            if mask_image is None:
                logger.warning("⚠️ Mask is empty, nothing to save")
            else:
                mask_image.save(args.save_mask, format="PNG")
                print(f"💾 Saved mask to {args.save_mask}")

        session.dispatch(SetPrompt(args.prompt))
        await session.submit()
        return write_result(session, args.output)


def run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from ..main import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port, log_level="info")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Image Studio: generate images or edit them inside a painted mask",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the backend")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)

    def add_client_options(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--url", default=get_studio_url(), help="Backend URL (default: $STUDIO_URL)")
        sub.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")
        sub.add_argument("--prompt", required=True)
        sub.add_argument("--output", type=Path, default=None, help="Where to write the result image")

    generate = subparsers.add_parser("generate", help="Generate an image from a prompt")
    add_client_options(generate)
    generate.add_argument("--aspect-ratio", choices=ASPECT_RATIOS, default=DEFAULT_ASPECT_RATIO)

    edit = subparsers.add_parser("edit", help="Edit an image, optionally inside a painted mask")
    add_client_options(edit)
    edit.add_argument("--image", type=Path, required=True)
    edit.add_argument("--strokes", type=Path, default=None, help="JSON file of mask strokes")
    edit.add_argument("--display-size", type=parse_display_size, default=None,
                      help="Display size WxH the stroke points were recorded at")
    edit.add_argument("--brush-size", type=parse_brush_size, default=DEFAULT_BRUSH_SIZE,
                      help=f"Brush radius in image pixels ({MIN_BRUSH_SIZE}-{MAX_BRUSH_SIZE})")
    edit.add_argument("--save-mask", type=Path, default=None, help="Also write the exported mask PNG")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        return run_serve(args)
    if args.command == "generate":
        return asyncio.run(run_generate(args))
    return asyncio.run(run_edit(args))


if __name__ == "__main__":
    sys.exit(main())
