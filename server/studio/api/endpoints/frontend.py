"""
Static serving of the built UI with a single-page-application fallback.

Existing files under the static directory are served as-is; any other GET
path (client-side routes) gets index.html. Paths under /api/ are never
answered here.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

logger = logging.getLogger(__name__)


def create_frontend_router(static_dir: Path) -> APIRouter:
    """
    Build the catch-all router for `static_dir`.

    Must be included after the API routers so it only sees unmatched paths.
    """
    router = APIRouter(tags=["frontend"])
    root = static_dir.resolve()
    index_file = root / "index.html"

    @router.get("/{full_path:path}", include_in_schema=False)
    async def serve_frontend(full_path: str):
        if full_path == "api" or full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Not Found")

        candidate = (root / full_path).resolve()
        if full_path and candidate.is_file() and candidate.is_relative_to(root):
            return FileResponse(candidate)

        if not index_file.is_file():
            raise HTTPException(status_code=404, detail="Not Found")
        return FileResponse(index_file)

    logger.info(f"🗂️ Serving UI from {root}")
    return router
