"""Image Studio backend package (Gemini proxy, mask canvas, studio session)."""

from __future__ import annotations

__all__ = ["create_app"]


def __getattr__(name: str):
    # Lazy import so the client and CLI can use the error taxonomy without
    # building the web app or importing the model SDK
    if name == "create_app":
        from .main import create_app
        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
