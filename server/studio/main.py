from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.endpoints import generation, system
from .api.endpoints.frontend import create_frontend_router
from .api.errors import register_error_handlers
from .core.config import Settings, settings
from .services.generation_service import GenerationService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: Settings = app.state.settings
    logger.info("🚀 Starting Image Studio backend")
    logger.info(f"🌐 Server configured to run on {config.host}:{config.port}")
    if not config.api_key_configured:
        logger.error("❌ GEMINI_API_KEY environment variable is not set. Generate/edit requests will fail.")
    else:
        logger.info(f"🤖 Models: generate={config.generate_model}, edit={config.edit_model}")
    yield
    logger.info("🛑 Shutdown complete")


def _add_body_limit_middleware(app: FastAPI, max_bytes: int) -> None:
    """Reject oversized bodies up front (base64 images are the bulk of a request)."""

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > max_bytes:
            logger.warning(f"⚠️ Rejected {request.url.path}: body of {content_length} bytes exceeds {max_bytes}")
            return JSONResponse(status_code=413, content={"error": "Request body is too large."})
        return await call_next(request)


def create_app(config: Optional[Settings] = None) -> FastAPI:
    config = config or settings

    app = FastAPI(
        title=config.app_name,
        description=config.description,
        version=config.version,
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.generation_service = GenerationService(config=config)

    # Use configured origins from .env, or allow every origin (the UI is usually served by us)
    cors_origins = config.cors_origins or ["*"]
    if config.debug:
        for port in (3000, 5173):
            origin = f"http://localhost:{port}"
            if cors_origins != ["*"] and origin not in cors_origins:
                cors_origins.append(origin)
    logger.info(f"🌐 CORS configured for origins: {cors_origins}")

    _add_body_limit_middleware(app, config.max_request_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=cors_origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=3600,
    )

    register_error_handlers(app)

    app.include_router(system.router)
    app.include_router(generation.router)

    # Catch-all UI fallback goes last so it never shadows /api routes
    if config.static_path.is_dir():
        app.include_router(create_frontend_router(config.static_path))
    else:
        logger.info(f"💡 No UI build found at {config.static_path}; serving API only")

    logger.info("✅ Routers registered:")
    logger.info("   - System: /api/health")
    logger.info("   - Generation: /api/generate, /api/edit")

    return app
