# ============================================================
#  Handpose — FastAPI Application Factory
# ============================================================
"""
FastAPI application with:
  • REST endpoints for health and hand detection
  • WebSocket endpoint for real-time streaming
  • CORS, security headers, request ID middleware
  • Structured logging integration
  • Model loading in the startup / shutdown lifecycle

NOTE: This is OPTIONAL. The `handpose` package runs without a server.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from loguru import logger

from backend.apps.api.middleware import RequestIDMiddleware, SecurityHeadersMiddleware
from backend.apps.api.routes import router as api_router
from backend.config import Settings, settings
from backend.logging_config import setup_logging
from handpose.adapter import Handpose
from handpose.types import ModelLoader

_start_time: float = 0.0


def get_uptime() -> float:
    return time.time() - _start_time


def _default_loader(config: Settings) -> ModelLoader:
    from handpose.model import load

    return partial(load, models_dir=config.models_dir)


def create_app(
    config: Settings = settings,
    loader: ModelLoader | None = None,
    configure_logging: bool = True,
) -> FastAPI:
    """Application factory.

    Args:
        config: Settings to run with.
        loader: Model loader for the shared detector (default MediaPipe).
        configure_logging: Install the Loguru sinks on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # noqa: ANN202
        """Startup / shutdown lifecycle."""
        global _start_time
        _start_time = time.time()
        if configure_logging:
            setup_logging(config)
        logger.info(
            "{} v{} starting  |  env={}  debug={}",
            config.app_name,
            config.app_version,
            config.app_env,
            config.debug,
        )
        # Model loads in the background; requests wait on `ready`.
        app.state.detector = Handpose(
            options=config.handpose_options(),
            loader=loader or _default_loader(config),
        )
        yield
        await app.state.detector.close()
        logger.info("Handpose shutting down gracefully")

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description=(
            "**Handpose** — hand landmark detection on images and video frames.\n\n"
            "Returns 21 keypoints per hand, a bounding box and a confidence score."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # ── Middleware ────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    # ── Routes ───────────────────────────────────────────────
    app.include_router(api_router, prefix="/api")

    return app


app = create_app()
