# ============================================================
#  Handpose — Dependency Injection
# ============================================================
"""
FastAPI dependency providers for the detector, settings, etc.
The detector is created once per application in the lifespan handler.
"""
from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException, Request, status
from loguru import logger

from backend.config import Settings, settings
from handpose.adapter import Handpose


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton Settings instance."""
    return settings


async def get_detector(request: Request) -> Handpose:
    """Return the application's detector once its model has loaded."""
    detector: Handpose | None = getattr(request.app.state, "detector", None)
    if detector is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Detector not initialised",
        )
    try:
        return await detector.ready
    except Exception as e:
        logger.error("Model failed to load: {}", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Model unavailable",
        ) from None
