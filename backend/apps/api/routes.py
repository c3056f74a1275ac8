"""Handpose — API Routes.

REST + WebSocket endpoints for hand landmark detection.
All inference goes through the application's shared `Handpose` detector.
"""

from __future__ import annotations

import base64
import binascii
import time

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Request,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from loguru import logger

from backend.apps.api.dependencies import get_detector, get_settings
from backend.apps.api.schemas import HandResult, HealthResponse, PredictionResponse
from backend.config import Settings
from handpose.adapter import Handpose
from handpose.media import StillImage

router = APIRouter()


# ── Health ───────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    """Liveness / readiness probe."""
    from backend.apps.api.main import get_uptime

    detector = getattr(request.app.state, "detector", None)
    model_ready = detector is not None and detector.model_ready
    return HealthResponse(
        status="healthy" if model_ready else "loading",
        version=settings.app_version,
        model_ready=model_ready,
        uptime_seconds=round(get_uptime(), 2),
    )


# ── Prediction ───────────────────────────────────────────────


@router.post("/predict", response_model=PredictionResponse, tags=["Inference"])
async def predict(
    file: UploadFile = File(..., description="Image file (JPEG/PNG/WebP)"),
    detector: Handpose = Depends(get_detector),
) -> PredictionResponse:
    """Detect hands in an uploaded image."""
    if file.content_type not in ("image/jpeg", "image/png", "image/webp"):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported image type: {file.content_type}",
        )

    contents = await file.read()
    try:
        image = StillImage.from_bytes(contents)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to decode image",
        ) from None

    t0 = time.perf_counter()
    try:
        hands = await detector.single_pose(image)
    except Exception as e:
        logger.error("Prediction failed: {}", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Inference error",
        ) from None
    latency = (time.perf_counter() - t0) * 1000

    return PredictionResponse(
        success=True,
        hands=[HandResult.from_prediction(h) for h in hands],
        num_hands=len(hands),
        inference_ms=round(latency, 2),
    )


# ── WebSocket Real-Time Stream ───────────────────────────────


@router.websocket("/ws/stream")
async def websocket_stream(ws: WebSocket) -> None:
    """Real-time hand detection over WebSocket.

    Protocol:
      Client → Server: base64-encoded JPEG frame
      Server → Client: JSON prediction result
    """
    await ws.accept()
    detector: Handpose | None = getattr(ws.app.state, "detector", None)
    try:
        if detector is None:
            raise RuntimeError("Detector not initialised")
        await detector.ready
    except Exception as e:
        logger.error("WebSocket rejected, model unavailable: {}", e)
        await ws.close(code=status.WS_1011_INTERNAL_ERROR, reason="Model unavailable")
        return

    logger.info("WebSocket client connected")
    frame_count = 0

    try:
        while True:
            data = await ws.receive_text()
            frame_count += 1

            try:
                image = StillImage.from_bytes(base64.b64decode(data, validate=True))
            except (binascii.Error, ValueError):
                await ws.send_json({"frame_id": frame_count, "error": "Invalid image data"})
                continue

            t0 = time.perf_counter()
            hands = await detector.single_pose(image)
            latency = (time.perf_counter() - t0) * 1000

            await ws.send_json(
                {
                    "frame_id": frame_count,
                    "hands": [HandResult.from_prediction(h).model_dump() for h in hands],
                    "num_hands": len(hands),
                    "inference_ms": round(latency, 2),
                }
            )

    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected | frames={}", frame_count)
    except Exception as e:
        logger.error("WebSocket error: {}", e)
        await ws.close(code=status.WS_1011_INTERNAL_ERROR, reason="Internal error")
