# ============================================================
#  Handpose — Pydantic API Schemas
# ============================================================
"""Handpose — Pydantic API Schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from handpose.types import HandPrediction

# ── Prediction ───────────────────────────────────────────────


class BoundingBoxSchema(BaseModel):
    top_left: tuple[float, float]
    bottom_right: tuple[float, float]


class HandResult(BaseModel):
    hand_in_view_confidence: float = Field(..., ge=0.0, le=1.0)
    handedness: str = Field("unknown", description="left / right / unknown")
    bounding_box: BoundingBoxSchema
    landmarks: list[list[float]] = Field(..., description="21 [x, y, z] keypoints in pixels")

    @classmethod
    def from_prediction(cls, hand: HandPrediction) -> HandResult:
        return cls(
            hand_in_view_confidence=hand.hand_in_view_confidence,
            handedness=hand.handedness.value,
            bounding_box=BoundingBoxSchema(
                top_left=hand.bounding_box.top_left,
                bottom_right=hand.bounding_box.bottom_right,
            ),
            landmarks=hand.landmarks.tolist(),
        )


class PredictionResponse(BaseModel):
    success: bool = True
    hands: list[HandResult] = Field(default_factory=list)
    num_hands: int = 0
    inference_ms: float = 0.0


# ── Health ───────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    model_ready: bool
    uptime_seconds: float
