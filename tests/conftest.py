"""Shared test fixtures for handpose."""

from __future__ import annotations

import numpy as np
import pytest
from fakes import FakeLoader, FakeModel, FrameCounter

from handpose.types import LANDMARK_DIMS, NUM_HAND_LANDMARKS, BoundingBox, Handedness, HandPrediction


@pytest.fixture
def dummy_bgr_frame() -> np.ndarray:
    """Generate a dummy 480x640 BGR frame."""
    return np.random.default_rng(42).integers(
        0, 256, (480, 640, 3), dtype=np.uint8
    )


@pytest.fixture
def random_prediction() -> HandPrediction:
    """A hand with random landmarks inside a 640x480 frame."""
    rng = np.random.default_rng(42)
    landmarks = (rng.random((NUM_HAND_LANDMARKS, LANDMARK_DIMS)) * [640, 480, 10]).astype(
        np.float32
    )
    return HandPrediction(
        landmarks=landmarks,
        hand_in_view_confidence=0.95,
        bounding_box=BoundingBox.around(landmarks),
        handedness=Handedness.RIGHT,
    )


@pytest.fixture
def event_log() -> list[str]:
    return []


@pytest.fixture
def fake_model(random_prediction: HandPrediction, event_log: list[str]) -> FakeModel:
    return FakeModel(result=[random_prediction], log=event_log)


@pytest.fixture
def fake_loader(fake_model: FakeModel) -> FakeLoader:
    return FakeLoader(fake_model)


@pytest.fixture
def frame_counter(event_log: list[str]) -> FrameCounter:
    return FrameCounter(log=event_log)
