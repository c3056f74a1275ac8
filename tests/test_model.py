"""Tests for handpose.model — asset resolution and post-processing of detections.

Inference runs against a fake landmarker; the real model file is never loaded.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

pytest.importorskip("mediapipe")

from handpose.media import StillImage  # noqa: E402
from handpose.model import MODEL_FILENAME, MediaPipeHandposeModel, get_model_path  # noqa: E402
from handpose.options import HandposeOptions  # noqa: E402
from handpose.types import Handedness  # noqa: E402


def _hand(x0: float, y0: float, label: str | None, score: float, z: float = 0.0):  # noqa: ANN202
    """Landmarks on a 5x5 grid starting at (x0, y0), in normalized coordinates."""
    landmarks = [
        SimpleNamespace(x=x0 + 0.1 * (i % 5) / 4, y=y0 + 0.1 * (i // 5) / 4, z=z)
        for i in range(21)
    ]
    category = SimpleNamespace(category_name=label, score=score) if label else None
    return landmarks, category


class FakeLandmarker:
    """Records the frames it is given and returns fixed hands."""

    def __init__(self, hands: list | None = None) -> None:
        self.hands = hands or []
        self.frames: list[np.ndarray] = []
        self.closed = False

    def detect(self, image):  # noqa: ANN001, ANN201
        self.frames.append(image.numpy_view().copy())
        return SimpleNamespace(
            hand_landmarks=[landmarks for landmarks, _ in self.hands],
            handedness=[[category] if category else [] for _, category in self.hands],
        )

    def close(self) -> None:
        self.closed = True


def _model(landmarker: FakeLandmarker, **options) -> MediaPipeHandposeModel:  # noqa: ANN003
    model = MediaPipeHandposeModel.__new__(MediaPipeHandposeModel)
    model._options = HandposeOptions(**options)
    model._landmarker = landmarker
    model._last_inference_ms = 0.0
    model._lock = threading.Lock()
    return model


@pytest.fixture
def half_white_frame() -> np.ndarray:
    """480x640 BGR frame, left half white, right half black."""
    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    frame[:, :320] = 255
    return frame


class TestGetModelPath:
    def test_explicit_path(self, tmp_path: Path) -> None:
        asset = tmp_path / "custom.task"
        asset.write_bytes(b"model")
        assert get_model_path(asset) == asset

    def test_explicit_missing_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Model not found"):
            get_model_path(tmp_path / "missing.task")

    def test_cached_default_skips_download(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        cached = tmp_path / MODEL_FILENAME
        cached.write_bytes(b"model")

        def no_download(*args: object) -> None:
            raise AssertionError("should not download")

        monkeypatch.setattr("urllib.request.urlretrieve", no_download)
        assert get_model_path(None, models_dir=tmp_path) == cached

    def test_downloads_when_missing(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        fetched = []

        def fake_download(url: str, path: Path) -> None:
            fetched.append(url)
            Path(path).write_bytes(b"model")

        monkeypatch.setattr("urllib.request.urlretrieve", fake_download)
        path = get_model_path(None, models_dir=tmp_path / "models")
        assert path.is_file()
        assert fetched and fetched[0].endswith(MODEL_FILENAME)


class TestEstimateHands:
    """Tests for MediaPipeHandposeModel.estimate_hands."""

    @pytest.mark.asyncio
    async def test_sorted_by_confidence(self, dummy_bgr_frame: np.ndarray) -> None:
        landmarker = FakeLandmarker([_hand(0.1, 0.1, "Left", 0.6), _hand(0.6, 0.6, "Right", 0.9)])
        hands = await _model(landmarker, max_num_hands=2).estimate_hands(dummy_bgr_frame)

        assert [hand.hand_in_view_confidence for hand in hands] == pytest.approx([0.9, 0.6])
        assert [hand.handedness for hand in hands] == [Handedness.RIGHT, Handedness.LEFT]

    @pytest.mark.asyncio
    async def test_landmarks_in_pixels(self, dummy_bgr_frame: np.ndarray) -> None:
        landmarker = FakeLandmarker([_hand(0.5, 0.25, "Right", 0.9, z=0.1)])
        (hand,) = await _model(landmarker).estimate_hands(StillImage(dummy_bgr_frame))

        assert hand.landmarks.shape == (21, 3)
        assert hand.landmarks.dtype == np.float32
        np.testing.assert_allclose(hand.landmarks[0], [320.0, 120.0, 64.0], rtol=1e-5)
        assert hand.bounding_box.top_left == pytest.approx((320.0, 120.0))
        assert hand.bounding_box.bottom_right == pytest.approx((384.0, 168.0))

    @pytest.mark.asyncio
    async def test_missing_handedness_is_unknown(self, dummy_bgr_frame: np.ndarray) -> None:
        landmarker = FakeLandmarker([_hand(0.3, 0.3, None, 0.0)])
        (hand,) = await _model(landmarker).estimate_hands(dummy_bgr_frame)

        assert hand.handedness == Handedness.UNKNOWN
        assert hand.hand_in_view_confidence == 0.0

    @pytest.mark.asyncio
    async def test_no_hands(self, dummy_bgr_frame: np.ndarray) -> None:
        assert await _model(FakeLandmarker()).estimate_hands(dummy_bgr_frame) == []

    @pytest.mark.asyncio
    async def test_flip_mirrors_frame(self, half_white_frame: np.ndarray) -> None:
        landmarker = FakeLandmarker()
        await _model(landmarker).estimate_hands(half_white_frame, True)

        seen = landmarker.frames[0]
        assert (seen[:, :320] == 0).all()
        assert (seen[:, 320:] == 255).all()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("flip", [None, False])
    async def test_no_flip_keeps_frame(self, half_white_frame: np.ndarray, flip: bool | None) -> None:
        landmarker = FakeLandmarker()
        await _model(landmarker).estimate_hands(half_white_frame, flip)

        seen = landmarker.frames[0]
        assert (seen[:, :320] == 255).all()
        assert (seen[:, 320:] == 0).all()

    @pytest.mark.asyncio
    async def test_overlapping_hands_suppressed(self, dummy_bgr_frame: np.ndarray) -> None:
        hands = [_hand(0.2, 0.2, "Left", 0.8), _hand(0.205, 0.2, "Right", 0.9)]
        kept = await _model(FakeLandmarker(hands), max_num_hands=2).estimate_hands(dummy_bgr_frame)

        assert len(kept) == 1
        assert kept[0].handedness == Handedness.RIGHT

    @pytest.mark.asyncio
    async def test_iou_threshold_one_keeps_overlaps(self, dummy_bgr_frame: np.ndarray) -> None:
        hands = [_hand(0.2, 0.2, "Left", 0.8), _hand(0.205, 0.2, "Right", 0.9)]
        model = _model(FakeLandmarker(hands), max_num_hands=2, iou_threshold=1.0)
        assert len(await model.estimate_hands(dummy_bgr_frame)) == 2

    @pytest.mark.asyncio
    async def test_none_input_raises(self) -> None:
        with pytest.raises(ValueError, match="No input"):
            await _model(FakeLandmarker()).estimate_hands(None)

    @pytest.mark.asyncio
    async def test_closed_model_raises(self, dummy_bgr_frame: np.ndarray) -> None:
        landmarker = FakeLandmarker()
        model = _model(landmarker)
        model.close()
        model.close()

        assert landmarker.closed
        with pytest.raises(RuntimeError, match="closed"):
            await model.estimate_hands(dummy_bgr_frame)


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_close_waits_for_running_detection(self, dummy_bgr_frame: np.ndarray) -> None:
        entered = threading.Event()
        release = threading.Event()
        log: list[str] = []

        class SlowLandmarker(FakeLandmarker):
            def detect(self, image):  # noqa: ANN001, ANN201
                entered.set()
                release.wait(timeout=5.0)
                log.append("detected")
                return super().detect(image)

            def close(self) -> None:
                log.append("closed")
                super().close()

        model = _model(SlowLandmarker())
        estimate = asyncio.create_task(model.estimate_hands(dummy_bgr_frame))
        assert await asyncio.to_thread(entered.wait, 5.0)

        closing = asyncio.create_task(asyncio.to_thread(model.close))
        await asyncio.sleep(0.05)
        assert log == []

        release.set()
        assert await estimate == []
        await closing
        assert log == ["detected", "closed"]

    @pytest.mark.asyncio
    async def test_detections_do_not_overlap(self, dummy_bgr_frame: np.ndarray) -> None:
        active = 0
        peak = 0
        guard = threading.Lock()

        class CountingLandmarker(FakeLandmarker):
            def detect(self, image):  # noqa: ANN001, ANN201
                nonlocal active, peak
                with guard:
                    active += 1
                    peak = max(peak, active)
                threading.Event().wait(0.01)
                with guard:
                    active -= 1
                return super().detect(image)

        model = _model(CountingLandmarker())
        await asyncio.gather(*(model.estimate_hands(dummy_bgr_frame) for _ in range(4)))
        assert peak == 1
