"""MediaPipe-backed hand landmark model.

This module wraps MediaPipe's ``HandLandmarker`` task behind the
:class:`~handpose.types.HandposeModel` protocol: an awaitable
``estimate_hands(input, flip_horizontal)`` returning one
:class:`~handpose.types.HandPrediction` per detected hand, with landmarks in
input pixel coordinates.
"""

from __future__ import annotations

import asyncio
import threading
import time
import urllib.request
from pathlib import Path
from typing import Any

import cv2
import mediapipe as mp
import numpy as np
from loguru import logger
from mediapipe.tasks import python as mp_python
from mediapipe.tasks.python import vision

from handpose.media import to_bgr
from handpose.options import HandposeOptions
from handpose.types import BoundingBox, Handedness, HandPrediction

MODEL_FILENAME = "hand_landmarker.task"
MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/latest/hand_landmarker.task"
)
DEFAULT_MODELS_DIR = Path.home() / ".cache" / "handpose" / "models"


def get_model_path(
    model_asset_path: str | Path | None = None,
    models_dir: str | Path = DEFAULT_MODELS_DIR,
) -> Path:
    """Return the model asset path, downloading the default model if missing.

    Raises:
        FileNotFoundError: If an explicit ``model_asset_path`` does not exist.
    """
    if model_asset_path is not None:
        path = Path(model_asset_path)
        if not path.is_file():
            raise FileNotFoundError(f"Model not found: {path}")
        return path

    path = Path(models_dir) / MODEL_FILENAME
    if path.is_file():
        return path
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"Downloading hand landmarker model to {path}")
    urllib.request.urlretrieve(MODEL_URL, path)
    return path


def suppress_overlaps(
    hands: list[HandPrediction], iou_threshold: float
) -> list[HandPrediction]:
    """Drop hands whose box overlaps a more confident hand by more than ``iou_threshold``.

    ``hands`` must be sorted most confident first.
    """
    kept: list[HandPrediction] = []
    for hand in hands:
        if all(hand.bounding_box.iou(other.bounding_box) <= iou_threshold for other in kept):
            kept.append(hand)
    return kept


class MediaPipeHandposeModel:
    """Hand landmark estimator using MediaPipe's HandLandmarker task.

    Every call is independent (IMAGE running mode), so still images, canvases
    and successive video frames can be mixed freely on one instance.
    Calls are serialized: one ``detect`` runs at a time, and :meth:`close`
    waits for a running one to finish.

    Usage:
        >>> model = await load(HandposeOptions(max_num_hands=2))
        >>> hands = await model.estimate_hands(StillImage.from_file("hand.jpg"))
        >>> for hand in hands:
        ...     print(hand.hand_in_view_confidence, hand.bounding_box)
        >>> model.close()
    """

    def __init__(self, model_path: str | Path, options: HandposeOptions | None = None) -> None:
        self._options = options or HandposeOptions()
        landmarker_options = vision.HandLandmarkerOptions(
            base_options=mp_python.BaseOptions(model_asset_path=str(model_path)),
            running_mode=vision.RunningMode.IMAGE,
            num_hands=self._options.max_num_hands,
            min_hand_detection_confidence=self._options.detection_confidence,
            min_hand_presence_confidence=self._options.score_threshold,
        )
        self._landmarker: vision.HandLandmarker | None = (
            vision.HandLandmarker.create_from_options(landmarker_options)
        )
        self._last_inference_ms: float = 0.0
        self._lock = threading.Lock()

    @property
    def options(self) -> HandposeOptions:
        return self._options

    @property
    def last_inference_ms(self) -> float:
        """Return last inference time in milliseconds."""
        return self._last_inference_ms

    async def estimate_hands(
        self,
        input: Any,
        flip_horizontal: bool | None = None,
    ) -> list[HandPrediction]:
        """Estimate hand landmarks in a media handle.

        Args:
            input: Any native media handle (image, video, canvas, pixel buffer
                or BGR array).
            flip_horizontal: Mirror the input first. None means False.

        Returns:
            Detected hands, most confident first.

        Raises:
            ValueError: If there is no usable input.
            RuntimeError: If the model has been closed.
        """
        if self._landmarker is None:
            raise RuntimeError("Model is closed")
        if input is None:
            raise ValueError("No input to estimate hands on")

        frame = to_bgr(input)
        if flip_horizontal:
            frame = cv2.flip(frame, 1)
        # MediaPipe expects RGB
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        return await asyncio.to_thread(self._detect, rgb)

    def _detect(self, rgb: np.ndarray) -> list[HandPrediction]:
        h, w = rgb.shape[:2]
        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)

        with self._lock:
            if self._landmarker is None:
                raise RuntimeError("Model is closed")
            t_start = time.perf_counter()
            result = self._landmarker.detect(image)
            self._last_inference_ms = (time.perf_counter() - t_start) * 1000.0

        hands: list[HandPrediction] = []
        for idx, hand_lms in enumerate(result.hand_landmarks):
            landmarks = np.array(
                [[lm.x * w, lm.y * h, (lm.z or 0.0) * w] for lm in hand_lms],
                dtype=np.float32,
            )

            handedness = Handedness.UNKNOWN
            confidence = 0.0
            if result.handedness and idx < len(result.handedness) and result.handedness[idx]:
                category = result.handedness[idx][0]
                label = (category.category_name or "").lower()
                confidence = float(category.score or 0.0)
                handedness = (
                    Handedness.LEFT
                    if label == "left"
                    else Handedness.RIGHT
                    if label == "right"
                    else Handedness.UNKNOWN
                )

            hands.append(
                HandPrediction(
                    landmarks=landmarks,
                    hand_in_view_confidence=confidence,
                    bounding_box=BoundingBox.around(landmarks),
                    handedness=handedness,
                )
            )

        hands.sort(key=lambda hand: hand.hand_in_view_confidence, reverse=True)
        return suppress_overlaps(hands, self._options.iou_threshold)

    def close(self) -> None:
        """Release MediaPipe resources once no detection is running."""
        with self._lock:
            if self._landmarker is not None:
                self._landmarker.close()
                self._landmarker = None

    def __enter__(self) -> MediaPipeHandposeModel:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


async def load(
    config: HandposeOptions | None = None,
    models_dir: str | Path = DEFAULT_MODELS_DIR,
) -> MediaPipeHandposeModel:
    """Load the hand landmark model described by ``config``."""
    config = config or HandposeOptions()
    path = await asyncio.to_thread(get_model_path, config.model_asset_path, models_dir)
    model = await asyncio.to_thread(MediaPipeHandposeModel, path, config)
    logger.info(
        f"Loaded hand landmarker: {path.name} | "
        f"Max hands: {config.max_num_hands} | "
        f"Detection confidence: {config.detection_confidence}"
    )
    return model
