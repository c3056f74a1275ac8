"""Shared types, protocols, and constants for the handpose package."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from handpose.options import HandposeOptions


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NUM_HAND_LANDMARKS = 21
LANDMARK_DIMS = 3  # x, y, z

# Landmark indices per finger, wrist first (same layout as the browser model).
FINGER_LOOKUP_INDICES: dict[str, tuple[int, ...]] = {
    "thumb": (1, 2, 3, 4),
    "index_finger": (5, 6, 7, 8),
    "middle_finger": (9, 10, 11, 12),
    "ring_finger": (13, 14, 15, 16),
    "pinky": (17, 18, 19, 20),
    "palm_base": (0,),
}

HAND_CONNECTIONS: list[tuple[int, int]] = [
    (0, 1), (1, 2), (2, 3), (3, 4),        # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),        # Index
    (0, 9), (9, 10), (10, 11), (11, 12),   # Middle
    (0, 13), (13, 14), (14, 15), (15, 16), # Ring
    (0, 17), (17, 18), (18, 19), (19, 20), # Pinky
    (5, 9), (9, 13), (13, 17),             # Palm
]

POSE_EVENT = "pose"
ERROR_EVENT = "error"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Handedness(Enum):
    LEFT = "left"
    RIGHT = "right"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Core Data Structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned hand box in pixel coordinates.

    Attributes:
        top_left: (x, y) of the upper-left corner.
        bottom_right: (x, y) of the lower-right corner.
    """
    top_left: tuple[float, float]
    bottom_right: tuple[float, float]

    @property
    def width(self) -> float:
        return self.bottom_right[0] - self.top_left[0]

    @property
    def height(self) -> float:
        return self.bottom_right[1] - self.top_left[1]

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)

    def iou(self, other: BoundingBox) -> float:
        """Intersection over union with ``other``; 0.0 when both are empty."""
        w = min(self.bottom_right[0], other.bottom_right[0]) - max(self.top_left[0], other.top_left[0])
        h = min(self.bottom_right[1], other.bottom_right[1]) - max(self.top_left[1], other.top_left[1])
        inter = max(w, 0.0) * max(h, 0.0)
        union = self.area + other.area - inter
        return inter / union if union > 0 else 0.0

    @classmethod
    def around(cls, points: NDArray[np.float32]) -> BoundingBox:
        """Smallest box enclosing the (x, y) columns of ``points``."""
        xs, ys = points[:, 0], points[:, 1]
        return cls(
            top_left=(float(xs.min()), float(ys.min())),
            bottom_right=(float(xs.max()), float(ys.max())),
        )


@dataclass(frozen=True, slots=True)
class HandPrediction:
    """One detected hand.

    Attributes:
        landmarks: (21, 3) array of [x, y, z]; x and y in input pixels.
        hand_in_view_confidence: Probability that a hand is present [0, 1].
        bounding_box: Box around the landmarks.
        handedness: Left or right hand, when the model reports it.
    """
    landmarks: NDArray[np.float32]  # shape (21, 3)
    hand_in_view_confidence: float
    bounding_box: BoundingBox
    handedness: Handedness = Handedness.UNKNOWN

    def __post_init__(self) -> None:
        assert self.landmarks.shape == (NUM_HAND_LANDMARKS, LANDMARK_DIMS), (
            f"Expected shape ({NUM_HAND_LANDMARKS}, {LANDMARK_DIMS}), "
            f"got {self.landmarks.shape}"
        )

    @property
    def annotations(self) -> dict[str, NDArray[np.float32]]:
        """Landmarks grouped by finger name."""
        return {
            name: self.landmarks[list(indices)]
            for name, indices in FINGER_LOOKUP_INDICES.items()
        }

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation."""
        return {
            "handInViewConfidence": self.hand_in_view_confidence,
            "boundingBox": {
                "topLeft": list(self.bounding_box.top_left),
                "bottomRight": list(self.bounding_box.bottom_right),
            },
            "landmarks": self.landmarks.tolist(),
            "annotations": {k: v.tolist() for k, v in self.annotations.items()},
            "handedness": self.handedness.value,
        }


# ---------------------------------------------------------------------------
# Protocols (Interfaces)
# ---------------------------------------------------------------------------

class HandposeModel(Protocol):
    """Protocol for hand landmark estimation backends."""

    async def estimate_hands(
        self,
        input: Any,
        flip_horizontal: bool | None = None,
    ) -> list[HandPrediction]:
        """Estimate hands in a media handle."""
        ...

    def close(self) -> None:
        """Release resources."""
        ...


ModelLoader = Callable[["HandposeOptions"], Awaitable[HandposeModel]]
FrameScheduler = Callable[[], Awaitable[None]]
PoseCallback = Callable[[Any], None]
ReadyCallback = Callable[[BaseException | None, Any], None]
