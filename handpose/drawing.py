"""Debug overlays for hand predictions."""

from __future__ import annotations

from collections.abc import Sequence

import cv2
import numpy as np

from handpose.types import HAND_CONNECTIONS, HandPrediction

KEYPOINT_COLOR = (99, 102, 241)
CONNECTION_COLOR = (0, 255, 0)
BOX_COLOR = (0, 255, 255)


def draw_predictions(
    frame: np.ndarray,
    predictions: Sequence[HandPrediction],
    draw_box: bool = True,
) -> np.ndarray:
    """Draw keypoints, finger connections and boxes on a BGR frame copy.

    Args:
        frame: BGR image (H, W, 3).
        predictions: Hands in the frame's pixel coordinates.
        draw_box: Also draw each hand's bounding box.

    Returns:
        Annotated BGR image copy.
    """
    annotated = frame.copy()
    for hand in predictions:
        points = [(int(x), int(y)) for x, y, _ in hand.landmarks]
        for start, end in HAND_CONNECTIONS:
            cv2.line(annotated, points[start], points[end], CONNECTION_COLOR, 2)
        for point in points:
            cv2.circle(annotated, point, 4, KEYPOINT_COLOR, -1)
        if draw_box:
            box = hand.bounding_box
            cv2.rectangle(
                annotated,
                (int(box.top_left[0]), int(box.top_left[1])),
                (int(box.bottom_right[0]), int(box.bottom_right[1])),
                BOX_COLOR,
                1,
            )
    return annotated


def draw_status(frame: np.ndarray, num_hands: int, fps: float) -> None:
    """Write the hand count and loop rate in the top-left corner, in place."""
    cv2.putText(
        frame,
        f"Hands: {num_hands} | FPS: {fps:.1f}",
        (10, 30),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.7,
        CONNECTION_COLOR,
        2,
    )
