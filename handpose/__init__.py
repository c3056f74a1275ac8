"""Handpose — hand landmark detection on images and live video."""

from handpose.adapter import Handpose
from handpose.events import EventEmitter
from handpose.factory import handpose, resolve_arguments
from handpose.media import Canvas, PixelBuffer, ReadyState, StillImage, VideoSource, resolve_input
from handpose.options import HandposeOptions
from handpose.types import BoundingBox, Handedness, HandPrediction

__all__ = [
    "BoundingBox",
    "Canvas",
    "EventEmitter",
    "HandPrediction",
    "Handedness",
    "Handpose",
    "HandposeOptions",
    "PixelBuffer",
    "ReadyState",
    "StillImage",
    "VideoSource",
    "handpose",
    "resolve_arguments",
    "resolve_input",
]
