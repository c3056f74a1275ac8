"""Media handles accepted by the handpose adapter, and input resolution.

Native handles are :class:`StillImage`, :class:`VideoSource`,
:class:`Canvas`, :class:`PixelBuffer` and plain BGR ``numpy`` frames.
Wrapper objects from drawing libraries are accepted when they expose a
native handle on ``elt`` (image, video or pixel buffer) or on ``canvas``.
"""

from __future__ import annotations

import asyncio
from enum import IntEnum
from pathlib import Path
from typing import Any

import cv2
import numpy as np
from loguru import logger

from handpose.events import EventEmitter

LOADED_DATA_EVENT = "loadeddata"
ENDED_EVENT = "ended"


class ReadyState(IntEnum):
    """How much data a video source can currently provide."""
    HAVE_NOTHING = 0
    HAVE_METADATA = 1
    HAVE_CURRENT_DATA = 2
    HAVE_FUTURE_DATA = 3
    HAVE_ENOUGH_DATA = 4


def validate_frame(frame: np.ndarray | None) -> np.ndarray:
    """Check that ``frame`` is a non-empty (H, W, 3) BGR image."""
    if frame is None:
        raise ValueError("Frame is None")
    if frame.ndim != 3 or frame.shape[2] != 3:
        raise ValueError(f"Expected (H, W, 3) BGR frame, got shape {frame.shape}")
    if frame.size == 0:
        raise ValueError("Frame is empty")
    return frame


class PixelBuffer:
    """Raw RGB or RGBA pixels, row-major, dtype uint8."""

    def __init__(self, data: np.ndarray) -> None:
        if data.ndim != 3 or data.shape[2] not in (3, 4):
            raise ValueError(
                f"Expected (H, W, 3) or (H, W, 4) pixel data, got shape {data.shape}"
            )
        if data.size == 0:
            raise ValueError("Pixel data is empty")
        self._data = np.ascontiguousarray(data, dtype=np.uint8)

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def width(self) -> int:
        return self._data.shape[1]

    @property
    def height(self) -> int:
        return self._data.shape[0]

    def to_bgr(self) -> np.ndarray:
        code = cv2.COLOR_RGBA2BGR if self._data.shape[2] == 4 else cv2.COLOR_RGB2BGR
        return cv2.cvtColor(self._data, code)


class StillImage:
    """A decoded still image held as BGR pixels."""

    def __init__(self, pixels: np.ndarray, source: str | None = None) -> None:
        self._pixels = validate_frame(pixels)
        self.source = source

    @classmethod
    def from_file(cls, path: str | Path) -> StillImage:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Image not found: {path}")
        pixels = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if pixels is None:
            raise ValueError(f"Failed to decode image: {path}")
        return cls(pixels, source=str(path))

    @classmethod
    def from_bytes(cls, data: bytes) -> StillImage:
        """Decode an encoded (JPEG/PNG/WebP) image."""
        if not data:
            raise ValueError("Image data is empty")
        pixels = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_COLOR)
        if pixels is None:
            raise ValueError("Failed to decode image")
        return cls(pixels)

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    def to_bgr(self) -> np.ndarray:
        return self._pixels


class Canvas:
    """Off-screen BGR drawing surface."""

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Canvas size must be positive, got {width}x{height}")
        self._surface = np.zeros((height, width, 3), dtype=np.uint8)

    @property
    def width(self) -> int:
        return self._surface.shape[1]

    @property
    def height(self) -> int:
        return self._surface.shape[0]

    def draw_image(self, source: Any) -> None:
        """Paint ``source`` (any native handle) scaled to fill the canvas."""
        pixels = to_bgr(source)
        if pixels.shape[:2] != self._surface.shape[:2]:
            pixels = cv2.resize(
                pixels, (self.width, self.height), interpolation=cv2.INTER_LINEAR
            )
        self._surface[:] = pixels

    def clear(self) -> None:
        self._surface[:] = 0

    def to_bgr(self) -> np.ndarray:
        return self._surface


class VideoSource(EventEmitter):
    """Live frame source backed by ``cv2.VideoCapture``.

    Emits ``"loadeddata"`` once the first frame is available and ``"ended"``
    when the capture stops delivering frames. An ended source stays ended
    (:attr:`ended`) until it is reopened. Frames can also be pushed in
    directly with :meth:`feed`.

    Usage:
        >>> video = VideoSource(0, width=1280, height=720)
        >>> video.open()          # inside a running event loop
        >>> frame = video.current_frame
        >>> video.close()
    """

    def __init__(
        self,
        source: int | str = 0,
        width: int | None = None,
        height: int | None = None,
    ) -> None:
        super().__init__()
        self._source = source
        self._size = (width, height)
        self._capture: cv2.VideoCapture | None = None
        self._reader: asyncio.Task[None] | None = None
        self._frame: np.ndarray | None = None
        self._frame_count = 0
        self._ready_state = ReadyState.HAVE_NOTHING
        self._ended = False

    @property
    def source(self) -> int | str:
        return self._source

    @property
    def ready_state(self) -> ReadyState:
        return self._ready_state

    @property
    def ended(self) -> bool:
        """True once the source has stopped delivering frames."""
        return self._ended

    @property
    def current_frame(self) -> np.ndarray | None:
        return self._frame

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def is_open(self) -> bool:
        return self._capture is not None and self._capture.isOpened()

    def open(self) -> None:
        """Open the capture and start reading frames in the background."""
        if self.is_open:
            return
        capture = cv2.VideoCapture(self._source)
        if not capture.isOpened():
            capture.release()
            raise RuntimeError(f"Cannot open video source {self._source!r}")
        width, height = self._size
        if width:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        if height:
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        self._capture = capture
        self._ended = False
        self._ready_state = ReadyState.HAVE_METADATA
        self._reader = asyncio.get_running_loop().create_task(self._read_loop())
        logger.info(f"Opened video source {self._source!r}")

    async def _read_loop(self) -> None:
        capture = self._capture
        # Files play back at their own rate; cameras block in read().
        fps = capture.get(cv2.CAP_PROP_FPS) if isinstance(self._source, str) else 0.0
        delay = 1.0 / fps if fps > 0 else 0.0
        while capture.isOpened():
            ok, frame = await asyncio.to_thread(capture.read)
            if not ok or frame is None:
                logger.info(f"Video source {self._source!r} ended after {self._frame_count} frames")
                self.end()
                return
            self.feed(frame)
            await asyncio.sleep(delay)

    def feed(self, frame: np.ndarray) -> None:
        """Make ``frame`` the current frame."""
        self._frame = validate_frame(frame)
        self._frame_count += 1
        if self._ready_state < ReadyState.HAVE_CURRENT_DATA:
            self._ready_state = ReadyState.HAVE_ENOUGH_DATA
            self.emit(LOADED_DATA_EVENT)

    def end(self) -> None:
        """Mark the source as finished and emit ``"ended"`` once."""
        if self._ended:
            return
        self._ended = True
        self.emit(ENDED_EVENT)

    def to_bgr(self) -> np.ndarray:
        if self._frame is None:
            raise ValueError("Video has no frame data yet")
        return self._frame

    def close(self) -> None:
        if self._reader is not None:
            self._reader.cancel()
            self._reader = None
        if self._capture is not None:
            self._capture.release()
            self._capture = None
        self._frame = None
        self._ready_state = ReadyState.HAVE_NOTHING


NATIVE_MEDIA = (StillImage, VideoSource, Canvas, PixelBuffer, np.ndarray)
_ELEMENT_MEDIA = (StillImage, VideoSource, PixelBuffer, np.ndarray)


def is_media(value: Any) -> bool:
    """True if ``value`` is a native media handle."""
    return isinstance(value, NATIVE_MEDIA)


def resolve_input(value: Any, fallback: Any = None) -> Any:
    """Pick the media handle to run inference on.

    Priority: a native handle as-is, then a wrapper's ``elt`` (image, video
    or pixel buffer), then a wrapper's ``canvas``, then ``fallback``.
    """
    if is_media(value):
        return value
    if value is not None:
        inner = getattr(value, "elt", None)
        if isinstance(inner, _ELEMENT_MEDIA):
            return inner
        inner = getattr(value, "canvas", None)
        if isinstance(inner, Canvas):
            return inner
    return fallback


def unwrap_video(value: Any) -> VideoSource | None:
    """Return ``value`` or its ``elt`` if either is a :class:`VideoSource`."""
    if isinstance(value, VideoSource):
        return value
    inner = getattr(value, "elt", None)
    if isinstance(inner, VideoSource):
        return inner
    return None


def to_bgr(handle: Any) -> np.ndarray:
    """BGR pixels of any native media handle."""
    if isinstance(handle, np.ndarray):
        return validate_frame(handle)
    if not is_media(handle):
        raise ValueError(f"Unsupported media input: {type(handle).__name__}")
    return handle.to_bgr()
