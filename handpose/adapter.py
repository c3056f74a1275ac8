"""Hand landmark adapter: model lifecycle, input resolution, frame loop.

:class:`Handpose` loads a hand model, then either runs one estimation per
call on still media or, when it owns a :class:`~handpose.media.VideoSource`,
keeps estimating once per frame until stopped. Every result is published as
a ``"pose"`` event.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from loguru import logger

from handpose import scheduling
from handpose.events import EventEmitter
from handpose.media import ENDED_EVENT, LOADED_DATA_EVENT, ReadyState, VideoSource, resolve_input
from handpose.options import HandposeOptions
from handpose.types import (
    ERROR_EVENT,
    POSE_EVENT,
    FrameScheduler,
    HandposeModel,
    ModelLoader,
    PoseCallback,
    ReadyCallback,
)
from handpose.utils import call_callback


async def _default_loader(config: HandposeOptions) -> HandposeModel:
    from handpose.model import load

    return await load(config)


class Handpose(EventEmitter):
    """Hand landmark detector driving a pretrained model.

    Construction needs a running event loop: it starts loading the model at
    once and exposes the pending load as :attr:`ready`. With a video source
    the instance starts a per-frame detection loop as soon as the model is
    loaded and the video has its first frame.

    Usage:
        >>> video = VideoSource(0)
        >>> video.open()
        >>> detector = await Handpose(video, {"flipHorizontal": True}).ready
        >>> detector.on("pose", lambda hands: print(len(hands)))
        >>> ...
        >>> await detector.close()
    """

    def __init__(
        self,
        video: VideoSource | None = None,
        options: HandposeOptions | Mapping[str, Any] | None = None,
        callback: ReadyCallback | None = None,
        *,
        loader: ModelLoader | None = None,
        next_frame: FrameScheduler | None = None,
    ) -> None:
        """Create the detector and start loading the model.

        Args:
            video: Video source to run on continuously.
            options: Model configuration; mappings may use camelCase keys.
            callback: Called once as ``callback(error, instance)`` when ready.
            loader: Coroutine function returning the model (default MediaPipe).
            next_frame: Coroutine function awaiting the next frame boundary.

        Raises:
            RuntimeError: If there is no running event loop.
        """
        super().__init__()
        self.video = video
        self.model: HandposeModel | None = None
        self.model_ready = False
        self.config = HandposeOptions.from_mapping(options)

        self._loader = loader or _default_loader
        self._next_frame = next_frame or scheduling.next_frame
        self._loop_task: asyncio.Task[None] | None = None

        if self.video is not None:
            self.video.on(ENDED_EVENT, self._on_video_ended)

        self.ready: asyncio.Task[Handpose] = asyncio.get_running_loop().create_task(
            self.load_model()
        )
        call_callback(self.ready, callback)

    @property
    def is_running(self) -> bool:
        """True while the per-frame detection loop is active."""
        return self._loop_task is not None and not self._loop_task.done()

    async def load_model(self) -> Handpose:
        """Load the model, wait for video data, then start the frame loop."""
        self.model = await self._loader(self.config)
        self.model_ready = True
        logger.info(f"Handpose model ready | Video: {self.video is not None}")

        if self.video is not None:
            if not self.video.ended and self.video.ready_state < ReadyState.HAVE_CURRENT_DATA:
                logger.debug("Waiting for first video frame")
                await self._wait_for_video_data()
            if self.video.ended:
                logger.info("Video ended before hand detection could start")
            else:
                self.start()

        return self

    async def _wait_for_video_data(self) -> None:
        loaded = self.video.wait_for(LOADED_DATA_EVENT)
        ended = self.video.wait_for(ENDED_EVENT)
        try:
            await asyncio.wait({loaded, ended}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            loaded.cancel()
            ended.cancel()

    async def single_pose(
        self,
        input: Any = None,
        callback: PoseCallback | None = None,
    ) -> Any:
        """Run one estimation pass and publish it as a ``"pose"`` event.

        Args:
            input: Media handle or wrapper; defaults to the stored video.
            callback: Called with the result when no video is stored.

        Returns:
            The model's result, unchanged.

        Raises:
            RuntimeError: If the model is not loaded yet.
        """
        if self.model is None:
            raise RuntimeError("Model not loaded. Await ready first.")

        resolved = self.get_input(input)
        result = await self.model.estimate_hands(resolved, self.config.flip_horizontal)
        self.emit(POSE_EVENT, result)

        if self.video is None and callback is not None:
            callback(result)

        return result

    def get_input(self, input: Any = None) -> Any:
        return resolve_input(input, fallback=self.video)

    def start(self) -> asyncio.Task[None]:
        """Start the per-frame detection loop on the stored video.

        Raises:
            RuntimeError: If there is no video or the model is not loaded.
        """
        if self.video is None:
            raise RuntimeError("Continuous detection needs a video source")
        if self.model is None:
            raise RuntimeError("Model not loaded. Await ready first.")
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.get_running_loop().create_task(self._run_loop())
        return self._loop_task

    def stop(self) -> asyncio.Task[None] | None:
        """Cancel the per-frame loop. Returns the cancelled task, if any."""
        task, self._loop_task = self._loop_task, None
        if task is not None and not task.done():
            task.cancel()
        return task

    async def _run_loop(self) -> None:
        passes = 0
        logger.info("Per-frame hand detection started")
        try:
            while True:
                await self.single_pose()
                passes += 1
                await self._next_frame()
        except asyncio.CancelledError:
            logger.info(f"Per-frame hand detection stopped after {passes} passes")
            raise
        except Exception as e:
            logger.exception(f"Hand detection failed after {passes} passes: {e}")
            self.emit(ERROR_EVENT, e)

    def _on_video_ended(self) -> None:
        logger.info("Video ended; stopping hand detection")
        self.stop()

    async def close(self) -> None:
        """Stop the loop, wait for it to unwind, then release the model."""
        pending = [task for task in (self.stop(), self.ready) if task is not None]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        if self.video is not None:
            self.video.off(ENDED_EVENT, self._on_video_ended)
        if self.model is not None:
            self.model.close()
            self.model = None
            self.model_ready = False

    async def __aenter__(self) -> Handpose:
        return await self.ready

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
