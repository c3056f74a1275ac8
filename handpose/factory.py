"""Positional-argument entry point mirroring the browser ``handpose()`` call.

``handpose(video, options, callback)`` accepts its arguments in any of the
shapes the browser library allows and sorts them out by type. New code can
construct :class:`~handpose.adapter.Handpose` with keywords instead.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from handpose.adapter import Handpose
from handpose.media import VideoSource, unwrap_video
from handpose.options import HandposeOptions
from handpose.types import FrameScheduler, ModelLoader, ReadyCallback


@dataclass
class HandposeArguments:
    video: VideoSource | None = None
    options: HandposeOptions | Mapping[str, Any] | None = None
    callback: ReadyCallback | None = None


def _is_options(value: Any) -> bool:
    return isinstance(value, (Mapping, HandposeOptions))


def resolve_arguments(
    video_or_options_or_callback: Any = None,
    options_or_callback: Any = None,
    callback: ReadyCallback | None = None,
) -> HandposeArguments:
    """Sort positional ``handpose()`` arguments into video, options, callback.

    First argument: a video (or a wrapper whose ``elt`` is one), else
    options, else a callback. Second argument: options (replacing any from
    the first) or a callback. Third argument: always the callback.
    """
    args = HandposeArguments()
    inferred_callback: ReadyCallback | None = None

    first = video_or_options_or_callback
    video = unwrap_video(first)
    if video is not None:
        args.video = video
    elif _is_options(first):
        args.options = first
    elif callable(first):
        inferred_callback = first

    second = options_or_callback
    if _is_options(second):
        args.options = second
    elif callable(second):
        inferred_callback = second

    args.callback = callback if callback is not None else inferred_callback
    return args


def handpose(
    video_or_options_or_callback: Any = None,
    options_or_callback: Any = None,
    callback: ReadyCallback | None = None,
    *,
    loader: ModelLoader | None = None,
    next_frame: FrameScheduler | None = None,
) -> Handpose | asyncio.Task[Handpose]:
    """Create a :class:`Handpose` from browser-style positional arguments.

    Returns the instance when a callback was given, otherwise the pending
    ``ready`` task to await.
    """
    args = resolve_arguments(video_or_options_or_callback, options_or_callback, callback)
    instance = Handpose(
        args.video,
        args.options,
        args.callback,
        loader=loader,
        next_frame=next_frame,
    )
    return instance if args.callback is not None else instance.ready
