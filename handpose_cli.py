"""Handpose CLI — command-line interface for demo, single images, and serving.

Usage:
    python -m handpose_cli demo --camera 0 --flip
    python -m handpose_cli image --input hand.jpg --output annotated.jpg
    python -m handpose_cli serve --port 8000
    python -m handpose_cli info
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from collections import deque

from loguru import logger


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="handpose",
        description="Handpose — hand landmark detection CLI",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- demo ----
    demo_parser = subparsers.add_parser("demo", help="Run real-time webcam demo")
    demo_parser.add_argument("--camera", type=str, default=None, help="Camera index or video file")
    demo_parser.add_argument("--flip", action="store_true", help="Mirror input before detection")
    demo_parser.add_argument("--max-hands", type=int, default=None, help="Maximum hands per frame")
    demo_parser.add_argument("--fps", type=float, default=None, help="Detection loop rate")

    # ---- image ----
    image_parser = subparsers.add_parser("image", help="Detect hands in a single image")
    image_parser.add_argument("--input", type=str, required=True, help="Path to image file")
    image_parser.add_argument("--output", type=str, default=None, help="Write annotated image here")
    image_parser.add_argument("--flip", action="store_true", help="Mirror input before detection")
    image_parser.add_argument("--max-hands", type=int, default=None, help="Maximum hands")

    # ---- serve ----
    serve_parser = subparsers.add_parser("serve", help="Start the FastAPI API server")
    serve_parser.add_argument("--host", type=str, default=None, help="Host")
    serve_parser.add_argument("--port", type=int, default=None, help="Port")
    serve_parser.add_argument("--workers", type=int, default=None, help="Number of workers")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    # ---- info ----
    subparsers.add_parser("info", help="Show system information")

    args = parser.parse_args()

    from backend.logging_config import setup_logging

    setup_logging()

    if args.command == "demo":
        asyncio.run(cmd_demo(args))
    elif args.command == "image":
        asyncio.run(cmd_image(args))
    elif args.command == "serve":
        cmd_serve(args)
    elif args.command == "info":
        cmd_info()


def _options(args: argparse.Namespace):  # noqa: ANN202
    from backend.config import settings

    options = settings.handpose_options()
    changes = {}
    if args.flip:
        changes["flip_horizontal"] = True
    if args.max_hands is not None:
        changes["max_num_hands"] = args.max_hands
    return options.merged(**changes)


def _loader():  # noqa: ANN202
    from functools import partial

    from backend.config import settings
    from handpose.model import load

    return partial(load, models_dir=settings.models_dir)


async def cmd_demo(args: argparse.Namespace) -> None:
    """Run the per-frame loop on a camera and show the landmarks."""
    import cv2

    from backend.config import settings
    from handpose.adapter import Handpose
    from handpose.drawing import draw_predictions, draw_status
    from handpose.media import VideoSource
    from handpose.scheduling import FrameClock

    source: int | str = settings.camera_index
    if args.camera is not None:
        source = int(args.camera) if args.camera.isdigit() else args.camera

    video = VideoSource(source, width=settings.camera_width, height=settings.camera_height)
    try:
        video.open()
    except RuntimeError as e:
        logger.error(str(e))
        sys.exit(1)

    clock = FrameClock(args.fps or settings.frame_rate)
    latest: list = []
    pose_times: deque[float] = deque(maxlen=30)

    def on_pose(hands: list) -> None:
        latest[:] = hands
        pose_times.append(time.perf_counter())

    detector = Handpose(video, _options(args), loader=_loader(), next_frame=clock.next_frame)
    detector.on("pose", on_pose)
    detector.on("error", lambda e: logger.error(f"Detection stopped: {e}"))
    await detector.ready

    logger.info("Press 'q' to quit")
    try:
        while video.is_open and video.current_frame is not None:
            frame = video.current_frame
            if detector.config.flip_horizontal:
                frame = cv2.flip(frame, 1)
            annotated = draw_predictions(frame, latest)
            fps = 0.0
            if len(pose_times) > 1:
                fps = (len(pose_times) - 1) / (pose_times[-1] - pose_times[0])
            draw_status(annotated, len(latest), fps)
            cv2.imshow("Handpose", annotated)
            if cv2.waitKey(1) & 0xFF == ord("q"):
                break
            await clock.next_frame()
    finally:
        await detector.close()
        video.close()
        cv2.destroyAllWindows()


async def cmd_image(args: argparse.Namespace) -> None:
    """Detect hands in one image and print them as JSON."""
    import cv2

    from handpose.adapter import Handpose
    from handpose.drawing import draw_predictions
    from handpose.media import StillImage

    try:
        image = StillImage.from_file(args.input)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        sys.exit(1)

    async with Handpose(options=_options(args), loader=_loader()) as detector:
        hands = await detector.single_pose(image)

    print(json.dumps([hand.to_dict() for hand in hands], indent=2))

    if args.output:
        frame = image.to_bgr()
        if detector.config.flip_horizontal:
            frame = cv2.flip(frame, 1)
        cv2.imwrite(args.output, draw_predictions(frame, hands))
        logger.info(f"Annotated image written to {args.output}")


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the FastAPI API server (optional server mode)."""
    import uvicorn

    from backend.config import settings

    logger.info("Starting Handpose API server...")
    uvicorn.run(
        "backend.apps.api.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        workers=args.workers or settings.workers,
        reload=args.reload,
        log_level="info",
    )


def cmd_info() -> None:
    """Show system information."""
    import platform

    import cv2
    import numpy as np

    try:
        import mediapipe as mp
        mp_ver = mp.__version__
    except ImportError:
        mp_ver = "not installed"

    from backend.config import settings

    print(f"""
Handpose — hand landmark detection
══════════════════════════════════════════════
  Python:       {platform.python_version()}
  Platform:     {platform.system()} {platform.machine()}
  MediaPipe:    {mp_ver}
  OpenCV:       {cv2.__version__}
  NumPy:        {np.__version__}
  Models dir:   {settings.models_dir}
  Frame rate:   {settings.frame_rate}
""")


if __name__ == "__main__":
    main()
