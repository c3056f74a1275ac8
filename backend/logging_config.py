"""Structured logging configuration (Loguru)."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from backend.config import Settings, settings


def setup_logging(config: Settings = settings) -> None:
    """Configure Loguru with a console sink and a daily rotating file sink."""
    logger.remove()

    fmt = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> — "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stderr,
        format=fmt,
        level=config.log_level,
        colorize=True,
        backtrace=True,
        diagnose=config.debug,
    )

    logger.add(
        str(Path(config.log_dir) / "handpose_{time:YYYY-MM-DD}.log"),
        format=fmt,
        level="DEBUG",
        rotation="00:00",
        retention="30 days",
        compression="gz",
        enqueue=True,
    )

    logger.info(
        "Logging ready  |  level={}  env={}  version={}",
        config.log_level,
        config.app_env,
        config.app_version,
    )
