"""Handpose — Centralised Settings (Pydantic v2).

Single source of truth for all configuration.
Loads from .env, environment variables, or defaults.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from handpose.options import HandposeOptions


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HANDPOSE_",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────
    app_name: str = "Handpose"
    app_version: str = "0.1.0"
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_dir: str = "logs"

    # ── Server ───────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1
    cors_origins: list[str] = ["*"]

    # ── Model ────────────────────────────────────────────────
    model_asset_path: str | None = None
    models_dir: str = str(Path.home() / ".cache" / "handpose" / "models")
    flip_horizontal: bool = False
    max_num_hands: int = 2
    detection_confidence: float = 0.8
    score_threshold: float = 0.75

    # ── Camera ───────────────────────────────────────────────
    camera_index: int = 0
    camera_width: int = 1280
    camera_height: int = 720
    frame_rate: float = 60.0

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            return json.loads(v)
        return v

    @field_validator("frame_rate")
    @classmethod
    def _positive_frame_rate(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("frame_rate must be positive")
        return v

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def handpose_options(self) -> HandposeOptions:
        """Model options built from these settings."""
        return HandposeOptions(
            flip_horizontal=self.flip_horizontal,
            max_num_hands=self.max_num_hands,
            detection_confidence=self.detection_confidence,
            score_threshold=self.score_threshold,
            model_asset_path=self.model_asset_path,
        )


settings = Settings()
