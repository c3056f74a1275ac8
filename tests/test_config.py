"""Tests for backend.config — Settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from backend.config import Settings


class TestSettings:
    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HANDPOSE_FLIP_HORIZONTAL", "true")
        monkeypatch.setenv("HANDPOSE_MAX_NUM_HANDS", "4")
        config = Settings()
        assert config.flip_horizontal is True
        assert config.max_num_hands == 4

    def test_cors_from_json_string(self) -> None:
        config = Settings(cors_origins='["http://localhost:3000"]')
        assert config.cors_origins == ["http://localhost:3000"]

    def test_handpose_options(self) -> None:
        options = Settings(flip_horizontal=True, detection_confidence=0.6).handpose_options()
        assert options.flip_horizontal is True
        assert options.detection_confidence == 0.6

    def test_invalid_frame_rate(self) -> None:
        with pytest.raises(ValidationError):
            Settings(frame_rate=0)

    def test_is_production(self) -> None:
        assert Settings(app_env="production").is_production
        assert not Settings(app_env="development").is_production
