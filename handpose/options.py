"""Model configuration for the handpose adapter."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


@dataclass(frozen=True)
class HandposeOptions:
    """Configuration forwarded to the model loader.

    ``flip_horizontal`` is also read by the adapter on every inference pass.
    Keys the adapter does not know are kept in ``extra`` and passed through.

    Attributes:
        flip_horizontal: Mirror the input before estimation (None = model default).
        detection_confidence: Minimum palm detection confidence.
        iou_threshold: Box overlap above which a less confident hand is dropped.
        score_threshold: Minimum hand-presence score to report a hand.
        max_num_hands: Maximum number of hands returned per pass.
        model_asset_path: Path to a ``.task`` model file (None = cached download).
        extra: Unrecognized options, forwarded verbatim.
    """
    flip_horizontal: bool | None = None
    detection_confidence: float = 0.8
    iou_threshold: float = 0.3
    score_threshold: float = 0.75
    max_num_hands: int = 1
    model_asset_path: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("detection_confidence", "iou_threshold", "score_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if self.max_num_hands < 1:
            raise ValueError(f"max_num_hands must be >= 1, got {self.max_num_hands}")

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | HandposeOptions | None) -> HandposeOptions:
        """Build options from a camelCase or snake_case mapping."""
        if options is None:
            return cls()
        if isinstance(options, HandposeOptions):
            return options
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = dict(options.get("extra", {}))
        for key, value in options.items():
            if key == "extra":
                continue
            name = _snake_case(key)
            if name in known:
                kwargs[name] = value
            else:
                extra[key] = value
        return cls(**kwargs, extra=extra)

    def merged(self, **changes: Any) -> HandposeOptions:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        extra = data.pop("extra")
        data.update(extra)
        return data
