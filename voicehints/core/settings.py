"""User-facing settings for a hint session.

Settings are stored with the camelCase keys used by the options page
(``coneAngle``, ``topK``, ...) and are clamped into their supported range
when loaded, so a corrupted or hand-edited store never produces an engine
that cannot run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

logger = logging.getLogger("voicehints.settings")


class BadgeSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    XLARGE = "xlarge"


class PredictionMode(str, Enum):
    TRAJECTORY = "trajectory"
    PROXIMITY = "proximity"


# key -> (attribute, min, max)
_NUMERIC_RANGES: dict[str, tuple[str, float, float]] = {
    "coneAngle": ("cone_angle", 10, 180),
    "maxDistance": ("max_distance", 50, 2000),
    "topK": ("top_k", 1, 9),
    "hysteresis": ("hysteresis_ms", 0, 5000),
    "proximityRadius": ("proximity_radius", 20, 2000),
    "tickInterval": ("tick_interval_ms", 50, 300),
}


@dataclass(frozen=True)
class HintSettings:
    cone_angle: float = 40.0
    max_distance: float = 600.0
    top_k: int = 6
    hysteresis_ms: int = 800
    risk_confirmation: bool = True
    badge_size: BadgeSize = BadgeSize.MEDIUM
    prediction_mode: PredictionMode = PredictionMode.TRAJECTORY
    proximity_radius: float = 250.0
    tick_interval_ms: int = 300

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None, strict: bool = True) -> "HintSettings":
        """Build settings from camelCase keys over the defaults.

        With ``strict=False`` a value that cannot be parsed is logged and
        skipped, keeping that field's default, instead of raising ValueError.
        """
        settings = cls()
        if not payload:
            return settings

        def invalid(key: str, exc: Exception) -> None:
            if strict:
                raise ValueError(f"Invalid value for {key!r}: {payload[key]!r}") from exc
            logger.warning("[Settings] Ignoring invalid %s=%r, keeping default", key, payload[key])

        updates: dict[str, Any] = {}
        for key, (attr, low, high) in _NUMERIC_RANGES.items():
            if key not in payload or payload[key] is None:
                continue
            try:
                raw = float(payload[key])
            except (TypeError, ValueError) as exc:
                invalid(key, exc)
                continue
            value = min(high, max(low, raw))
            updates[attr] = int(round(value)) if isinstance(getattr(settings, attr), int) else value

        if "riskConfirmation" in payload:
            updates["risk_confirmation"] = bool(payload["riskConfirmation"])
        for key, attr, enum_cls in (
            ("badgeSize", "badge_size", BadgeSize),
            ("predictionMode", "prediction_mode", PredictionMode),
        ):
            if not payload.get(key):
                continue
            try:
                updates[attr] = enum_cls(str(payload[key]).lower())
            except ValueError as exc:
                invalid(key, exc)

        return replace(settings, **updates)

    def to_dict(self) -> dict[str, Any]:
        return {
            "coneAngle": self.cone_angle,
            "maxDistance": self.max_distance,
            "topK": self.top_k,
            "hysteresis": self.hysteresis_ms,
            "riskConfirmation": self.risk_confirmation,
            "badgeSize": self.badge_size.value,
            "predictionMode": self.prediction_mode.value,
            "proximityRadius": self.proximity_radius,
            "tickInterval": self.tick_interval_ms,
        }

    def updated(self, changes: dict[str, Any]) -> "HintSettings":
        merged = self.to_dict()
        merged.update(changes)
        return HintSettings.from_dict(merged)


DEFAULT_SETTINGS = HintSettings()
