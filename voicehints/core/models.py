from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Hashable


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return Point(self.left + self.width / 2.0, self.top + self.height / 2.0)

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)


@dataclass(frozen=True)
class MotionSample:
    x: float
    y: float
    timestamp: float  # ms


@dataclass(frozen=True)
class RawCandidate:
    """One interactive element as reported by the page, before any scoring."""

    handle: Hashable
    rect: Rect
    text: str = ""
    priority: int = 5
    element_type: str = ""
    input_type: str = ""
    aria_label: str = ""
    title: str = ""
    value: str = ""
    in_form: bool = False
    form_action: str = ""
    form_id: str = ""


@dataclass(frozen=True)
class Candidate:
    handle: Hashable
    rect: Rect
    center: Point
    area: float
    priority: int
    text: str = ""
    element_type: str = ""
    input_type: str = ""
    aria_label: str = ""
    title: str = ""
    value: str = ""
    in_form: bool = False
    form_action: str = ""
    form_id: str = ""
    distance: float = 0.0
    alignment: float = 0.0
    aheadness: float = 0.0
    is_risky: bool = False
    score: float = 0.0

    @classmethod
    def from_raw(cls, raw: RawCandidate) -> "Candidate":
        return cls(
            handle=raw.handle,
            rect=raw.rect,
            center=raw.rect.center,
            area=raw.rect.area,
            priority=raw.priority,
            text=raw.text,
            element_type=raw.element_type,
            input_type=raw.input_type,
            aria_label=raw.aria_label,
            title=raw.title,
            value=raw.value,
            in_form=raw.in_form,
            form_action=raw.form_action,
            form_id=raw.form_id,
        )

    def with_geometry(self, distance: float, alignment: float) -> "Candidate":
        return replace(self, distance=distance, alignment=alignment, aheadness=alignment * distance)

    def with_risk(self, is_risky: bool) -> "Candidate":
        return replace(self, is_risky=is_risky)

    def with_score(self, score: float) -> "Candidate":
        return replace(self, score=score)

    def to_dict(self) -> dict[str, Any]:
        return {
            "handle": self.handle,
            "rect": {
                "left": self.rect.left,
                "top": self.rect.top,
                "width": self.rect.width,
                "height": self.rect.height,
            },
            "text": self.text,
            "type": self.element_type,
            "priority": self.priority,
            "distance": round(self.distance, 2),
            "alignment": round(self.alignment, 4),
            "is_risky": self.is_risky,
            "score": round(self.score, 4),
        }


WEIGHT_MIN = 0.1
WEIGHT_MAX = 10.0
LEARNABLE_FEATURES: tuple[str, ...] = ("alignment", "size", "distance", "priority")


def clamp_weight(value: float) -> float:
    return min(WEIGHT_MAX, max(WEIGHT_MIN, value))


@dataclass(frozen=True)
class WeightVector:
    alignment: float = 3.0
    size: float = 1.0
    distance: float = 1.5
    priority: float = 2.0
    risk: float = 5.0

    def clamped(self) -> "WeightVector":
        # risk is never learned directly; it only has to stay non-negative
        return WeightVector(
            alignment=clamp_weight(self.alignment),
            size=clamp_weight(self.size),
            distance=clamp_weight(self.distance),
            priority=clamp_weight(self.priority),
            risk=min(WEIGHT_MAX, max(0.0, self.risk)),
        )

    def get(self, name: str) -> float:
        return float(getattr(self, name))

    def merged(self, updates: dict[str, float]) -> "WeightVector":
        known = {k: float(v) for k, v in updates.items() if k in self.to_dict()}
        return replace(self, **known).clamped()

    def to_dict(self) -> dict[str, float]:
        return {
            "alignment": self.alignment,
            "size": self.size,
            "distance": self.distance,
            "priority": self.priority,
            "risk": self.risk,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> "WeightVector":
        return cls().merged(dict(payload or {}))


@dataclass(frozen=True)
class RankedSet:
    candidates: tuple[Candidate, ...] = ()
    created_at: float = 0.0  # ms
    retained: bool = False

    def __len__(self) -> int:
        return len(self.candidates)

    def __bool__(self) -> bool:
        return bool(self.candidates)

    def at_ordinal(self, ordinal: int) -> Candidate | None:
        if 1 <= ordinal <= len(self.candidates):
            return self.candidates[ordinal - 1]
        return None

    def handles(self) -> tuple[Hashable, ...]:
        return tuple(candidate.handle for candidate in self.candidates)

    def same_selection(self, other: "RankedSet") -> bool:
        return self.handles() == other.handles()


@dataclass(frozen=True)
class PendingConfirmation:
    candidate: Candidate
    ordinal: int
    issued_at: float  # ms


class SelectionMethod(str, Enum):
    KEYBOARD = "keyboard"
    VOICE = "voice"
    BADGE = "badge"


@dataclass(frozen=True)
class CommittedAction:
    candidate: Candidate
    ordinal: int
    method: SelectionMethod
    committed_at: float
    ranked_set: RankedSet = field(default_factory=RankedSet, repr=False)


@dataclass(frozen=True)
class ExecutionResult:
    handle: Hashable
    success: bool
    action: str = ""
    failure_code: str | None = None
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "handle": self.handle,
            "success": self.success,
            "action": self.action,
            "failure_code": self.failure_code,
            "detail": self.detail,
        }
