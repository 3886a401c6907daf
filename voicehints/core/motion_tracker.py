from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Iterable

from voicehints.core.models import Candidate, MotionSample, Point

logger = logging.getLogger("voicehints.motion")


@dataclass(frozen=True)
class TrackerConfig:
    history_window_ms: float = 1200.0
    velocity_samples: int = 10
    min_samples: int = 3
    min_movement_px: float = 30.0
    moving_speed_px_s: float = 20.0
    min_direction_speed_px_s: float = 10.0


@dataclass(frozen=True)
class MotionState:
    position: Point | None
    velocity: Point
    is_moving: bool
    sample_count: int

    @property
    def speed(self) -> float:
        return math.hypot(self.velocity.x, self.velocity.y)


def _now_ms() -> float:
    return time.monotonic() * 1000.0


class MotionTracker:
    """Pointer history with tremor-tolerant velocity estimation.

    Velocity is the net displacement across the last ``velocity_samples``
    samples divided by their time span. Back-and-forth jitter cancels out,
    and a net displacement under ``min_movement_px`` reports a still pointer.
    """

    def __init__(
        self,
        config: TrackerConfig | None = None,
        cone_angle: float = 40.0,
        max_distance: float = 600.0,
    ) -> None:
        self._config = config or TrackerConfig()
        self._history: deque[MotionSample] = deque()
        self._position: Point | None = None
        self._velocity = Point(0.0, 0.0)
        self._moving = False
        self.cone_angle = float(cone_angle)
        self.max_distance = float(max_distance)

    @property
    def config(self) -> TrackerConfig:
        return self._config

    @property
    def position(self) -> Point | None:
        return self._position

    @property
    def velocity(self) -> Point:
        return self._velocity

    @property
    def is_moving(self) -> bool:
        return self._moving

    def history(self) -> tuple[MotionSample, ...]:
        return tuple(self._history)

    def state(self) -> MotionState:
        return MotionState(
            position=self._position,
            velocity=self._velocity,
            is_moving=self._moving,
            sample_count=len(self._history),
        )

    def _prune(self, now: float) -> None:
        cutoff = now - self._config.history_window_ms
        while self._history and self._history[0].timestamp <= cutoff:
            self._history.popleft()

    def record(self, x: float, y: float, now: float | None = None) -> MotionSample:
        now_ms = now if now is not None else _now_ms()
        sample = MotionSample(x=float(x), y=float(y), timestamp=now_ms)
        self._history.append(sample)
        self._position = Point(sample.x, sample.y)
        self._prune(now_ms)
        return sample

    def tick(self, now: float | None = None) -> MotionState:
        now_ms = now if now is not None else _now_ms()
        self._prune(now_ms)
        self._compute_velocity()
        return self.state()

    def _compute_velocity(self) -> None:
        config = self._config
        if len(self._history) < config.min_samples:
            self._velocity = Point(0.0, 0.0)
            self._moving = False
            return

        recent = list(self._history)[-config.velocity_samples :]
        first, last = recent[0], recent[-1]
        dx = last.x - first.x
        dy = last.y - first.y
        span_s = (last.timestamp - first.timestamp) / 1000.0

        if math.hypot(dx, dy) < config.min_movement_px or span_s <= 0:
            # jitter inside the movement floor is not intent
            self._velocity = Point(0.0, 0.0)
            self._moving = False
            return

        self._velocity = Point(dx / span_s, dy / span_s)
        speed = math.hypot(self._velocity.x, self._velocity.y)
        was_moving = self._moving
        self._moving = speed > config.moving_speed_px_s
        if self._moving != was_moving:
            logger.debug("[MotionTracker] moving=%s speed=%.1fpx/s", self._moving, speed)

    def reset(self) -> None:
        self._history.clear()
        self._position = None
        self._velocity = Point(0.0, 0.0)
        self._moving = False

    def filter_by_trajectory(
        self,
        candidates: Iterable[Candidate],
        cone_angle: float | None = None,
        max_distance: float | None = None,
    ) -> list[Candidate]:
        """Keep candidates inside the cone ahead of the pointer.

        ``cone_angle`` is the full aperture in degrees, so a candidate
        survives when it lies within ``cone_angle / 2`` of the direction of
        travel and no further than ``max_distance``.
        """
        if not self._moving or not self._history or self._position is None:
            return []

        speed = math.hypot(self._velocity.x, self._velocity.y)
        if speed < self._config.min_direction_speed_px_s:
            return []

        aperture = self.cone_angle if cone_angle is None else float(cone_angle)
        reach = self.max_distance if max_distance is None else float(max_distance)
        dir_x = self._velocity.x / speed
        dir_y = self._velocity.y / speed
        min_alignment = math.cos(math.radians(aperture / 2.0))

        origin = self._position
        kept: list[Candidate] = []
        for candidate in candidates:
            to_x = candidate.center.x - origin.x
            to_y = candidate.center.y - origin.y
            distance = math.hypot(to_x, to_y)
            if distance == 0 or distance > reach:
                continue

            alignment = max(-1.0, min(1.0, (dir_x * to_x + dir_y * to_y) / distance))
            if alignment < min_alignment:
                continue
            kept.append(candidate.with_geometry(distance=distance, alignment=alignment))

        return kept

    def filter_by_proximity(self, candidates: Iterable[Candidate], radius: float) -> list[Candidate]:
        """Every candidate within *radius* of the last pointer sample.

        Empty until a sample arrives after construction or ``reset``.
        """
        origin = self._position
        if origin is None:
            return []
        kept: list[Candidate] = []
        for candidate in candidates:
            distance = origin.distance_to(candidate.center)
            if distance <= radius:
                kept.append(candidate.with_geometry(distance=distance, alignment=0.0))
        return kept
