from __future__ import annotations

import json
import logging
import math
import sqlite3
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from voicehints.core.models import Candidate, SelectionMethod
from voicehints.core.store import HintStore

logger = logging.getLogger("voicehints.metrics")


@dataclass(frozen=True)
class SelectionRecord:
    timestamp: float
    element: str
    text: str
    method: str
    time_to_select_ms: float
    is_risky: bool


@dataclass
class SessionMetrics:
    selections: list[SelectionRecord] = field(default_factory=list)
    misclicks: int = 0
    voice_commands: int = 0
    keyboard_commands: int = 0
    badge_commands: int = 0
    total_pointer_distance: float = 0.0
    session_duration_ms: float = 0.0


class MetricsLogger:
    """Per-session usage counters for evaluating prediction quality."""

    def __init__(self, clock=time.time) -> None:
        self._clock = clock
        self._session_start = clock()
        self._metrics = SessionMetrics()
        self._last_position: tuple[float, float] | None = None

    def log_selection(self, candidate: Candidate, method: SelectionMethod, time_to_select_ms: float) -> None:
        self._metrics.selections.append(
            SelectionRecord(
                timestamp=self._clock(),
                element=candidate.element_type,
                text=candidate.text[:50],
                method=method.value,
                time_to_select_ms=time_to_select_ms,
                is_risky=candidate.is_risky,
            )
        )
        if method == SelectionMethod.VOICE:
            self._metrics.voice_commands += 1
        elif method == SelectionMethod.BADGE:
            self._metrics.badge_commands += 1
        else:
            self._metrics.keyboard_commands += 1

    def log_misclick(self) -> None:
        self._metrics.misclicks += 1

    def update_pointer_distance(self, x: float, y: float) -> None:
        if self._last_position is not None:
            last_x, last_y = self._last_position
            self._metrics.total_pointer_distance += math.hypot(x - last_x, y - last_y)
        self._last_position = (x, y)

    def snapshot(self) -> dict[str, Any]:
        self._metrics.session_duration_ms = (self._clock() - self._session_start) * 1000.0
        return {
            "selections": [record.__dict__ for record in self._metrics.selections],
            "misclicks": self._metrics.misclicks,
            "voice_commands": self._metrics.voice_commands,
            "keyboard_commands": self._metrics.keyboard_commands,
            "badge_commands": self._metrics.badge_commands,
            "total_pointer_distance": round(self._metrics.total_pointer_distance, 2),
            "session_duration_ms": round(self._metrics.session_duration_ms, 1),
        }

    def reset(self) -> None:
        self._session_start = self._clock()
        self._metrics = SessionMetrics()
        self._last_position = None


class MetricsSink:
    async def emit(self, snapshot: dict[str, Any]) -> None:
        raise NotImplementedError


class NullMetricsSink(MetricsSink):
    async def emit(self, snapshot: dict[str, Any]) -> None:
        return None


class JsonlMetricsSink(MetricsSink):
    def __init__(self, root_dir: str = "/tmp/voicehints-metrics") -> None:
        self._root = Path(root_dir)
        self._root.mkdir(parents=True, exist_ok=True)
        self._file = self._root / "sessions.jsonl"

    @property
    def path(self) -> Path:
        return self._file

    async def emit(self, snapshot: dict[str, Any]) -> None:
        payload = json.dumps(snapshot, sort_keys=True, separators=(",", ":"), ensure_ascii=True)
        with self._file.open("a", encoding="utf-8") as file_handle:
            file_handle.write(payload + "\n")


class StoreMetricsSink(MetricsSink):
    def __init__(self, store: HintStore) -> None:
        self._store = store

    async def emit(self, snapshot: dict[str, Any]) -> None:
        try:
            self._store.append_metrics(snapshot)
        except (sqlite3.Error, OSError) as exc:
            logger.warning("[Metrics] Failed to save session metrics: %s", exc)
