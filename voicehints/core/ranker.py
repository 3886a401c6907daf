"""CandidateRanker: weighted scoring, top-K selection and hysteresis.

Scoring features (normalised before weighting):
    alignment  cosine between travel direction and the candidate (-1..1)
    size       area / 10000, capped at 1.0 so huge elements do not dominate
    distance   1 / (1 + ln(1 + px)), a slow decay for far targets
    priority   element-kind ordinal / 10
    risk       flat penalty subtracted from risky candidates

The score of a candidate is a pure function of (candidate, weights) and is
recomputed on every call, never cached across weight changes.
"""

from __future__ import annotations

import logging
import math
import sqlite3
import time
from dataclasses import dataclass
from typing import Hashable, Sequence

from voicehints.core.models import (
    LEARNABLE_FEATURES,
    Candidate,
    RankedSet,
    WeightVector,
    clamp_weight,
)
from voicehints.core.store import HintStore

logger = logging.getLogger("voicehints.ranker")


@dataclass(frozen=True)
class RankerConfig:
    top_k: int = 6
    hysteresis_ms: float = 2000.0
    retain_score_ratio: float = 0.7
    retain_count_ratio: float = 0.5
    size_norm_px2: float = 10_000.0
    learning_rate: float = 0.1
    checkpoint_every: int = 5


def _now_ms() -> float:
    return time.monotonic() * 1000.0


class CandidateRanker:
    def __init__(
        self,
        config: RankerConfig | None = None,
        weights: WeightVector | None = None,
        store: HintStore | None = None,
    ) -> None:
        self._config = config or RankerConfig()
        self._store = store
        self._top_k = self._config.top_k
        self._hysteresis_ms = float(self._config.hysteresis_ms)
        self._feedback_count = 0

        stored = self._load_weights() if weights is None else None
        self._weights = (weights or stored or WeightVector()).clamped()
        self._current = RankedSet()

    # ── Configuration ──────────────────────────

    @property
    def top_k(self) -> int:
        return self._top_k

    def set_top_k(self, k: int) -> None:
        if k < 1:
            raise ValueError(f"top_k must be positive, got {k}")
        self._top_k = int(k)

    @property
    def hysteresis_ms(self) -> float:
        return self._hysteresis_ms

    def set_hysteresis(self, window_ms: float) -> None:
        self._hysteresis_ms = max(0.0, float(window_ms))

    @property
    def weights(self) -> WeightVector:
        return self._weights

    def update_weights(self, updates: dict[str, float]) -> WeightVector:
        self._weights = self._weights.merged(updates)
        return self._weights

    def reset_weights(self) -> WeightVector:
        self._weights = WeightVector()
        self._feedback_count = 0
        if self._store is not None:
            try:
                self._store.clear_weights()
            except (sqlite3.Error, OSError) as exc:
                logger.warning("[Ranker] Failed to clear stored weights: %s", exc)
        logger.info("[Ranker] Weights reset to defaults")
        return self._weights

    @property
    def current(self) -> RankedSet:
        return self._current

    # ── Scoring ────────────────────────────────

    def features(self, candidate: Candidate) -> dict[str, float]:
        """Normalised feature values used by both scoring and learning."""
        return {
            "alignment": candidate.alignment,
            "size": min(1.0, candidate.area / self._config.size_norm_px2),
            "distance": 1.0 / (1.0 + math.log1p(max(0.0, candidate.distance))),
            "priority": candidate.priority / 10.0,
        }

    def score(self, candidate: Candidate, weights: WeightVector | None = None) -> float:
        w = weights or self._weights
        feats = self.features(candidate)
        total = sum(w.get(name) * feats[name] for name in LEARNABLE_FEATURES)
        if candidate.is_risky:
            total -= w.risk
        return total

    def score_all(self, candidates: Sequence[Candidate]) -> list[Candidate]:
        return [candidate.with_score(self.score(candidate)) for candidate in candidates]

    # ── Selection ──────────────────────────────

    def select_top_k(self, candidates: Sequence[Candidate], now: float | None = None) -> RankedSet:
        """Rank *candidates* and return the new current set.

        When the previous set is younger than the hysteresis window, its
        members that still score above ``retain_score_ratio`` of the weakest
        fresh top-K score are kept in their previous order, provided at
        least ``retain_count_ratio * K`` of them survive.
        """
        now_ms = now if now is not None else _now_ms()
        if not candidates:
            self._current = RankedSet(created_at=now_ms)
            return self._current

        scored = self.score_all(candidates)
        scored.sort(key=lambda c: -c.score)
        fresh = tuple(scored[: self._top_k])

        result = RankedSet(candidates=fresh, created_at=now_ms)
        retained = self._retain(scored, fresh, now_ms)
        if retained is not None:
            result = RankedSet(candidates=retained, created_at=now_ms, retained=True)

        self._current = result
        return result

    def _retain(
        self,
        scored: list[Candidate],
        fresh: tuple[Candidate, ...],
        now_ms: float,
    ) -> tuple[Candidate, ...] | None:
        previous = self._current
        if not previous or (now_ms - previous.created_at) >= self._hysteresis_ms:
            return None

        min_score = self._config.retain_score_ratio * min(c.score for c in fresh)
        by_handle: dict[Hashable, Candidate] = {c.handle: c for c in scored}
        retained = [
            by_handle[handle]
            for handle in previous.handles()
            if handle in by_handle and by_handle[handle].score > min_score
        ][: self._top_k]

        if len(retained) >= self._top_k * self._config.retain_count_ratio:
            return tuple(retained)
        return None

    # ── Online learning ────────────────────────

    def learn_from_feedback(self, chosen: Candidate, candidates: Sequence[Candidate]) -> WeightVector:
        """Pairwise perceptron-style nudge toward the user's actual choice.

        No-op when the chosen candidate already ranked first. Risk is never
        learned here.
        """
        if not candidates:
            return self._weights

        scored = self.score_all(candidates)
        top = max(scored, key=lambda c: c.score)
        if top.handle == chosen.handle:
            return self._weights

        rate = self._config.learning_rate
        chosen_feats = self.features(chosen)
        top_feats = self.features(top)
        updated = self._weights.to_dict()
        for name in LEARNABLE_FEATURES:
            delta = chosen_feats[name] - top_feats[name]
            if delta > 0:
                updated[name] = clamp_weight(updated[name] + rate * delta)
            else:
                updated[name] = clamp_weight(updated[name] - 0.5 * rate * (-delta))

        self._weights = WeightVector(**updated).clamped()
        self._feedback_count += 1
        logger.info("[Ranker] Weights updated from feedback: %s", self._weights.to_dict())

        if self._feedback_count % self._config.checkpoint_every == 0:
            self.checkpoint()
        return self._weights

    # ── Persistence ────────────────────────────

    def _load_weights(self) -> WeightVector | None:
        if self._store is None:
            return None
        try:
            return self._store.load_weights()
        except (sqlite3.Error, OSError, ValueError) as exc:
            logger.warning("[Ranker] Could not load stored weights, using defaults: %s", exc)
            return None

    def checkpoint(self) -> bool:
        if self._store is None:
            return False
        try:
            self._store.save_weights(self._weights)
        except (sqlite3.Error, OSError) as exc:
            logger.warning("[Ranker] Weight checkpoint failed: %s", exc)
            return False
        logger.debug("[Ranker] Weights checkpointed")
        return True
