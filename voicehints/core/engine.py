"""HintEngine: one synchronous prediction pipeline per session.

Each call runs to completion on a single snapshot of candidate geometry:

    raw candidates -> trajectory/proximity filter -> risk tagging
                   -> ranking + hysteresis -> selection controller

Side effects (painting badges, executing actions, persisting) are left to
the caller, which receives an ``EngineUpdate`` describing what changed.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from voicehints.core.metrics import MetricsLogger
from voicehints.core.models import Candidate, CommittedAction, RankedSet, RawCandidate, SelectionMethod
from voicehints.core.motion_tracker import MotionTracker, TrackerConfig
from voicehints.core.ranker import CandidateRanker, RankerConfig
from voicehints.core.risk import RiskClassifier
from voicehints.core.selection import (
    OutcomeKind,
    SelectionConfig,
    SelectionController,
    SelectionOutcome,
)
from voicehints.core.settings import HintSettings, PredictionMode
from voicehints.core.store import HintStore

logger = logging.getLogger("voicehints.engine")

STATUS_ACTIVE = "Hints Active"


class SpeechErrorCode(str, Enum):
    NOT_SUPPORTED = "not-supported"
    PERMISSION_DENIED = "permission-denied"
    NETWORK = "network"
    OTHER = "other"


@dataclass(frozen=True)
class SpeechEvent:
    transcript: str
    is_final: bool
    confidence: float = 1.0


@dataclass(frozen=True)
class SpeechError:
    code: SpeechErrorCode
    detail: str = ""


@dataclass(frozen=True)
class StatusUpdate:
    text: str
    listening: bool = False


# an expired confirmation is a cancellation; the second line says why
EXPIRED_STATUSES = (StatusUpdate("Cancelled"), StatusUpdate("Confirmation timed out"))


@dataclass(frozen=True)
class EngineUpdate:
    ranked_set: RankedSet
    changed: bool = False
    statuses: tuple[StatusUpdate, ...] = ()
    outcome: SelectionOutcome | None = None

    @property
    def action(self) -> CommittedAction | None:
        return self.outcome.action if self.outcome else None


def _now_ms() -> float:
    return time.monotonic() * 1000.0


class HintEngine:
    def __init__(
        self,
        settings: HintSettings | None = None,
        store: HintStore | None = None,
        tracker_config: TrackerConfig | None = None,
        ranker_config: RankerConfig | None = None,
        selection_config: SelectionConfig | None = None,
        metrics: MetricsLogger | None = None,
    ) -> None:
        self._settings = settings or HintSettings()
        self._tracker = MotionTracker(config=tracker_config)
        self._classifier = RiskClassifier()
        self._ranker = CandidateRanker(config=ranker_config, store=store)
        self._controller = SelectionController(config=selection_config)
        self._metrics = metrics or MetricsLogger()
        self._candidates: tuple[RawCandidate, ...] = ()
        self._enabled = True
        self._voice_available = True
        self._selection_started: float | None = None
        self.apply_settings(self._settings)

    # ── Accessors ──────────────────────────────

    @property
    def settings(self) -> HintSettings:
        return self._settings

    @property
    def tracker(self) -> MotionTracker:
        return self._tracker

    @property
    def classifier(self) -> RiskClassifier:
        return self._classifier

    @property
    def ranker(self) -> CandidateRanker:
        return self._ranker

    @property
    def controller(self) -> SelectionController:
        return self._controller

    @property
    def metrics(self) -> MetricsLogger:
        return self._metrics

    @property
    def ranked_set(self) -> RankedSet:
        return self._controller.ranked_set

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def voice_available(self) -> bool:
        return self._voice_available

    # ── Configuration ──────────────────────────

    def apply_settings(self, settings: HintSettings) -> None:
        self._settings = settings
        self._tracker.cone_angle = settings.cone_angle
        self._tracker.max_distance = settings.max_distance
        self._ranker.set_top_k(settings.top_k)
        self._ranker.set_hysteresis(settings.hysteresis_ms)
        self._classifier.enabled = settings.risk_confirmation
        logger.info("[Engine] Settings applied: %s", settings.to_dict())

    def set_enabled(self, enabled: bool, now: float | None = None) -> EngineUpdate:
        self._enabled = enabled
        if enabled:
            self._selection_started = now if now is not None else _now_ms()
            return EngineUpdate(ranked_set=self.ranked_set, statuses=(StatusUpdate(STATUS_ACTIVE),))

        self._controller.cancel(reason="disabled")
        self._tracker.reset()
        previous = self.ranked_set
        cleared = RankedSet(created_at=now if now is not None else _now_ms())
        self._controller.set_ranked_set(cleared)
        return EngineUpdate(ranked_set=cleared, changed=bool(previous))

    # ── Pipeline ───────────────────────────────

    def set_candidates(self, candidates: Iterable[RawCandidate]) -> None:
        self._candidates = tuple(candidates)

    def record_pointer(self, x: float, y: float, now: float | None = None) -> None:
        if not self._enabled:
            return
        self._tracker.record(x, y, now=now)
        self._metrics.update_pointer_distance(x, y)

    def _filter(self, candidates: list[Candidate]) -> list[Candidate]:
        if self._settings.prediction_mode == PredictionMode.PROXIMITY:
            return self._tracker.filter_by_proximity(candidates, self._settings.proximity_radius)
        return self._tracker.filter_by_trajectory(
            candidates,
            cone_angle=self._settings.cone_angle,
            max_distance=self._settings.max_distance,
        )

    def update(self, candidates: Iterable[RawCandidate] | None = None, now: float | None = None) -> EngineUpdate:
        now_ms = now if now is not None else _now_ms()
        if candidates is not None:
            self.set_candidates(candidates)
        if not self._enabled:
            return EngineUpdate(ranked_set=self.ranked_set)

        snapshot = [Candidate.from_raw(raw) for raw in self._candidates]
        nearby = self._filter(snapshot)
        tagged = self._classifier.tag(nearby)
        ranked = self._ranker.select_top_k(tagged, now=now_ms)

        previous = self._controller.ranked_set
        self._controller.set_ranked_set(ranked)
        return EngineUpdate(ranked_set=ranked, changed=not previous.same_selection(ranked))

    def tick(self, now: float | None = None) -> EngineUpdate:
        now_ms = now if now is not None else _now_ms()
        if not self._enabled:
            return EngineUpdate(ranked_set=self.ranked_set)

        self._tracker.tick(now=now_ms)
        expired = self._controller.poll(now=now_ms)
        result = self.update(now=now_ms)
        if expired is None:
            return result
        return EngineUpdate(
            ranked_set=result.ranked_set,
            changed=result.changed,
            statuses=EXPIRED_STATUSES,
            outcome=expired,
        )

    # ── Discrete input ─────────────────────────

    def handle_key(self, key: str, now: float | None = None) -> EngineUpdate:
        if not self._enabled or (not self.ranked_set and self._controller.pending is None):
            return EngineUpdate(ranked_set=self.ranked_set)
        now_ms = now if now is not None else _now_ms()
        outcome = self._controller.handle_key(key, now=now_ms)
        return self._finish(outcome, now_ms)

    def record_page_click(self, handle: str | None) -> bool:
        """Count a direct page click that missed every shown hint."""
        if not self._enabled or not self.ranked_set:
            return False
        if handle is not None and handle in self.ranked_set.handles():
            return False
        self._metrics.log_misclick()
        logger.debug("[Engine] Click outside predicted elements (%s)", handle)
        return True

    def handle_badge_click(self, ordinal: int, now: float | None = None) -> EngineUpdate:
        if not self._enabled:
            return EngineUpdate(ranked_set=self.ranked_set)
        now_ms = now if now is not None else _now_ms()
        outcome = self._controller.select(ordinal, now=now_ms, method=SelectionMethod.BADGE)
        return self._finish(outcome, now_ms)

    def handle_speech(self, event: SpeechEvent, now: float | None = None) -> EngineUpdate:
        if not self._enabled:
            return EngineUpdate(ranked_set=self.ranked_set)
        if not event.is_final:
            return EngineUpdate(
                ranked_set=self.ranked_set,
                statuses=(StatusUpdate(f'Heard: "{event.transcript}"', listening=True),),
            )

        now_ms = now if now is not None else _now_ms()
        outcome = self._controller.handle_transcript(event.transcript, now=now_ms)
        if not outcome.handled:
            return EngineUpdate(
                ranked_set=self.ranked_set,
                statuses=(StatusUpdate(f'Unknown command: "{event.transcript}"', listening=True),),
                outcome=outcome,
            )
        return self._finish(outcome, now_ms)

    def handle_speech_error(self, error: SpeechError) -> EngineUpdate:
        if error.code == SpeechErrorCode.NETWORK:
            logger.warning("[Engine] Speech network error, recognizer will retry: %s", error.detail)
            return EngineUpdate(ranked_set=self.ranked_set, statuses=(StatusUpdate("Voice reconnecting..."),))

        self._voice_available = False
        logger.warning("[Engine] Speech unavailable (%s): %s", error.code.value, error.detail)
        text = f"Voice unavailable ({error.code.value}); keyboard only"
        return EngineUpdate(ranked_set=self.ranked_set, statuses=(StatusUpdate(text),))

    def handle_speech_restored(self) -> EngineUpdate:
        self._voice_available = True
        return EngineUpdate(ranked_set=self.ranked_set, statuses=(StatusUpdate(STATUS_ACTIVE, listening=True),))

    # ── Outcome handling ───────────────────────

    def _finish(self, outcome: SelectionOutcome, now_ms: float) -> EngineUpdate:
        statuses: tuple[StatusUpdate, ...] = ()
        if outcome.kind == OutcomeKind.COMMITTED and outcome.action is not None:
            self._record_commit(outcome.action, now_ms)
            text = "Command executed" if outcome.action.method == SelectionMethod.VOICE else STATUS_ACTIVE
            statuses = (StatusUpdate(text),)
        elif outcome.kind == OutcomeKind.CONFIRMATION_REQUIRED:
            statuses = (StatusUpdate(f'Press {outcome.ordinal} again or say "confirm"'),)
        elif outcome.kind == OutcomeKind.CANCELLED:
            statuses = (StatusUpdate("Cancelled"),)
        elif outcome.kind == OutcomeKind.EXPIRED:
            statuses = EXPIRED_STATUSES
        return EngineUpdate(ranked_set=self.ranked_set, statuses=statuses, outcome=outcome)

    def _record_commit(self, action: CommittedAction, now_ms: float) -> None:
        started = self._selection_started
        elapsed = now_ms - started if started is not None else 0.0
        self._metrics.log_selection(action.candidate, action.method, elapsed)
        self._selection_started = now_ms
        self._ranker.learn_from_feedback(action.candidate, action.ranked_set.candidates)
