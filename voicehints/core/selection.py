from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum

from voicehints.core.commands import CommandKind, parse_voice_command
from voicehints.core.models import (
    Candidate,
    CommittedAction,
    PendingConfirmation,
    RankedSet,
    SelectionMethod,
)

logger = logging.getLogger("voicehints.selection")


@dataclass(frozen=True)
class SelectionConfig:
    double_press_window_ms: float = 800.0
    confirmation_timeout_ms: float = 5000.0


class SelectionState(str, Enum):
    IDLE = "idle"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


class OutcomeKind(str, Enum):
    COMMITTED = "committed"
    CONFIRMATION_REQUIRED = "confirmation_required"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SelectionOutcome:
    kind: OutcomeKind
    state: SelectionState
    ordinal: int | None = None
    action: CommittedAction | None = None
    pending: PendingConfirmation | None = None
    reason: str = ""

    @property
    def handled(self) -> bool:
        return self.kind != OutcomeKind.REJECTED


def _now_ms() -> float:
    return time.monotonic() * 1000.0


class SelectionController:
    """Two-state selection machine guarding risky candidates.

    Idle + safe candidate commits at once. Idle + risky candidate parks a
    PendingConfirmation; a second press of the same ordinal inside the
    double-press window, or an explicit confirm before the confirmation
    timeout, commits it. Any other ordinal drops the pending entry and is
    evaluated from Idle. Timeouts are checked lazily on the next event or
    by ``poll``.
    """

    def __init__(self, config: SelectionConfig | None = None) -> None:
        self._config = config or SelectionConfig()
        self._ranked = RankedSet()
        self._pending: PendingConfirmation | None = None

    @property
    def state(self) -> SelectionState:
        if self._pending is None:
            return SelectionState.IDLE
        return SelectionState.AWAITING_CONFIRMATION

    @property
    def pending(self) -> PendingConfirmation | None:
        return self._pending

    @property
    def ranked_set(self) -> RankedSet:
        return self._ranked

    def set_ranked_set(self, ranked: RankedSet) -> None:
        self._ranked = ranked

    # ── Helpers ────────────────────────────────

    def _outcome(self, kind: OutcomeKind, **kwargs) -> SelectionOutcome:
        return SelectionOutcome(kind=kind, state=self.state, **kwargs)

    def _reject(self, reason: str, ordinal: int | None = None) -> SelectionOutcome:
        logger.debug("[Selection] Rejected: %s", reason)
        return self._outcome(OutcomeKind.REJECTED, ordinal=ordinal, reason=reason)

    def _expired(self, now_ms: float) -> bool:
        if self._pending is None:
            return False
        return (now_ms - self._pending.issued_at) > self._config.confirmation_timeout_ms

    def _commit(
        self,
        candidate: Candidate,
        ordinal: int,
        method: SelectionMethod,
        now_ms: float,
    ) -> SelectionOutcome:
        self._pending = None
        action = CommittedAction(
            candidate=candidate,
            ordinal=ordinal,
            method=method,
            committed_at=now_ms,
            ranked_set=self._ranked,
        )
        logger.info("[Selection] Committed #%d via %s: %r", ordinal, method.value, candidate.text[:50])
        return self._outcome(OutcomeKind.COMMITTED, ordinal=ordinal, action=action)

    # ── Events ─────────────────────────────────

    def select(
        self,
        ordinal: int,
        now: float | None = None,
        method: SelectionMethod = SelectionMethod.KEYBOARD,
    ) -> SelectionOutcome:
        now_ms = now if now is not None else _now_ms()
        candidate = self._ranked.at_ordinal(ordinal)
        if candidate is None:
            return self._reject(f"ordinal {ordinal} outside 1..{len(self._ranked)}", ordinal=ordinal)

        pending = self._pending
        if pending is not None:
            if self._expired(now_ms):
                logger.info("[Selection] Pending confirmation for #%d expired", pending.ordinal)
            elif (
                ordinal == pending.ordinal
                and (now_ms - pending.issued_at) <= self._config.double_press_window_ms
            ):
                return self._commit(pending.candidate, ordinal, method, now_ms)
            else:
                logger.info("[Selection] Pending confirmation for #%d replaced by #%d", pending.ordinal, ordinal)
            self._pending = None

        if not candidate.is_risky:
            return self._commit(candidate, ordinal, method, now_ms)

        self._pending = PendingConfirmation(candidate=candidate, ordinal=ordinal, issued_at=now_ms)
        logger.info("[Selection] Confirmation required for #%d: %r", ordinal, candidate.text[:50])
        return self._outcome(OutcomeKind.CONFIRMATION_REQUIRED, ordinal=ordinal, pending=self._pending)

    def confirm(
        self,
        now: float | None = None,
        method: SelectionMethod = SelectionMethod.KEYBOARD,
    ) -> SelectionOutcome:
        now_ms = now if now is not None else _now_ms()
        pending = self._pending
        if pending is None:
            return self._reject("nothing awaiting confirmation")
        if self._expired(now_ms):
            self._pending = None
            logger.info("[Selection] Confirm arrived after timeout for #%d", pending.ordinal)
            return self._outcome(OutcomeKind.EXPIRED, ordinal=pending.ordinal, reason="confirmation timed out")
        return self._commit(pending.candidate, pending.ordinal, method, now_ms)

    def cancel(self, reason: str = "cancelled") -> SelectionOutcome:
        pending = self._pending
        self._pending = None
        if pending is not None:
            logger.info("[Selection] Pending confirmation for #%d cancelled", pending.ordinal)
        return self._outcome(
            OutcomeKind.CANCELLED,
            ordinal=pending.ordinal if pending else None,
            reason=reason,
        )

    def poll(self, now: float | None = None) -> SelectionOutcome | None:
        """Expire a stale pending confirmation; ``None`` when nothing changed."""
        now_ms = now if now is not None else _now_ms()
        if not self._expired(now_ms):
            return None
        pending = self._pending
        self._pending = None
        logger.info("[Selection] Pending confirmation for #%d timed out", pending.ordinal)
        return self._outcome(OutcomeKind.EXPIRED, ordinal=pending.ordinal, reason="confirmation timed out")

    def handle_key(self, key: str, now: float | None = None) -> SelectionOutcome:
        if len(key) == 1 and "1" <= key <= "9":
            return self.select(int(key), now=now, method=SelectionMethod.KEYBOARD)
        if key == "Enter" and self._pending is not None:
            return self.confirm(now=now, method=SelectionMethod.KEYBOARD)
        if key == "Escape" and self._pending is not None:
            return self.cancel()
        return self._reject(f"unbound key {key!r}")

    def handle_transcript(self, transcript: str, now: float | None = None) -> SelectionOutcome:
        command = parse_voice_command(transcript)

        if command.kind == CommandKind.CANCEL:
            return self.cancel()
        if command.kind == CommandKind.CONFIRM:
            if self._pending is None:
                return self._reject("confirm without a pending selection")
            return self.confirm(now=now, method=SelectionMethod.VOICE)
        if command.kind == CommandKind.SELECT and command.ordinal is not None:
            return self.select(command.ordinal, now=now, method=SelectionMethod.VOICE)
        return self._reject(f"unrecognised command {transcript!r}")
