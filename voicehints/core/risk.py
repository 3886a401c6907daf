from __future__ import annotations

import re
from dataclasses import dataclass

from voicehints.core.models import Candidate

RISKY_KEYWORDS: tuple[str, ...] = (
    # destructive
    "delete", "remove", "erase", "clear",
    # financial
    "pay", "purchase", "buy", "checkout", "check out", "confirm purchase", "place order",
    # irreversible
    "submit", "send", "post",
    # session
    "sign out", "sign-out", "signout", "log out", "log-out", "logout",
    # subscription
    "uninstall", "unsubscribe", "cancel subscription", "end membership",
)

RISKY_FORM_MARKERS: tuple[str, ...] = ("payment", "checkout", "delete")


def _keyword_pattern(keywords: tuple[str, ...]) -> re.Pattern[str]:
    # Anchored at a word start so "pay" matches "payment" but not "display".
    alternatives = sorted((re.escape(k) for k in keywords), key=len, reverse=True)
    return re.compile(r"\b(?:" + "|".join(alternatives) + ")", re.IGNORECASE)


@dataclass(frozen=True)
class RiskAssessment:
    risky: bool
    code: str
    detail: str = ""


class RiskClassifier:
    """Flags candidates whose activation is hard to undo.

    Stateless apart from the ``enabled`` switch, which mirrors the
    ``riskConfirmation`` setting.
    """

    def __init__(
        self,
        enabled: bool = True,
        keywords: tuple[str, ...] = RISKY_KEYWORDS,
        form_markers: tuple[str, ...] = RISKY_FORM_MARKERS,
    ) -> None:
        self.enabled = enabled
        self._pattern = _keyword_pattern(keywords)
        self._form_markers = tuple(marker.lower() for marker in form_markers)

    def _is_submit_control(self, candidate: Candidate) -> bool:
        if candidate.input_type.lower() == "submit":
            return True
        return candidate.element_type.lower() == "button" and candidate.in_form

    def assess(self, candidate: Candidate) -> RiskAssessment:
        if not self.enabled:
            return RiskAssessment(risky=False, code="RISK_DISABLED")

        for source, text in (
            ("text", candidate.text),
            ("aria_label", candidate.aria_label),
            ("title", candidate.title),
            ("value", candidate.value),
        ):
            match = self._pattern.search(text or "")
            if match:
                return RiskAssessment(
                    risky=True,
                    code="RISK_KEYWORD",
                    detail=f"{source} contains '{match.group(0).lower()}'",
                )

        if self._is_submit_control(candidate):
            form_action = candidate.form_action.lower()
            form_id = candidate.form_id.lower()
            for marker in self._form_markers:
                if marker in form_action or marker in form_id:
                    return RiskAssessment(
                        risky=True,
                        code="RISK_FORM_TARGET",
                        detail=f"submit control in form referencing '{marker}'",
                    )

        return RiskAssessment(risky=False, code="OK")

    def is_risky(self, candidate: Candidate) -> bool:
        return self.assess(candidate).risky

    def tag(self, candidates: list[Candidate]) -> list[Candidate]:
        return [candidate.with_risk(self.is_risky(candidate)) for candidate in candidates]
