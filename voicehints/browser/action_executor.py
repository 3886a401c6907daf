from __future__ import annotations

import logging

from playwright.async_api import Page

from voicehints.browser.candidate_source import HANDLE_ATTRIBUTE
from voicehints.core.models import Candidate, ExecutionResult

logger = logging.getLogger("voicehints.executor")

_TEXT_ENTRY_TAGS = frozenset({"textarea", "select"})
_NON_TEXT_INPUT_TYPES = frozenset(
    {"button", "submit", "reset", "checkbox", "radio", "image", "file", "color", "range"}
)


def is_text_entry(candidate: Candidate) -> bool:
    tag = candidate.element_type.lower()
    if tag in _TEXT_ENTRY_TAGS:
        return True
    return tag == "input" and candidate.input_type.lower() not in _NON_TEXT_INPUT_TYPES


class ActionExecutor:
    """Activates a committed candidate on the page.

    Never raises: a vanished or detached element comes back as a failed
    ``ExecutionResult`` so the caller can report it and move on.
    """

    def __init__(self, page: Page, timeout_ms: int = 5_000) -> None:
        self._page = page
        self._timeout_ms = timeout_ms

    def _selector(self, candidate: Candidate) -> str:
        handle = str(candidate.handle).replace('"', '\\"')
        return f'[{HANDLE_ATTRIBUTE}="{handle}"]'

    async def execute(self, candidate: Candidate) -> ExecutionResult:
        action = "focus" if is_text_entry(candidate) else "click"
        try:
            locator = self._page.locator(self._selector(candidate)).first
            if await locator.count() == 0:
                logger.warning("[Executor] Target %s no longer in the page", candidate.handle)
                return ExecutionResult(
                    handle=candidate.handle,
                    success=False,
                    action=action,
                    failure_code="TARGET_MISSING",
                    detail="element vanished before activation",
                )

            await locator.scroll_into_view_if_needed(timeout=self._timeout_ms)
            if action == "focus":
                await locator.focus(timeout=self._timeout_ms)
            else:
                await locator.click(timeout=self._timeout_ms)
        except Exception as exc:
            logger.warning("[Executor] %s on %s failed: %s", action, candidate.handle, exc)
            return ExecutionResult(
                handle=candidate.handle,
                success=False,
                action=action,
                failure_code="ACTION_EXECUTION_FAILED",
                detail=str(exc),
            )

        logger.info("[Executor] %s performed on %r", action, candidate.text[:50])
        return ExecutionResult(handle=candidate.handle, success=True, action=action)
