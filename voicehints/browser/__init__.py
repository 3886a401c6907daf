"""Playwright-backed page collaborators for the hint engine."""

from voicehints.browser.action_executor import ActionExecutor
from voicehints.browser.candidate_source import PageCandidateSource
from voicehints.browser.overlay import OverlayRenderer
from voicehints.browser.page_bridge import BridgeHandlers, PageBridge
from voicehints.browser.session import HintSession, SessionConfig

__all__ = [
    "ActionExecutor",
    "BridgeHandlers",
    "HintSession",
    "OverlayRenderer",
    "PageBridge",
    "PageCandidateSource",
    "SessionConfig",
]
