from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright

from voicehints.browser.action_executor import ActionExecutor
from voicehints.browser.candidate_source import MAX_CANDIDATES, PageCandidateSource
from voicehints.browser.overlay import OverlayRenderer
from voicehints.browser.page_bridge import BridgeHandlers, PageBridge
from voicehints.core.engine import EngineUpdate, HintEngine, SpeechError, SpeechEvent
from voicehints.core.metrics import MetricsSink, NullMetricsSink
from voicehints.core.models import ExecutionResult
from voicehints.core.selection import SelectionState
from voicehints.core.settings import HintSettings
from voicehints.core.store import HintStore

logger = logging.getLogger("voicehints.session")


@dataclass(frozen=True)
class SessionConfig:
    headless: bool = False
    viewport_width: int = 1440
    viewport_height: int = 900
    default_timeout_ms: int = 20_000
    action_timeout_ms: int = 5_000
    max_candidates: int = MAX_CANDIDATES


def _now_ms() -> float:
    return time.monotonic() * 1000.0


class HintSession:
    """Wires one browser page to one HintEngine.

    The engine stays synchronous; this class owns the async edges: page
    events in, overlay paints and element activations out, and the
    fixed-cadence tick loop.
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        store: HintStore | None = None,
        metrics_sink: MetricsSink | None = None,
        engine: HintEngine | None = None,
    ) -> None:
        self._config = config or SessionConfig()
        self._store = store
        self._sink = metrics_sink or NullMetricsSink()
        self._engine = engine or HintEngine(settings=self._load_settings(), store=store)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._page: Optional[Page] = None
        self._source: PageCandidateSource | None = None
        self._bridge: PageBridge | None = None
        self._overlay: OverlayRenderer | None = None
        self._executor: ActionExecutor | None = None
        self._candidates_dirty = True
        self._lock = asyncio.Lock()
        self.last_execution: ExecutionResult | None = None

    def _load_settings(self) -> HintSettings:
        if self._store is None:
            return HintSettings()
        try:
            return self._store.load_settings()
        except (sqlite3.Error, OSError, ValueError) as exc:
            logger.warning("[Session] Could not load stored settings, using defaults: %s", exc)
            return HintSettings()

    @property
    def engine(self) -> HintEngine:
        return self._engine

    @property
    def page(self) -> Page | None:
        return self._page

    # ── Lifecycle ──────────────────────────────

    async def start(self, url: str | None = None) -> Page:
        if self._browser is None:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self._config.headless)
        context = await self._browser.new_context(
            viewport={"width": self._config.viewport_width, "height": self._config.viewport_height},
        )
        context.set_default_timeout(self._config.default_timeout_ms)
        page = await context.new_page()
        await self.attach(page)
        if url:
            await self.navigate(url)
        logger.info("[Session] Browser started")
        return page

    async def attach(self, page: Page) -> None:
        self._page = page
        self._source = PageCandidateSource(page, max_candidates=self._config.max_candidates)
        self._overlay = OverlayRenderer(page, badge_size=self._engine.settings.badge_size)
        self._executor = ActionExecutor(page, timeout_ms=self._config.action_timeout_ms)
        self._bridge = PageBridge(page)
        await self._bridge.attach(
            BridgeHandlers(
                on_pointer=self._on_pointer,
                on_key=self.key,
                on_badge=self.badge_click,
                on_dom_change=self._on_dom_change,
                on_click=self._on_click,
            )
        )
        self._candidates_dirty = True
        self._engine.set_enabled(self._store.get_enabled() if self._store else True, now=_now_ms())

    async def navigate(self, url: str) -> None:
        if self._page is None:
            raise RuntimeError("Session not attached to a page")
        await self._page.goto(url, wait_until="domcontentloaded")
        self._candidates_dirty = True

    async def close(self) -> None:
        await self._sink.emit(self._engine.metrics.snapshot())
        self._engine.ranker.checkpoint()
        if self._store:
            self._store.save_settings(self._engine.settings)
        if self._bridge:
            await self._bridge.detach()
        if self._overlay:
            await self._overlay.destroy()
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        logger.info("[Session] Closed")

    # ── Tick loop ──────────────────────────────

    async def refresh_candidates(self) -> int:
        if self._source is None:
            return 0
        candidates = await self._source.discover()
        self._engine.set_candidates(candidates)
        self._candidates_dirty = False
        return len(candidates)

    async def step(self, now: float | None = None) -> EngineUpdate:
        async with self._lock:
            if self._candidates_dirty:
                await self.refresh_candidates()
            update = self._engine.tick(now=now if now is not None else _now_ms())
        await self._apply(update)
        return update

    async def run(self, stop: asyncio.Event) -> None:
        logger.info("[Session] Tick loop started")
        while not stop.is_set():
            await self.step()
            interval_s = self._engine.settings.tick_interval_ms / 1000.0
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval_s)
            except asyncio.TimeoutError:
                continue
        logger.info("[Session] Tick loop stopped")

    # ── Inputs ─────────────────────────────────

    async def _on_pointer(self, x: float, y: float) -> None:
        self._engine.record_pointer(x, y, now=_now_ms())

    async def _on_dom_change(self) -> None:
        self._candidates_dirty = True

    async def _on_click(self, handle: str | None) -> None:
        self._engine.record_page_click(handle)

    async def key(self, key: str) -> EngineUpdate:
        update = self._engine.handle_key(key, now=_now_ms())
        await self._apply(update)
        return update

    async def badge_click(self, ordinal: int) -> EngineUpdate:
        update = self._engine.handle_badge_click(ordinal, now=_now_ms())
        await self._apply(update)
        return update

    async def speech(self, event: SpeechEvent) -> EngineUpdate:
        update = self._engine.handle_speech(event, now=_now_ms())
        await self._apply(update)
        return update

    async def speech_error(self, error: SpeechError) -> EngineUpdate:
        update = self._engine.handle_speech_error(error)
        await self._apply(update)
        return update

    async def set_enabled(self, enabled: bool) -> EngineUpdate:
        update = self._engine.set_enabled(enabled, now=_now_ms())
        if self._store:
            self._store.set_enabled(enabled)
        if enabled:
            self._candidates_dirty = True
        elif self._overlay:
            await self._overlay.destroy()
            return update
        await self._apply(update)
        return update

    async def apply_settings(self, settings: HintSettings) -> None:
        self._engine.apply_settings(settings)
        if self._overlay:
            self._overlay.badge_size = settings.badge_size
            await self._overlay.render(self._engine.ranked_set, pending=self._pending())
        if self._store:
            self._store.save_settings(settings)

    async def reset_weights(self) -> None:
        self._engine.ranker.reset_weights()

    # ── Outputs ────────────────────────────────

    def _pending(self) -> bool:
        return self._engine.controller.state == SelectionState.AWAITING_CONFIRMATION

    async def _apply(self, update: EngineUpdate) -> None:
        if self._overlay is not None:
            if update.changed or update.outcome is not None:
                await self._overlay.render(update.ranked_set, pending=self._pending())
            for status in update.statuses:
                await self._overlay.update_status(status.text, status.listening)

        action = update.action
        if action is not None and self._executor is not None:
            self.last_execution = await self._executor.execute(action.candidate)
            if not self.last_execution.success and self._overlay is not None:
                await self._overlay.update_status(f"Could not activate #{action.ordinal}")
            self._candidates_dirty = True
