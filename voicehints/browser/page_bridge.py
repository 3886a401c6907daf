from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from playwright.async_api import Page

logger = logging.getLogger("voicehints.bridge")

BINDING_NAME = "__voicehintsEvent"

_LISTENER_SCRIPT = r"""
(() => {
  if (window.__voicehintsTeardown) return;
  const send = (kind, payload) => {
    if (typeof window.__voicehintsEvent === 'function') {
      window.__voicehintsEvent(kind, payload).catch(() => {});
    }
  };

  let lastMove = 0;
  const onMove = (event) => {
    const now = performance.now();
    if (now - lastMove < 16) return;
    lastMove = now;
    send('pointer', { x: event.clientX, y: event.clientY });
  };

  const onKey = (event) => {
    const key = event.key;
    const count = window.__voicehintsCount || 0;
    if (key >= '1' && key <= '9' && key.length === 1) {
      if (Number(key) <= count) event.preventDefault();
      send('key', { key });
    } else if (key === 'Enter' || key === 'Escape') {
      if (window.__voicehintsPending) event.preventDefault();
      send('key', { key });
    }
  };

  const onClick = (event) => {
    if (!event.isTrusted) return;
    const target = event.target && event.target.closest ? event.target : null;
    if (!target || target.closest('#voice-hints-overlay')) return;
    const owner = target.closest('[data-voicehints-id]');
    send('click', { handle: owner ? owner.getAttribute('data-voicehints-id') : null });
  };

  const onScroll = () => send('dom', {});

  let debounce = null;
  const observer = new MutationObserver((mutations) => {
    const external = mutations.some((m) => {
      const node = m.target && m.target.nodeType === 1 ? m.target : m.target && m.target.parentElement;
      return !(node && node.closest && node.closest('#voice-hints-overlay'));
    });
    if (!external) return;
    if (debounce) clearTimeout(debounce);
    debounce = setTimeout(() => send('dom', {}), 300);
  });

  const start = () => {
    document.addEventListener('mousemove', onMove, { passive: true });
    document.addEventListener('keydown', onKey, true);
    document.addEventListener('click', onClick, true);
    window.addEventListener('scroll', onScroll, { passive: true });
    if (document.body) {
      observer.observe(document.body, {
        childList: true, subtree: true, attributes: true,
        attributeFilter: ['style', 'class', 'hidden', 'disabled'],
      });
    }
  };

  window.__voicehintsTeardown = () => {
    document.removeEventListener('mousemove', onMove);
    document.removeEventListener('keydown', onKey, true);
    document.removeEventListener('click', onClick, true);
    window.removeEventListener('scroll', onScroll);
    observer.disconnect();
    if (debounce) clearTimeout(debounce);
    delete window.__voicehintsTeardown;
  };

  if (document.readyState === 'loading') {
    document.addEventListener('DOMContentLoaded', start, { once: true });
  } else {
    start();
  }
})();
"""

_TEARDOWN_SCRIPT = "() => { if (window.__voicehintsTeardown) window.__voicehintsTeardown(); }"


@dataclass
class BridgeHandlers:
    on_pointer: Callable[[float, float], Awaitable[None]]
    on_key: Callable[[str], Awaitable[None]]
    on_badge: Callable[[int], Awaitable[None]]
    on_dom_change: Callable[[], Awaitable[None]]
    on_click: Callable[[str | None], Awaitable[None]] | None = None


class PageBridge:
    """Routes pointer, keyboard, badge and DOM-change events out of the page."""

    def __init__(self, page: Page) -> None:
        self._page = page
        self._handlers: BridgeHandlers | None = None
        self._exposed = False

    @property
    def attached(self) -> bool:
        return self._handlers is not None

    async def attach(self, handlers: BridgeHandlers) -> None:
        self._handlers = handlers
        if not self._exposed:
            await self._page.expose_function(BINDING_NAME, self._dispatch)
            await self._page.add_init_script(_LISTENER_SCRIPT)
            self._exposed = True
        await self._page.evaluate(_LISTENER_SCRIPT)
        logger.info("[Bridge] Attached to page")

    async def detach(self) -> None:
        self._handlers = None
        try:
            await self._page.evaluate(_TEARDOWN_SCRIPT)
        except Exception as exc:
            logger.debug("[Bridge] Teardown skipped: %s", exc)
        logger.info("[Bridge] Detached from page")

    async def _dispatch(self, kind: str, payload: dict[str, Any] | None = None) -> None:
        handlers = self._handlers
        if handlers is None:
            return
        data = payload or {}
        try:
            if kind == "pointer":
                await handlers.on_pointer(float(data["x"]), float(data["y"]))
            elif kind == "key":
                await handlers.on_key(str(data["key"]))
            elif kind == "badge":
                await handlers.on_badge(int(data["ordinal"]))
            elif kind == "dom":
                await handlers.on_dom_change()
            elif kind == "click":
                if handlers.on_click is not None:
                    handle = data.get("handle")
                    await handlers.on_click(None if handle is None else str(handle))
            else:
                logger.debug("[Bridge] Ignoring unknown event kind %r", kind)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("[Bridge] Malformed %s event %r: %s", kind, payload, exc)
