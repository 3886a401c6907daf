from __future__ import annotations

import logging

from playwright.async_api import Page

from voicehints.core.models import RankedSet
from voicehints.core.settings import BadgeSize

logger = logging.getLogger("voicehints.overlay")

_BADGE_PX: dict[BadgeSize, int] = {
    BadgeSize.SMALL: 18,
    BadgeSize.MEDIUM: 24,
    BadgeSize.LARGE: 32,
    BadgeSize.XLARGE: 44,
}

_RENDER_SCRIPT = r"""
({ hints, badgePx, pending }) => {
  let host = document.getElementById('voice-hints-overlay');
  if (!host) {
    host = document.createElement('div');
    host.id = 'voice-hints-overlay';
    host.style.cssText = 'position:fixed;inset:0;pointer-events:none;z-index:2147483647;';
    const root = host.attachShadow({ mode: 'open' });
    root.innerHTML = `
      <style>
        .ring { position: fixed; border: 3px solid #2563eb; border-radius: 6px; box-sizing: border-box; }
        .ring.risky { border-color: #dc2626; border-style: dashed; }
        .badge { position: fixed; pointer-events: auto; cursor: pointer; border-radius: 50%;
                 background: #2563eb; color: #fff; font: bold 14px/1 sans-serif;
                 display: flex; align-items: center; justify-content: center;
                 box-shadow: 0 1px 4px rgba(0,0,0,.4); }
        .badge.risky { background: #dc2626; }
        .status { position: fixed; right: 12px; bottom: 12px; padding: 6px 10px; border-radius: 6px;
                  background: rgba(17,24,39,.85); color: #fff; font: 13px sans-serif; }
        .status.listening { background: rgba(22,101,52,.9); }
      </style>
      <div class="hints"></div>
      <div class="status">Hints Active</div>`;
    (document.body || document.documentElement).appendChild(host);
  }
  const container = host.shadowRoot.querySelector('.hints');
  container.textContent = '';
  hints.forEach((hint, index) => {
    const ordinal = index + 1;
    const ring = document.createElement('div');
    ring.className = 'ring' + (hint.risky ? ' risky' : '');
    Object.assign(ring.style, {
      left: hint.left + 'px', top: hint.top + 'px',
      width: hint.width + 'px', height: hint.height + 'px',
    });
    const badge = document.createElement('div');
    badge.className = 'badge' + (hint.risky ? ' risky' : '');
    badge.textContent = String(ordinal);
    Object.assign(badge.style, {
      left: Math.max(0, hint.left - badgePx / 2) + 'px',
      top: Math.max(0, hint.top - badgePx / 2) + 'px',
      width: badgePx + 'px', height: badgePx + 'px',
      fontSize: Math.round(badgePx * 0.55) + 'px',
    });
    badge.addEventListener('click', (event) => {
      event.preventDefault();
      event.stopPropagation();
      if (typeof window.__voicehintsEvent === 'function') {
        window.__voicehintsEvent('badge', { ordinal });
      }
    });
    container.appendChild(ring);
    container.appendChild(badge);
  });
  window.__voicehintsCount = hints.length;
  window.__voicehintsPending = pending;
}
"""

_STATUS_SCRIPT = r"""
({ text, listening }) => {
  const host = document.getElementById('voice-hints-overlay');
  if (!host) return;
  const status = host.shadowRoot.querySelector('.status');
  status.textContent = text;
  status.classList.toggle('listening', listening);
}
"""

_DESTROY_SCRIPT = r"""
() => {
  const host = document.getElementById('voice-hints-overlay');
  if (host) host.remove();
  window.__voicehintsCount = 0;
  window.__voicehintsPending = false;
}
"""


class OverlayRenderer:
    """Paints numbered badges over the current ranked set."""

    def __init__(self, page: Page, badge_size: BadgeSize = BadgeSize.MEDIUM) -> None:
        self._page = page
        self.badge_size = badge_size

    @staticmethod
    def payload(ranked: RankedSet, badge_size: BadgeSize, pending: bool = False) -> dict:
        return {
            "hints": [
                {
                    "left": c.rect.left,
                    "top": c.rect.top,
                    "width": c.rect.width,
                    "height": c.rect.height,
                    "risky": c.is_risky,
                }
                for c in ranked.candidates
            ],
            "badgePx": _BADGE_PX[badge_size],
            "pending": pending,
        }

    async def render(self, ranked: RankedSet, pending: bool = False) -> bool:
        try:
            await self._page.evaluate(_RENDER_SCRIPT, self.payload(ranked, self.badge_size, pending))
        except Exception as exc:
            logger.warning("[Overlay] Render failed: %s", exc)
            return False
        return True

    async def clear(self) -> bool:
        return await self.render(RankedSet())

    async def update_status(self, text: str, listening: bool = False) -> None:
        try:
            await self._page.evaluate(_STATUS_SCRIPT, {"text": text, "listening": listening})
        except Exception as exc:
            logger.debug("[Overlay] Status update skipped: %s", exc)

    async def destroy(self) -> None:
        try:
            await self._page.evaluate(_DESTROY_SCRIPT)
        except Exception as exc:
            logger.debug("[Overlay] Destroy skipped: %s", exc)
