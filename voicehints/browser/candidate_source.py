from __future__ import annotations

import logging
from typing import Any

from playwright.async_api import Page

from voicehints.core.models import RawCandidate, Rect

logger = logging.getLogger("voicehints.candidates")

HANDLE_ATTRIBUTE = "data-voicehints-id"
MAX_CANDIDATES = 200

_DISCOVERY_SCRIPT = r"""
({ attr, maxCandidates }) => {
  const selector = [
    'button', 'a[href]', 'input:not([type="hidden"])', 'select', 'textarea',
    '[role="button"]', '[role="link"]', '[role="menuitem"]', '[role="tab"]',
    '[tabindex]:not([tabindex="-1"])', '[onclick]'
  ].join(',');

  const vw = Math.max(1, window.innerWidth || 1);
  const vh = Math.max(1, window.innerHeight || 1);
  window.__voicehintsSeq = window.__voicehintsSeq || 0;

  const priorityOf = (el, tag, role, type) => {
    if (tag === 'button' || role === 'button') return 10;
    if (tag === 'input' && type === 'submit') return 10;
    if (tag === 'a') return 9;
    if (role === 'menuitem' || role === 'tab') return 8;
    if (tag === 'input' || tag === 'select') return 7;
    return 5;
  };

  const out = [];
  for (const el of document.querySelectorAll(selector)) {
    if (out.length >= maxCandidates) break;
    if (el.closest('#voice-hints-overlay')) continue;

    const style = window.getComputedStyle(el);
    if (style.display === 'none' || style.visibility === 'hidden' || style.opacity === '0') continue;
    const rect = el.getBoundingClientRect();
    const onScreen = rect.width > 0 && rect.height > 0 &&
      rect.top < vh && rect.bottom > 0 && rect.left < vw && rect.right > 0;
    if (!onScreen) continue;

    const disabled = el.disabled || el.getAttribute('aria-disabled') === 'true' ||
      el.classList.contains('disabled');
    if (disabled) continue;

    // topmost element at the center must be el or inside it
    const hit = document.elementFromPoint(rect.left + rect.width / 2, rect.top + rect.height / 2);
    if (hit && hit !== el && !el.contains(hit) && !hit.closest('#voice-hints-overlay')) continue;

    let handle = el.getAttribute(attr);
    if (!handle) {
      window.__voicehintsSeq += 1;
      handle = 'vh-' + window.__voicehintsSeq;
      el.setAttribute(attr, handle);
    }

    const tag = (el.tagName || '').toLowerCase();
    const role = (el.getAttribute('role') || '').toLowerCase();
    const type = (el.getAttribute('type') || '').toLowerCase();
    const form = el.form || el.closest('form');
    out.push({
      handle,
      rect: [rect.left, rect.top, rect.width, rect.height],
      text: (el.textContent || '').replace(/\s+/g, ' ').trim().slice(0, 120) || el.getAttribute('aria-label') || '',
      priority: priorityOf(el, tag, role, type),
      tag,
      type,
      ariaLabel: el.getAttribute('aria-label') || '',
      title: el.getAttribute('title') || '',
      value: typeof el.value === 'string' ? el.value.slice(0, 80) : '',
      inForm: !!form,
      formAction: form ? (form.getAttribute('action') || '') : '',
      formId: form ? (form.id || '') : '',
    });
  }
  return out;
}
"""


def parse_candidate(item: dict[str, Any]) -> RawCandidate | None:
    try:
        left, top, width, height = (float(v) for v in item["rect"])
        handle = str(item["handle"])
    except (KeyError, TypeError, ValueError):
        return None
    return RawCandidate(
        handle=handle,
        rect=Rect(left=left, top=top, width=width, height=height),
        text=str(item.get("text") or ""),
        priority=int(item.get("priority") or 5),
        element_type=str(item.get("tag") or ""),
        input_type=str(item.get("type") or ""),
        aria_label=str(item.get("ariaLabel") or ""),
        title=str(item.get("title") or ""),
        value=str(item.get("value") or ""),
        in_form=bool(item.get("inForm", False)),
        form_action=str(item.get("formAction") or ""),
        form_id=str(item.get("formId") or ""),
    )


class PageCandidateSource:
    """Lists the visible, enabled, unobstructed interactive elements of a page."""

    def __init__(self, page: Page, max_candidates: int = MAX_CANDIDATES) -> None:
        self._page = page
        self._max = max_candidates

    async def discover(self) -> tuple[RawCandidate, ...]:
        try:
            raw = await self._page.evaluate(
                _DISCOVERY_SCRIPT,
                {"attr": HANDLE_ATTRIBUTE, "maxCandidates": self._max},
            )
        except Exception as exc:
            logger.warning("[Candidates] Discovery failed: %s", exc)
            return ()

        candidates: list[RawCandidate] = []
        for item in raw or []:
            parsed = parse_candidate(item)
            if parsed is not None:
                candidates.append(parsed)
        logger.debug("[Candidates] Discovered %d candidates", len(candidates))
        return tuple(candidates[: self._max])
