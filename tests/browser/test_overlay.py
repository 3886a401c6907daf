"""
Tests for the badge overlay renderer.
"""

import pytest

from voicehints.browser.overlay import OverlayRenderer
from voicehints.core.models import Candidate, RankedSet, RawCandidate, Rect
from voicehints.core.settings import BadgeSize


def _ranked():
    safe = Candidate.from_raw(RawCandidate(handle="a", rect=Rect(10, 20, 30, 40)))
    risky = Candidate.from_raw(RawCandidate(handle="b", rect=Rect(100, 20, 30, 40))).with_risk(True)
    return RankedSet(candidates=(safe, risky))


class TestOverlayPayload:
    def test_payload_lists_hints_in_order(self):
        payload = OverlayRenderer.payload(_ranked(), BadgeSize.LARGE)

        assert [h["left"] for h in payload["hints"]] == [10, 100]
        assert [h["risky"] for h in payload["hints"]] == [False, True]
        assert payload["badgePx"] == 32
        assert payload["pending"] is False

    def test_badge_sizes_grow(self):
        sizes = [OverlayRenderer.payload(RankedSet(), size)["badgePx"] for size in BadgeSize]

        assert sizes == sorted(sizes)


class TestOverlayRenderer:
    @pytest.mark.asyncio
    async def test_render_evaluates_payload(self, mock_page):
        overlay = OverlayRenderer(mock_page, badge_size=BadgeSize.SMALL)

        assert await overlay.render(_ranked(), pending=True) is True

        payload = mock_page.evaluate.call_args.args[1]
        assert payload["pending"] is True
        assert payload["badgePx"] == 18
        assert len(payload["hints"]) == 2

    @pytest.mark.asyncio
    async def test_clear_renders_empty_set(self, mock_page):
        overlay = OverlayRenderer(mock_page)

        await overlay.clear()

        assert mock_page.evaluate.call_args.args[1]["hints"] == []

    @pytest.mark.asyncio
    async def test_render_failure_returns_false(self, mock_page):
        mock_page.evaluate.side_effect = RuntimeError("Target closed")
        overlay = OverlayRenderer(mock_page)

        assert await overlay.render(_ranked()) is False

    @pytest.mark.asyncio
    async def test_status_and_destroy_swallow_page_errors(self, mock_page):
        overlay = OverlayRenderer(mock_page)
        await overlay.update_status("Hints Active", listening=True)
        assert mock_page.evaluate.call_args.args[1] == {"text": "Hints Active", "listening": True}

        mock_page.evaluate.side_effect = RuntimeError("Target closed")
        await overlay.update_status("Cancelled")
        await overlay.destroy()
