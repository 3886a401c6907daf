"""
Tests for activating committed candidates.
"""

import pytest

from voicehints.browser.action_executor import ActionExecutor, is_text_entry
from voicehints.core.models import Candidate, RawCandidate, Rect


def _candidate(tag="button", input_type="", handle="vh-1"):
    raw = RawCandidate(handle=handle, rect=Rect(0, 0, 50, 20), text="Go", element_type=tag, input_type=input_type)
    return Candidate.from_raw(raw)


class TestIsTextEntry:
    def test_text_like_controls(self):
        assert is_text_entry(_candidate("input", "text")) is True
        assert is_text_entry(_candidate("input", "")) is True
        assert is_text_entry(_candidate("input", "email")) is True
        assert is_text_entry(_candidate("textarea")) is True
        assert is_text_entry(_candidate("select")) is True

    def test_clickable_controls(self):
        assert is_text_entry(_candidate("button")) is False
        assert is_text_entry(_candidate("a")) is False
        assert is_text_entry(_candidate("input", "submit")) is False
        assert is_text_entry(_candidate("input", "checkbox")) is False


class TestActionExecutor:
    @pytest.mark.asyncio
    async def test_click_button(self, mock_page, mock_locator):
        executor = ActionExecutor(mock_page, timeout_ms=1234)

        result = await executor.execute(_candidate("button"))

        assert result.success is True
        assert result.action == "click"
        mock_page.locator.assert_called_once_with('[data-voicehints-id="vh-1"]')
        mock_locator.scroll_into_view_if_needed.assert_awaited_once_with(timeout=1234)
        mock_locator.click.assert_awaited_once_with(timeout=1234)
        mock_locator.focus.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_focus_text_input(self, mock_page, mock_locator):
        executor = ActionExecutor(mock_page)

        result = await executor.execute(_candidate("input", "search"))

        assert result.success is True
        assert result.action == "focus"
        mock_locator.focus.assert_awaited_once()
        mock_locator.click.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_target_fails_open(self, mock_page, mock_locator):
        mock_locator.count.return_value = 0
        executor = ActionExecutor(mock_page)

        result = await executor.execute(_candidate())

        assert result.success is False
        assert result.failure_code == "TARGET_MISSING"
        mock_locator.click.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_click_error_is_reported_not_raised(self, mock_page, mock_locator):
        mock_locator.click.side_effect = RuntimeError("Element is not attached to the DOM")
        executor = ActionExecutor(mock_page)

        result = await executor.execute(_candidate())

        assert result.success is False
        assert result.failure_code == "ACTION_EXECUTION_FAILED"
        assert "not attached" in result.detail

    def test_selector_escapes_quotes(self, mock_page):
        executor = ActionExecutor(mock_page)

        assert executor._selector(_candidate(handle='a"b')) == '[data-voicehints-id="a\\"b"]'
