"""
Tests for HintSession wiring between a page and the engine.
"""

import asyncio
import sqlite3
from unittest.mock import AsyncMock, MagicMock

import pytest

from voicehints.browser.session import HintSession
from voicehints.core.engine import SpeechError, SpeechErrorCode, SpeechEvent
from voicehints.core.models import ExecutionResult
from voicehints.core.settings import BadgeSize, HintSettings
from voicehints.core.store import HintStore


def _item(handle, x, y, text="Open"):
    return {"handle": handle, "rect": [x - 10, y - 10, 20, 20], "text": text, "priority": 9, "tag": "a"}


async def _primed_session(page, items, store=None):
    """Attach, sweep the pointer right to (180, 300) and run one tick."""
    page.evaluate.return_value = items
    session = HintSession(store=store)
    await session.attach(page)
    for i in range(10):
        session.engine.record_pointer(i * 20.0, 300.0, now=i * 50.0)
    await session.step(now=450.0)
    return session


class TestHintSession:
    @pytest.mark.asyncio
    async def test_attach_wires_bridge(self, mock_page):
        session = HintSession()

        await session.attach(mock_page)

        assert session.page is mock_page
        mock_page.expose_function.assert_awaited_once()
        assert session.engine.enabled is True

    def test_corrupted_stored_settings_do_not_block_start(self, tmp_path):
        store = HintStore(str(tmp_path / "store.db"))
        store._put("settings", {"badgeSize": "huge", "topK": "six", "coneAngle": 60})

        session = HintSession(store=store)

        assert session.engine.settings.top_k == HintSettings().top_k
        assert session.engine.settings.badge_size == HintSettings().badge_size
        assert session.engine.settings.cone_angle == 60

    def test_unreadable_store_falls_back_to_defaults(self):
        store = MagicMock()
        store.load_settings.side_effect = sqlite3.OperationalError("database is locked")
        store.load_weights.return_value = None

        session = HintSession(store=store)

        assert session.engine.settings == HintSettings()

    @pytest.mark.asyncio
    async def test_step_discovers_and_renders(self, mock_page):
        session = await _primed_session(mock_page, [_item("vh-1", 400, 300), _item("vh-2", 0, 300)])

        assert session.engine.ranked_set.handles() == ("vh-1",)
        render_payloads = [
            call.args[1] for call in mock_page.evaluate.call_args_list if len(call.args) > 1 and "hints" in call.args[1]
        ]
        assert render_payloads[-1]["hints"][0]["left"] == 390

    @pytest.mark.asyncio
    async def test_candidates_rediscovered_only_when_dirty(self, mock_page):
        session = await _primed_session(mock_page, [_item("vh-1", 400, 300)])
        session._source = MagicMock()
        session._source.discover = AsyncMock(return_value=())

        await session.step(now=460.0)
        session._source.discover.assert_not_awaited()

        await session._on_dom_change()
        await session.step(now=470.0)
        session._source.discover.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_key_executes_committed_action(self, mock_page, mock_locator):
        session = await _primed_session(mock_page, [_item("vh-1", 400, 300)])

        update = await session.key("1")

        assert update.action.candidate.handle == "vh-1"
        mock_locator.click.assert_awaited_once()
        assert session.last_execution.success is True

    @pytest.mark.asyncio
    async def test_risky_key_waits_for_confirmation(self, mock_page, mock_locator):
        session = await _primed_session(mock_page, [_item("vh-1", 400, 300, text="Delete")])

        await session.key("1")
        mock_locator.click.assert_not_awaited()

        await session.key("Enter")
        mock_locator.click.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_execution_is_reported(self, mock_page):
        session = await _primed_session(mock_page, [_item("vh-1", 400, 300)])
        session._executor = MagicMock()
        session._executor.execute = AsyncMock(
            return_value=ExecutionResult(handle="vh-1", success=False, action="click", failure_code="TARGET_MISSING")
        )

        await session.badge_click(1)

        assert session.last_execution.failure_code == "TARGET_MISSING"
        statuses = [call.args[1] for call in mock_page.evaluate.call_args_list if len(call.args) > 1 and "text" in call.args[1]]
        assert statuses[-1]["text"] == "Could not activate #1"

    @pytest.mark.asyncio
    async def test_voice_selection(self, mock_page, mock_locator):
        session = await _primed_session(mock_page, [_item("vh-1", 400, 300)])

        await session.speech(SpeechEvent(transcript="one", is_final=True))

        mock_locator.click.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_speech_error_updates_status(self, mock_page):
        session = await _primed_session(mock_page, [])

        await session.speech_error(SpeechError(code=SpeechErrorCode.NOT_SUPPORTED))

        assert session.engine.voice_available is False

    @pytest.mark.asyncio
    async def test_disable_persists_and_clears(self, mock_page, tmp_path):
        store = HintStore(str(tmp_path / "store.db"))
        session = await _primed_session(mock_page, [_item("vh-1", 400, 300)], store=store)

        await session.set_enabled(False)

        assert store.get_enabled() is False
        assert len(session.engine.ranked_set) == 0

    @pytest.mark.asyncio
    async def test_apply_settings_persists_and_rerenders(self, mock_page, tmp_path):
        store = HintStore(str(tmp_path / "store.db"))
        session = await _primed_session(mock_page, [_item("vh-1", 400, 300)], store=store)

        await session.apply_settings(HintSettings(top_k=2, badge_size=BadgeSize.XLARGE))

        assert store.load_settings().top_k == 2
        assert session._overlay.badge_size == BadgeSize.XLARGE
        assert mock_page.evaluate.call_args.args[1]["badgePx"] == 44

    @pytest.mark.asyncio
    async def test_close_flushes_metrics_and_settings(self, mock_page, tmp_path):
        store = HintStore(str(tmp_path / "store.db"))
        sink = MagicMock()
        sink.emit = AsyncMock()
        session = HintSession(store=store, metrics_sink=sink)
        await session.attach(mock_page)

        await session.close()

        sink.emit.assert_awaited_once()
        assert "selections" in sink.emit.call_args.args[0]
        assert store.load_settings() == session.engine.settings
        assert store.load_weights() is not None

    @pytest.mark.asyncio
    async def test_run_stops_on_event(self, mock_page):
        session = HintSession()
        await session.attach(mock_page)
        stop = asyncio.Event()
        stop.set()

        await asyncio.wait_for(session.run(stop), timeout=1.0)

    @pytest.mark.asyncio
    async def test_navigate_requires_page(self):
        session = HintSession()

        with pytest.raises(RuntimeError):
            await session.navigate("https://example.com")
