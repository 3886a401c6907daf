from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def mock_locator():
    """Locator stand-in that resolves to exactly one element."""
    locator = MagicMock()
    locator.count = AsyncMock(return_value=1)
    locator.scroll_into_view_if_needed = AsyncMock()
    locator.click = AsyncMock()
    locator.focus = AsyncMock()
    return locator


@pytest.fixture
def mock_page(mock_locator):
    """Playwright page stand-in with async evaluate and one locator."""
    page = MagicMock()
    page.evaluate = AsyncMock(return_value=[])
    page.expose_function = AsyncMock()
    page.add_init_script = AsyncMock()
    page.goto = AsyncMock()
    page.locator = MagicMock(return_value=MagicMock(first=mock_locator))
    return page
