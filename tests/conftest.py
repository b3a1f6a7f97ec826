"""Shared fakes for the Playwright page handle."""

from typing import Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.config import ClaimerSettings

PORTFOLIO_URL = "https://polymarket.com/portfolio"


@pytest.fixture
def fast_settings():
    """Settings with every delay shrunk so sequences finish instantly."""
    return ClaimerSettings(
        post_load_delay_seconds=0,
        login_poll_seconds=0.01,
        login_timeout_seconds=0.1,
        login_reload_delay_seconds=0,
        click_settle_seconds=0,
        modal_settle_seconds=0,
        done_poll_seconds=0.01,
        done_timeout_seconds=0.1,
        after_done_delay_seconds=0,
        after_claim_delay_seconds=0,
        debug_screenshots=False,
    )


@pytest.fixture
def make_control():
    """Factory for element handles that snapshot as the given control."""
    def _make(
        text: str,
        visible: bool = True,
        disabled: bool = False,
        inside_link: bool = False,
    ) -> MagicMock:
        handle = MagicMock()
        handle.evaluate = AsyncMock(return_value={
            "text": text,
            "visible": visible,
            "disabled": disabled,
            "insideLink": inside_link,
        })
        handle.click = AsyncMock()
        handle.query_selector_all = AsyncMock(return_value=[])
        return handle
    return _make


@pytest.fixture
def make_page():
    """Factory for pages whose ``query_selector_all`` answers from a map."""
    def _make(
        selector_map: Dict[str, List[MagicMock]] = None,
        url: str = PORTFOLIO_URL,
    ) -> MagicMock:
        mapping = selector_map or {}
        page = MagicMock()
        page.url = url

        async def query_selector_all(selector):
            return list(mapping.get(selector, []))

        page.query_selector_all = AsyncMock(side_effect=query_selector_all)
        page.goto = AsyncMock()
        page.go_back = AsyncMock()
        page.evaluate = AsyncMock()
        page.screenshot = AsyncMock()
        return page
    return _make
