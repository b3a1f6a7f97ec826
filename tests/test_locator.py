"""
Tests for ClaimButtonLocator tiered search and wrong-click recovery.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from claimer.locator import ClaimButtonLocator
from claimer.matchers import BUTTON_SELECTOR
from claimer.modal import ModalOutcome, ModalState
from core.config import DEFAULT_CLAIM_SELECTORS, DEFAULT_CLAIM_XPATHS

PINNED_CSS = DEFAULT_CLAIM_SELECTORS[0]
PINNED_XPATH = f"xpath={DEFAULT_CLAIM_XPATHS[0]}"


@pytest.fixture
def sequencer():
    seq = MagicMock()
    seq.run = AsyncMock(return_value=ModalOutcome(state=ModalState.SKIPPED))
    return seq


@pytest.fixture
def locator(fast_settings, sequencer):
    return ClaimButtonLocator(fast_settings, sequencer=sequencer)


@pytest.mark.asyncio
async def test_selects_claim_amount_button(locator, sequencer, make_page, make_control):
    deposit = make_control("Deposit")
    claim = make_control("Claim $12.50")
    page = make_page({BUTTON_SELECTOR: [deposit, claim]})

    result = await locator.find_and_click(page)

    assert result.clicked is True
    assert result.rule == "broad_scan"
    assert result.text == "Claim $12.50"
    claim.click.assert_awaited_once()
    deposit.click.assert_not_called()
    sequencer.run.assert_awaited_once_with(page)
    assert result.modal.state is ModalState.SKIPPED


@pytest.mark.asyncio
async def test_claim_inside_link_never_clicked(locator, sequencer, make_page, make_control):
    linked = make_control("Claim", inside_link=True)
    page = make_page({BUTTON_SELECTOR: [linked]})

    result = await locator.find_and_click(page)

    assert result.clicked is False
    assert result.rule is None
    linked.click.assert_not_called()
    sequencer.run.assert_not_called()


@pytest.mark.asyncio
async def test_long_claim_text_excluded(locator, make_page, make_control):
    card = make_control("Will the SEC claim jurisdiction over prediction markets in 2026?")
    page = make_page({BUTTON_SELECTOR: [card]})

    result = await locator.find_and_click(page)

    assert result.clicked is False
    card.click.assert_not_called()


@pytest.mark.asyncio
async def test_invisible_claim_skipped(locator, make_page, make_control):
    hidden = make_control("Claim", visible=False)
    shown = make_control("Claim all")
    page = make_page({BUTTON_SELECTOR: [hidden, shown]})

    result = await locator.find_and_click(page)

    hidden.click.assert_not_called()
    shown.click.assert_awaited_once()
    assert result.text == "Claim all"


@pytest.mark.asyncio
async def test_pinned_selector_preferred(locator, make_page, make_control):
    pinned = make_control("Claim")
    broad = make_control("Claim all")
    page = make_page({PINNED_CSS: [pinned], BUTTON_SELECTOR: [broad]})

    result = await locator.find_and_click(page)

    assert result.rule == "pinned_css"
    pinned.click.assert_awaited_once()
    broad.click.assert_not_called()


@pytest.mark.asyncio
async def test_pinned_xpath_used_when_css_misses(locator, make_page, make_control):
    pinned = make_control("Claim winnings")
    page = make_page({PINNED_CSS: [make_control("Share")], PINNED_XPATH: [pinned]})

    result = await locator.find_and_click(page)

    assert result.rule == "pinned_xpath"
    pinned.click.assert_awaited_once()


@pytest.mark.asyncio
async def test_broken_selector_does_not_stop_search(locator, make_page, make_control):
    claim = make_control("Claim")
    page = make_page({BUTTON_SELECTOR: [claim]})
    original = page.query_selector_all.side_effect

    async def flaky(selector):
        if selector == PINNED_XPATH:
            raise Exception("SyntaxError: invalid xpath")
        return await original(selector)

    page.query_selector_all.side_effect = flaky

    result = await locator.find_and_click(page)

    assert result.rule == "broad_scan"
    claim.click.assert_awaited_once()


@pytest.mark.asyncio
async def test_substring_fallback_only_when_nothing_stricter(locator, make_page, make_control):
    loose = make_control("Claim rewards")
    page = make_page({BUTTON_SELECTOR: [loose]})

    result = await locator.find_and_click(page)

    assert result.rule == "substring_fallback"
    loose.click.assert_awaited_once()


@pytest.mark.asyncio
async def test_strict_beats_fallback_regardless_of_order(locator, make_page, make_control):
    loose = make_control("Claim rewards")
    strict = make_control("Claim")
    page = make_page({BUTTON_SELECTOR: [loose, strict]})

    result = await locator.find_and_click(page)

    assert result.rule == "broad_scan"
    strict.click.assert_awaited_once()
    loose.click.assert_not_called()


@pytest.mark.asyncio
async def test_wrong_click_navigates_back(locator, sequencer, fast_settings, make_page, make_control):
    claim = make_control("Claim")
    page = make_page({BUTTON_SELECTOR: [claim]})

    async def leave_portfolio(*args, **kwargs):
        page.url = "https://polymarket.com/event/some-market"

    claim.click.side_effect = leave_portfolio

    result = await locator.find_and_click(page)

    assert result.clicked is False
    assert result.navigated_away is True
    page.go_back.assert_awaited_once()
    # go_back left us off the portfolio, so the canonical URL is loaded
    page.goto.assert_awaited_once()
    assert page.goto.call_args[0][0] == fast_settings.portfolio_url
    sequencer.run.assert_not_called()


@pytest.mark.asyncio
async def test_wrong_click_back_succeeds(locator, make_page, make_control):
    claim = make_control("Claim")
    page = make_page({BUTTON_SELECTOR: [claim]})

    async def leave_portfolio(*args, **kwargs):
        page.url = "https://polymarket.com/event/some-market"

    async def back(*args, **kwargs):
        page.url = "https://polymarket.com/portfolio?tab=positions"

    claim.click.side_effect = leave_portfolio
    page.go_back.side_effect = back

    result = await locator.find_and_click(page)

    assert result.navigated_away is True
    page.goto.assert_not_called()


@pytest.mark.asyncio
async def test_no_controls(locator, make_page):
    result = await locator.find_and_click(make_page())
    assert result.clicked is False
    assert result.navigated_away is False


@pytest.mark.asyncio
async def test_late_route_change_detected(locator, sequencer, fast_settings, make_page, make_control):
    """URL updated by the client router after click() resolves."""
    claim = make_control("Claim")
    page = make_page({BUTTON_SELECTOR: [claim]})
    fast_settings.click_settle_seconds = 0.05

    async def route_later():
        await asyncio.sleep(0.01)
        page.url = "https://polymarket.com/event/some-market"

    async def click(*args, **kwargs):
        asyncio.ensure_future(route_later())

    claim.click.side_effect = click

    result = await locator.find_and_click(page)

    assert result.navigated_away is True
    assert result.clicked is False
    sequencer.run.assert_not_called()
