"""Claim-button discovery on the portfolio view.

The portfolio page is full of controls that must not be clicked: market
cards that link away, share buttons, tab headers.  :class:`ClaimButtonLocator`
walks the ordered tiers from :func:`claimer.matchers.build_claim_rules`,
clicks the first match of the most precise tier, checks the click did not
leave the portfolio, and hands over to :class:`ModalSequencer`.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from playwright.async_api import ElementHandle, Page

from claimer.dom import snapshot_controls
from claimer.matchers import ControlSnapshot, MatchRule, build_claim_rules
from claimer.modal import ModalOutcome, ModalSequencer
from core.config import ClaimerSettings

logger = logging.getLogger(__name__)


@dataclass
class LocatorResult:
    """What the locator did on this run.

    Attributes:
        clicked: A claim-initiating control was clicked and the page
            stayed on the portfolio.
        navigated_away: The click left the portfolio (wrong control).
        rule: Name of the tier that produced the match.
        text: Trimmed text of the clicked control.
        modal: Result of the confirmation sequence, when it ran.
    """

    clicked: bool = False
    navigated_away: bool = False
    rule: Optional[str] = None
    text: str = ""
    modal: Optional[ModalOutcome] = None


class ClaimButtonLocator:
    """Finds and activates exactly one claim control per run."""

    def __init__(
        self,
        settings: ClaimerSettings,
        sequencer: Optional[ModalSequencer] = None,
        rules: Optional[List[MatchRule]] = None,
    ) -> None:
        self.settings = settings
        self.sequencer = sequencer or ModalSequencer(settings)
        self.rules = rules if rules is not None else build_claim_rules(
            settings.claim_selectors,
            settings.claim_xpaths,
            settings.max_claim_text_length,
        )

    async def find(
        self, page: Page,
    ) -> Optional[Tuple[MatchRule, ElementHandle, ControlSnapshot]]:
        """Return the first match of the highest-priority tier, if any.

        A selector that fails to evaluate (stale layout, bad XPath) is
        logged and the search moves on.
        """
        for rule in self.rules:
            for selector in rule.selectors:
                try:
                    controls = await snapshot_controls(page, selector)
                except Exception as e:
                    logger.debug(f"[{rule.name}] selector {selector!r} failed: {e}")
                    continue
                for handle, control in controls:
                    if rule.matches(control):
                        return rule, handle, control
        return None

    async def find_and_click(self, page: Page) -> LocatorResult:
        """Click the claim control and drive the confirmation dialog."""
        match = await self.find(page)
        if match is None:
            logger.info("No claim button found on this page.")
            return LocatorResult()

        rule, handle, control = match
        result = LocatorResult(rule=rule.name, text=control.text.strip())
        logger.info(f"Found claim button via {rule.name}: '{result.text}'")
        await handle.click()
        await asyncio.sleep(self.settings.click_settle_seconds)

        if not self.still_on_portfolio(page):
            logger.warning(
                f"⚠️ Claim click navigated away to {page.url}; going back."
            )
            result.navigated_away = True
            await self.recover_navigation(page)
            return result

        result.clicked = True
        logger.info("✅ Clicked claim button!")
        result.modal = await self.sequencer.run(page)
        return result

    def still_on_portfolio(self, page: Page) -> bool:
        return self.settings.portfolio_path_segment in (page.url or "")

    async def recover_navigation(self, page: Page) -> None:
        """Return to the portfolio after a wrong click."""
        s = self.settings
        try:
            await page.go_back(wait_until="networkidle", timeout=s.navigation_timeout_ms)
        except Exception as e:
            logger.debug(f"History back failed: {e}")
        if not self.still_on_portfolio(page):
            await page.goto(
                s.portfolio_url,
                wait_until="networkidle",
                timeout=s.navigation_timeout_ms,
            )
