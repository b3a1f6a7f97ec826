"""Claim-check orchestration for polyclaim.

One call to :meth:`ClaimCheckOrchestrator.run_claim_check` is one complete
run:

1. Open a browser session on the persistent profile.
2. Load the portfolio, wait for the network to settle, then a fixed delay.
3. Ask the :class:`LoginOracle`; if logged out, wait for a manual login.
4. Let the :class:`ClaimButtonLocator` click the claim button and walk the
   confirmation dialog.
5. Close every page and the browser, whatever happened.

A run never raises: every failure ends up as a :class:`RunOutcome` with an
:class:`ErrorType`, so the scheduler keeps going after a bad page state.
"""

import asyncio
import logging
import time
from typing import Optional

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from browser.instance import BrowserManager
from claimer.base import ErrorType, RunOutcome, capture_debug_screenshot
from claimer.locator import ClaimButtonLocator
from claimer.login import LoginOracle
from core.config import ClaimerSettings

logger = logging.getLogger(__name__)


class ClaimCheckOrchestrator:
    """Runs one end-to-end claim check per call."""

    def __init__(
        self,
        settings: ClaimerSettings,
        browser_manager: BrowserManager,
        oracle: Optional[LoginOracle] = None,
        locator: Optional[ClaimButtonLocator] = None,
    ) -> None:
        self.settings = settings
        self.browser_manager = browser_manager
        self.oracle = oracle or LoginOracle(settings)
        self.locator = locator or ClaimButtonLocator(settings)

    async def run_claim_check(self) -> RunOutcome:
        """Run one claim check and return its outcome.  Never raises."""
        outcome = RunOutcome(status="Started")
        started = time.time()
        logger.info(f"[LIFECYCLE] claim_check_start | timestamp={started:.0f}")

        try:
            async with self.browser_manager.session() as page:
                try:
                    await self._run(page, outcome)
                except Exception as e:
                    self._record_failure(outcome, e)
                    await capture_debug_screenshot(page, "error", self.settings)
        except Exception as e:
            # Launch or teardown failure
            self._record_failure(outcome, e)

        error_type = outcome.error_type.value if outcome.error_type else "none"
        logger.info(
            f"[LIFECYCLE] claim_check_end"
            f" | status={outcome.status}"
            f" | logged_in={outcome.logged_in}"
            f" | claim_attempted={outcome.claim_attempted}"
            f" | claim_confirmed={outcome.claim_confirmed}"
            f" | navigated_away={outcome.navigated_away}"
            f" | error_type={error_type}"
            f" | success={outcome.completed}"
            f" | duration={time.time() - started:.1f}s"
        )
        return outcome

    async def _run(self, page: Page, outcome: RunOutcome) -> None:
        s = self.settings
        await page.goto(
            s.portfolio_url,
            wait_until="networkidle",
            timeout=s.navigation_timeout_ms,
        )
        await asyncio.sleep(s.post_load_delay_seconds)
        await capture_debug_screenshot(page, "portfolio_loaded", s)

        logged_in = await self.oracle.is_logged_in(page)
        logger.debug(f"Login status: {logged_in}")
        if not logged_in:
            logged_in = await self.oracle.wait_for_login(page)
        if not logged_in:
            outcome.status = "Login timed out"
            outcome.error_type = ErrorType.LOGIN_TIMEOUT
            await capture_debug_screenshot(page, "login_timeout", s)
            return

        outcome.logged_in = True
        logger.info("Session valid, checking for claim buttons...")

        result = await self.locator.find_and_click(page)
        outcome.claim_attempted = result.clicked or result.navigated_away
        outcome.navigated_away = result.navigated_away

        if result.navigated_away:
            outcome.status = "Wrong click, navigated away"
            outcome.error_type = ErrorType.WRONG_NAVIGATION
            await capture_debug_screenshot(page, "wrong_click", s)
            return
        if not result.clicked:
            outcome.status = "Nothing to claim"
            return

        modal = result.modal
        if modal is not None:
            outcome.claim_confirmed = modal.confirmed
            outcome.done_clicked = modal.done_clicked
            outcome.refreshed = modal.refreshed
            if modal.timed_out:
                outcome.status = "Done button timed out"
                outcome.error_type = ErrorType.DONE_TIMEOUT
                await capture_debug_screenshot(page, "done_timeout", s)
                return

        outcome.status = "Claimed"
        logger.info(f"💰 Claim completed via '{result.text}'.")
        # Let the balance widgets finish updating
        await asyncio.sleep(s.after_claim_delay_seconds)

    @staticmethod
    def _record_failure(outcome: RunOutcome, error: Exception) -> None:
        logger.error(f"❌ Claim check failed: {error}", exc_info=True)
        outcome.status = f"Error: {error}"
        if isinstance(error, PlaywrightTimeoutError):
            outcome.error_type = ErrorType.TRANSIENT
        else:
            outcome.error_type = ErrorType.UNKNOWN
