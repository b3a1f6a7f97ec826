"""Confirmation-dialog handling after the banner claim click.

Clicking the banner button opens a dialog with its own "Claim proceeds"
button; confirming it starts an on-chain transaction whose dialog ends
with a "Done" button.  :class:`ModalSequencer` walks that flow as a
linear state machine::

    WAITING_FOR_MODAL -> SEARCHING_MODAL_CONFIRM -> WAITING_FOR_DONE
        -> REFRESHING -> COMPLETE

with two early exits: ``SKIPPED`` when no confirmation control shows up
(the banner click was enough) and ``INCOMPLETE`` when Done never appears.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from playwright.async_api import ElementHandle, Page

from claimer.dom import snapshot_controls
from claimer.matchers import (
    BUTTON_SELECTOR,
    MODAL_CONTAINER_SELECTOR,
    done_button,
    modal_confirm,
)
from core.config import ClaimerSettings

logger = logging.getLogger(__name__)


class ModalState(Enum):
    WAITING_FOR_MODAL = "waiting_for_modal"
    SEARCHING_MODAL_CONFIRM = "searching_modal_confirm"
    WAITING_FOR_DONE = "waiting_for_done"
    REFRESHING = "refreshing"
    COMPLETE = "complete"
    SKIPPED = "skipped"
    INCOMPLETE = "incomplete"


TERMINAL_STATES = frozenset({
    ModalState.COMPLETE,
    ModalState.SKIPPED,
    ModalState.INCOMPLETE,
})


@dataclass
class ModalOutcome:
    """Where the sequence stopped and what it clicked."""

    state: ModalState
    confirmed: bool = False
    done_clicked: bool = False
    refreshed: bool = False

    @property
    def timed_out(self) -> bool:
        return self.state is ModalState.INCOMPLETE


class ModalSequencer:
    """Drives the claim confirmation dialog to completion."""

    def __init__(self, settings: ClaimerSettings) -> None:
        self.settings = settings

    async def run(self, page: Page) -> ModalOutcome:
        """Run the sequence from WAITING_FOR_MODAL to a terminal state."""
        outcome = ModalOutcome(state=ModalState.WAITING_FOR_MODAL)
        while outcome.state not in TERMINAL_STATES:
            logger.debug(f"Modal sequence state: {outcome.state.value}")
            outcome.state = await self._step(page, outcome)
        return outcome

    async def _step(self, page: Page, outcome: ModalOutcome) -> ModalState:
        state = outcome.state

        if state is ModalState.WAITING_FOR_MODAL:
            logger.info("Waiting for claim dialog to appear...")
            await asyncio.sleep(self.settings.modal_settle_seconds)
            return ModalState.SEARCHING_MODAL_CONFIRM

        if state is ModalState.SEARCHING_MODAL_CONFIRM:
            handle = await self.find_modal_confirm(page)
            if handle is None:
                logger.info(
                    "No confirmation button in dialog; "
                    "treating the banner click as sufficient."
                )
                return ModalState.SKIPPED
            await handle.click()
            outcome.confirmed = True
            logger.info("✅ Clicked 'Claim proceeds' in dialog. Waiting for 'Done'...")
            return ModalState.WAITING_FOR_DONE

        if state is ModalState.WAITING_FOR_DONE:
            if await self.wait_for_done(page):
                outcome.done_clicked = True
                return ModalState.REFRESHING
            logger.warning(
                f"⚠️ 'Done' button did not appear within "
                f"{self.settings.done_timeout_seconds:.0f}s; "
                "the claim may still settle on-chain."
            )
            return ModalState.INCOMPLETE

        if state is ModalState.REFRESHING:
            await page.goto(
                self.settings.portfolio_url,
                wait_until="networkidle",
                timeout=self.settings.navigation_timeout_ms,
            )
            outcome.refreshed = True
            logger.info("🔄 Portfolio refreshed after claim.")
            return ModalState.COMPLETE

        raise ValueError(f"No transition from {state}")

    async def find_modal_confirm(self, page: Page) -> Optional[ElementHandle]:
        """Find the in-dialog confirmation control.

        Searches recognised dialog/modal/drawer/overlay containers first,
        then every button on the page.  A container that detaches mid-scan
        is skipped; the page-wide scan only runs while still on the
        portfolio.
        """
        try:
            containers = await page.query_selector_all(MODAL_CONTAINER_SELECTOR)
        except Exception as e:
            logger.debug(f"Dialog container query failed: {e}")
            containers = []

        for container in containers:
            try:
                controls = await snapshot_controls(container, BUTTON_SELECTOR)
            except Exception as e:
                # Dialog re-rendered after the banner click
                logger.debug(f"Dialog container scan failed: {e}")
                continue
            for handle, control in controls:
                if modal_confirm(control):
                    logger.info(f"Found dialog confirmation: '{control.text.strip()}'")
                    return handle

        if self.settings.portfolio_path_segment not in (page.url or ""):
            logger.warning(f"⚠️ Left the portfolio ({page.url}); skipping page-wide scan.")
            return None

        try:
            controls = await snapshot_controls(page, BUTTON_SELECTOR)
        except Exception as e:
            logger.debug(f"Page-wide confirmation scan failed: {e}")
            return None
        for handle, control in controls:
            if modal_confirm(control):
                logger.info(f"Found confirmation outside dialog: '{control.text.strip()}'")
                return handle
        return None

    async def wait_for_done(self, page: Page) -> bool:
        """Poll for a visible "Done" control and click it.

        Returns:
            ``True`` once clicked, ``False`` after ``done_timeout_seconds``.
        """
        s = self.settings
        deadline = time.monotonic() + s.done_timeout_seconds
        while time.monotonic() < deadline:
            await asyncio.sleep(s.done_poll_seconds)
            try:
                for handle, control in await snapshot_controls(page, BUTTON_SELECTOR):
                    if done_button(control):
                        await handle.click()
                        logger.info("✅ Clicked 'Done'.")
                        await asyncio.sleep(s.after_done_delay_seconds)
                        return True
            except Exception as e:
                # Dialog re-renders while the transaction is pending
                logger.debug(f"Done poll tick failed: {e}")
        return False
