"""Run outcome and error taxonomy for polyclaim.

Defines the :class:`RunOutcome` dataclass returned by every claim-check
run and the :class:`ErrorType` enum used to classify why a run ended
early.  Nothing here is persisted between runs.
"""

import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from playwright.async_api import Page

from core.config import ClaimerSettings

logger = logging.getLogger(__name__)


class ErrorType(Enum):
    """Classification of why a run ended early.

    None of these stop the scheduler; they only decide what is logged.

    - TRANSIENT: Playwright timeout (slow load, stale handle); next run retries
    - WRONG_NAVIGATION: Claim click landed on a link and left the portfolio
    - LOGIN_TIMEOUT: Manual login wait exceeded its bound
    - DONE_TIMEOUT: Done button never appeared after confirming the claim
    - UNKNOWN: Anything else, caught at the orchestrator boundary
    """
    TRANSIENT = "transient"
    WRONG_NAVIGATION = "wrong_navigation"
    LOGIN_TIMEOUT = "login_timeout"
    DONE_TIMEOUT = "done_timeout"
    UNKNOWN = "unknown"


@dataclass
class RunOutcome:
    """Outcome of a single claim-check run.

    Attributes:
        logged_in: Whether the session was authenticated (immediately or
            after the manual-login wait).
        claim_attempted: Whether a claim-initiating control was clicked.
        claim_confirmed: Whether the in-modal confirmation was clicked.
        navigated_away: Whether the claim click left the portfolio view.
        done_clicked: Whether the terminal Done button was clicked.
        refreshed: Whether the portfolio was reloaded after Done.
        status: Human-readable summary for the log line.
        error_type: Set when the run ended early.
    """

    logged_in: bool = False
    claim_attempted: bool = False
    claim_confirmed: bool = False
    navigated_away: bool = False
    done_clicked: bool = False
    refreshed: bool = False
    status: str = "Not started"
    error_type: Optional[ErrorType] = None

    @property
    def completed(self) -> bool:
        """True when the run finished without an error classification."""
        return self.error_type is None


async def capture_debug_screenshot(
    page: Page,
    label: str,
    settings: ClaimerSettings,
) -> Optional[str]:
    """Save a full-page screenshot when debug screenshots are enabled.

    Args:
        page: Page to capture.
        label: Short tag included in the file name.
        settings: Provides ``debug_screenshots`` and ``screenshot_dir``.

    Returns:
        The written path, or ``None`` when disabled or the capture failed.
    """
    if not settings.debug_screenshots:
        return None

    path = os.path.join(
        settings.screenshot_dir, f"{label}_{int(time.time())}.png",
    )
    try:
        os.makedirs(settings.screenshot_dir, exist_ok=True)
        await page.screenshot(path=path, full_page=True)
        logger.info(f"📸 Screenshot saved: {path}")
        return path
    except Exception as e:
        logger.debug(f"Screenshot '{label}' failed: {e}")
        return None
