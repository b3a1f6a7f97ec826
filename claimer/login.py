"""Login-state detection for the portfolio page.

The site never exposes an explicit "logged in" flag, so the session state
is inferred from page signals:

* A visible header/nav control reading ``Log In``, ``Sign In``,
  ``Sign Up`` or ``Connect Wallet`` means *not* logged in, whatever else
  the page shows.
* Otherwise any one of the portfolio totals, an avatar, a
  deposit/withdraw control, or the Positions/History tabs means logged in.

:class:`LoginSignals` holds the raw observations and
:func:`is_authenticated` applies the rule, so the rule is testable
without a browser.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List

from playwright.async_api import Page

from claimer.matchers import is_login_prompt_text
from core.config import ClaimerSettings

logger = logging.getLogger(__name__)

SIGNALS_JS = """
() => {
    const isVisible = (el) => {
        const style = window.getComputedStyle(el);
        const rect = el.getBoundingClientRect();
        return style.display !== 'none' && style.visibility !== 'hidden'
            && rect.width > 0 && rect.height > 0;
    };
    const headerControls = Array.from(document.querySelectorAll(
        'header button, nav button, [class*="header" i] button, [class*="nav" i] button'
    )).filter(isVisible);
    const hasAvatar = document.querySelector(
        'img[alt*="avatar" i], img[alt*="profile" i], [class*="avatar" i], [class*="profile" i]'
    ) !== null;
    return {
        bodyText: document.body ? document.body.innerText : '',
        hasAvatar: hasAvatar,
        controlTexts: Array.from(document.querySelectorAll('button')).map(b => b.textContent || ''),
        headerControlTexts: headerControls.map(b => b.textContent || ''),
    };
}
"""

PORTFOLIO_MARKERS = ("Portfolio Value", "Available Balance")
TAB_MARKERS = ("Positions", "History")
ACCOUNT_ACTION_WORDS = ("deposit", "withdraw")


@dataclass
class LoginSignals:
    """Raw login observations read from the page."""

    body_text: str = ""
    has_avatar: bool = False
    control_texts: List[str] = field(default_factory=list)
    header_control_texts: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "LoginSignals":
        return cls(
            body_text=data.get("bodyText") or "",
            has_avatar=bool(data.get("hasAvatar")),
            control_texts=list(data.get("controlTexts") or []),
            header_control_texts=list(data.get("headerControlTexts") or []),
        )

    @property
    def has_login_prompt(self) -> bool:
        return any(is_login_prompt_text(t) for t in self.header_control_texts)

    @property
    def has_portfolio_value(self) -> bool:
        return any(marker in self.body_text for marker in PORTFOLIO_MARKERS)

    @property
    def has_account_actions(self) -> bool:
        return any(
            word in text.lower()
            for text in self.control_texts
            for word in ACCOUNT_ACTION_WORDS
        )

    @property
    def has_positions(self) -> bool:
        return any(marker in self.body_text for marker in TAB_MARKERS)


def is_authenticated(signals: LoginSignals) -> bool:
    """Apply the login rule to *signals*.

    A header login prompt always wins; otherwise any positive signal is
    enough.
    """
    if signals.has_login_prompt:
        return False
    return (
        signals.has_portfolio_value
        or signals.has_avatar
        or signals.has_account_actions
        or signals.has_positions
    )


class LoginOracle:
    """Observes login state on a live page and waits for manual login."""

    def __init__(self, settings: ClaimerSettings) -> None:
        self.settings = settings

    async def read_signals(self, page: Page) -> LoginSignals:
        return LoginSignals.from_dict(await page.evaluate(SIGNALS_JS))

    async def is_logged_in(self, page: Page) -> bool:
        """Return the current login state.  Read-only."""
        return is_authenticated(await self.read_signals(page))

    async def wait_for_login(self, page: Page) -> bool:
        """Poll until the user logs in through the browser window.

        Sleeps ``login_poll_seconds`` between checks for at most
        ``login_timeout_seconds``.  A check that raises (the page is
        mid-navigation during the wallet flow) triggers a reload of the
        portfolio URL and polling continues.

        Returns:
            ``True`` once a check succeeds, ``False`` on timeout.
        """
        s = self.settings
        logger.info(
            "🔐 Not logged in. Please log in via the browser window "
            f"(waiting up to {s.login_timeout_seconds:.0f}s)..."
        )
        deadline = time.monotonic() + s.login_timeout_seconds
        while time.monotonic() < deadline:
            await asyncio.sleep(s.login_poll_seconds)
            try:
                if await self.is_logged_in(page):
                    logger.info("✅ Login detected!")
                    return True
            except Exception as e:
                logger.debug(f"Login check failed mid-navigation: {e}")
                try:
                    await page.goto(
                        s.portfolio_url,
                        wait_until="networkidle",
                        timeout=s.navigation_timeout_ms,
                    )
                    await asyncio.sleep(s.login_reload_delay_seconds)
                except Exception as reload_error:
                    logger.debug(f"Portfolio reload failed: {reload_error}")

        logger.warning(
            f"⏱️ Login timed out after {s.login_timeout_seconds:.0f}s."
        )
        return False
