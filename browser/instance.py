"""Browser session management for polyclaim.

Provides :class:`BrowserManager`, which launches ``Camoufox`` (a hardened
Firefox build driven through Playwright) as a *persistent* context bound to
a profile directory.  The profile directory is the only state shared between
claim runs: cookies and local storage from a manual wallet login live there
and are picked up by the next run.

Each run gets a fresh browser process through :meth:`BrowserManager.session`,
which guarantees every page and the browser itself are closed on every exit
path.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from browserforge.fingerprints import Screen
from camoufox.async_api import AsyncCamoufox
from playwright.async_api import BrowserContext, Page

logger = logging.getLogger(__name__)


class BrowserManager:
    """Owns the lifecycle of one persistent-profile browser session.

    Responsibilities:
        * Launching the Camoufox process against ``profile_dir``.
        * Handing out the single page a claim run works on.
        * Closing every open page, then the browser, on shutdown.

    Only one session may be open at a time; the profile directory is
    locked by the browser while it runs.
    """

    def __init__(
        self,
        profile_dir: str,
        headless: bool = False,
        timeout: int = 60000,
        viewport: Optional[Dict[str, int]] = None,
        extra_args: Optional[List[str]] = None,
    ) -> None:
        """Initialise the BrowserManager.

        Args:
            profile_dir: Persistent profile directory (created if missing).
            headless: Whether to run without a visible window.  Manual
                login requires ``False``.
            timeout: Default Playwright timeout in milliseconds.
            viewport: ``{"width": ..., "height": ...}`` for the page.
            extra_args: Additional browser command-line arguments.
        """
        self.profile_dir = profile_dir
        self.headless = headless
        self.timeout = timeout
        self.viewport = viewport or {"width": 1280, "height": 800}
        self.extra_args = extra_args or []
        self.camoufox: Optional[AsyncCamoufox] = None
        self.context: Optional[BrowserContext] = None

    @property
    def is_open(self) -> bool:
        return self.context is not None

    def _launch_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "headless": self.headless,
            "persistent_context": True,
            "user_data_dir": self.profile_dir,
            "humanize": True,
            "viewport": self.viewport,
        }
        if self.extra_args:
            kwargs["args"] = list(self.extra_args)
        # Headless auto-detection picks 1024x768, which has few
        # matching fingerprints
        if self.headless:
            kwargs["screen"] = Screen(max_width=1920, max_height=1080)
        return kwargs

    async def launch(self) -> "BrowserManager":
        """Launch the browser against the persistent profile.

        Returns:
            ``self`` for fluent chaining.

        Raises:
            RuntimeError: If a session is already open.
        """
        if self.is_open:
            raise RuntimeError("Browser session already open")

        os.makedirs(self.profile_dir, exist_ok=True)
        logger.info(
            "Launching Camoufox (Headless: %s, Profile: %s)...",
            self.headless, self.profile_dir,
        )
        self.camoufox = AsyncCamoufox(**self._launch_kwargs())
        try:
            self.context = await self.camoufox.__aenter__()
            self.context.set_default_timeout(self.timeout)
        except Exception:
            camoufox = self.camoufox
            self.camoufox = None
            self.context = None
            try:
                await camoufox.__aexit__(None, None, None)
            except Exception as e:
                logger.debug("Error exiting half-started browser: %s", e)
            raise
        return self

    async def new_page(self) -> Page:
        """Return the context's initial tab, or open one."""
        if not self.context:
            await self.launch()
        if self.context.pages:
            return self.context.pages[0]
        return await self.context.new_page()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Page]:
        """Open a browser session for one run and always tear it down.

        Usage::

            async with manager.session() as page:
                await page.goto(url)
        """
        await self.launch()
        try:
            yield await self.new_page()
        finally:
            await self.close()

    async def close(self) -> None:
        """Close every open page, then shut the browser down.

        Errors while closing are logged at debug level; the session is
        marked closed regardless so the next run can launch.
        """
        if not self.context:
            return

        try:
            for page in list(self.context.pages):
                try:
                    await page.close()
                except Exception as e:
                    logger.debug("Error closing page: %s", e)
            await self.camoufox.__aexit__(None, None, None)
        except Exception as e:
            logger.debug("Error during browser exit: %s", e)
        finally:
            self.context = None
            self.camoufox = None
            logger.info("Browser closed.")
