"""Application configuration for polyclaim.

Central configuration module powered by Pydantic v2.  Settings are loaded from
environment variables (with ``.env`` file support) and an optional
``config/claimer_config.json`` file.

Key exports:
    ClaimerSettings: Root settings model (instantiate once at startup).
    BASE_DIR / CONFIG_DIR / LOGS_DIR: Canonical project paths.
"""

# pylint: disable=no-member

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Base Paths
# ---------------------------------------------------------------------------
BASE_DIR: Path = Path(__file__).parent.parent
"""Project root directory (parent of ``core/``)."""

CONFIG_DIR: Path = BASE_DIR / "config"
"""Directory containing optional runtime overrides."""

LOGS_DIR: Path = BASE_DIR / "logs"
"""Directory for log output files and debug screenshots."""

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_CANDLE_CLOSE_MINUTES: List[int] = [4, 19, 34, 49]

# Pinned to the portfolio banner layout; expect to refresh these when the
# site ships a new build.
DEFAULT_CLAIM_SELECTORS: List[str] = [
    "#__pm_layout > div > div.fresnel-container"
    ".fresnel-greaterThanOrEqual-lg.fresnel-_r_18_.contents"
    " > div > div > div > button",
]
DEFAULT_CLAIM_XPATHS: List[str] = [
    '//*[@id="__pm_layout"]/div/div[3]/div/div/div/button',
]


def normalize_candle_minutes(value: List[int]) -> List[int]:
    """Reject out-of-range offsets and return them sorted and unique."""
    if not value:
        raise ValueError("candle_close_minutes must not be empty")
    for minute in value:
        if not 0 <= minute <= 59:
            raise ValueError(
                f"candle close minute out of range: {minute}"
            )
    return sorted(set(value))


class ClaimerSettings(BaseSettings):
    """Root configuration model for polyclaim.

    All fields can be set via environment variables or a ``.env`` file.
    The model also merges values from ``config/claimer_config.json``
    (browser overrides and selector lists) during post-init.

    Section overview:
        * **Core** -- log level, headless mode, navigation timeout.
        * **Site** -- portfolio URL and the path segment used to detect
          unintended navigation.
        * **Browser** -- persistent profile directory, viewport, extra
          launch arguments.
        * **Timing** -- settle delays, poll intervals and hard timeouts
          for the login wait and the Done button.
        * **Selectors** -- layout-pinned claim button selectors.
        * **Schedule** -- candle close minute offsets.
        * **Debug** -- screenshot capture.
    """

    # Core
    log_level: str = "INFO"
    # Manual login needs a visible window, so default to headed
    headless: bool = False
    # Navigation timeout in ms
    navigation_timeout_ms: int = 60000

    # Site
    portfolio_url: str = "https://polymarket.com/portfolio"
    # Must stay in page.url after a claim click, otherwise the click was
    # a link and we navigate back
    portfolio_path_segment: str = "/portfolio"

    # Browser
    profile_dir: str = str(BASE_DIR / "browser_profile")
    viewport_width: int = 1280
    viewport_height: int = 800
    browser_args: List[str] = Field(default_factory=list)

    # Timing (seconds)
    post_load_delay_seconds: float = 5.0
    login_poll_seconds: float = 3.0
    login_timeout_seconds: float = 300.0
    login_reload_delay_seconds: float = 3.0
    # Client-side routing can update page.url after click() resolves
    click_settle_seconds: float = 1.5
    modal_settle_seconds: float = 3.0
    done_poll_seconds: float = 2.0
    done_timeout_seconds: float = 120.0
    after_done_delay_seconds: float = 2.0
    after_claim_delay_seconds: float = 3.0

    # Selectors
    claim_selectors: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CLAIM_SELECTORS)
    )
    claim_xpaths: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CLAIM_XPATHS)
    )
    max_claim_text_length: int = 40

    # Schedule
    candle_close_minutes: List[int] = Field(
        default_factory=lambda: list(DEFAULT_CANDLE_CLOSE_MINUTES)
    )
    run_on_start: bool = True

    # Debug
    debug_screenshots: bool = False
    screenshot_dir: str = str(LOGS_DIR / "screenshots")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
    )

    @field_validator("candle_close_minutes")
    @classmethod
    def _validate_minutes(cls, value: List[int]) -> List[int]:
        return normalize_candle_minutes(value)

    def model_post_init(self, __context: Any) -> None:
        """Merge overrides from ``config/claimer_config.json``."""
        self._load_claimer_config_overrides()

    def _load_claimer_config_overrides(
        self, config_path: Optional[Path] = None,
    ) -> None:
        """Apply browser and selector overrides from a JSON file.

        Only keys present in the file are applied; unknown keys are
        logged and ignored.  Values are validated like any other field;
        an invalid value, or a corrupt file, is logged and skipped so a
        bad edit never stops the scheduler from starting.

        Args:
            config_path: Override file location (defaults to
                ``CONFIG_DIR / "claimer_config.json"``).
        """
        path: Path = config_path or CONFIG_DIR / "claimer_config.json"
        if not path.exists():
            return

        try:
            data: Dict[str, Any] = json.loads(
                path.read_text(encoding="utf-8")
            )
        except Exception as e:
            logger.warning(
                "Failed to read %s: %s", path, e,
            )
            return

        allowed = {
            "headless", "portfolio_url", "portfolio_path_segment",
            "profile_dir", "browser_args", "claim_selectors",
            "claim_xpaths", "candle_close_minutes",
            "debug_screenshots",
        }
        for key, value in data.items():
            if key not in allowed:
                logger.debug("Ignoring unknown config key: %s", key)
                continue
            try:
                setattr(self, key, value)
            except ValidationError as e:
                logger.warning(
                    "Invalid value for %s in %s, keeping current: %s",
                    key, path, e.errors()[0].get("msg"),
                )
        logger.debug("Loaded overrides from %s", path)
