"""
polyclaim - Main Entry Point

Opens the portfolio in a persistent-profile browser, claims any settled
proceeds, and repeats at every candle close (:04, :19, :34, :49 by default).

Usage:
    python main.py              # Run now, then at every candle close
    python main.py --once       # Single claim check, then exit
    python main.py --headless   # No browser window (requires an existing login)
"""
from dotenv import load_dotenv

# Load environment variables from .env file into os.environ
load_dotenv()

import asyncio
import argparse
import logging
import signal
import sys

from browser.instance import BrowserManager
from core.config import ClaimerSettings
from core.logging_setup import setup_logging
from core.orchestrator import ClaimCheckOrchestrator
from core.scheduler import CandleScheduler

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="polyclaim - candle-aligned auto-claimer")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--visible", action="store_true", help="Show browser")
    mode.add_argument("--headless", action="store_true", help="Hide browser")
    parser.add_argument("--once", action="store_true", help="Run a single claim check and exit")
    parser.add_argument("--log-level", type=str, help="Override LOG_LEVEL (e.g. DEBUG)")
    return parser.parse_args(argv)


def build_orchestrator(settings: ClaimerSettings) -> ClaimCheckOrchestrator:
    browser_manager = BrowserManager(
        profile_dir=settings.profile_dir,
        headless=settings.headless,
        timeout=settings.navigation_timeout_ms,
        viewport={"width": settings.viewport_width, "height": settings.viewport_height},
        extra_args=settings.browser_args,
    )
    return ClaimCheckOrchestrator(settings, browser_manager)


async def main(argv=None) -> None:
    """
    Main execution loop.

    1. Parses command line arguments and loads settings.
    2. Configures logging.
    3. Builds the orchestrator (browser session provider + claim logic).
    4. Runs once, or hands the orchestrator to the candle scheduler until
       SIGTERM / Ctrl+C.
    """
    args = parse_args(argv)

    settings = ClaimerSettings()
    if args.visible:
        settings.headless = False
    elif args.headless:
        settings.headless = True
    if args.log_level:
        settings.log_level = args.log_level

    setup_logging(settings.log_level)

    minutes = ", ".join(f":{m:02d}" for m in settings.candle_close_minutes)
    logger.info("=" * 54)
    logger.info(" Polymarket Auto-Claimer")
    logger.info(f" Checking at candle closes: {minutes}")
    logger.info(f" Using persistent browser profile: {settings.profile_dir}")
    logger.info("=" * 54)

    orchestrator = build_orchestrator(settings)

    if args.once:
        await orchestrator.run_claim_check()
        return

    scheduler = CandleScheduler(
        orchestrator.run_claim_check,
        settings.candle_close_minutes,
        run_on_start=settings.run_on_start,
    )

    def handle_sigterm():
        logger.info("🛑 Received SIGTERM. Stopping after the current run...")
        scheduler.stop()

    loop = asyncio.get_running_loop()
    if sys.platform != "win32":
        loop.add_signal_handler(signal.SIGTERM, handle_sigterm)

    try:
        await scheduler.run_forever()
    except KeyboardInterrupt:
        logger.info("👋 Stopping (KeyboardInterrupt)...")
    finally:
        logger.info("🧹 Cleaning up resources...")
        await orchestrator.browser_manager.close()


def run() -> None:
    """Console-script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
