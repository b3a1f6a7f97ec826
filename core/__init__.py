"""
Core module for polyclaim.

This package contains configuration, logging, run orchestration and the
candle-aligned scheduler.

Submodules:
    config: Application settings (``ClaimerSettings``) via Pydantic.
    logging_setup: Compressed rotating file + safe console logging.
    orchestrator: ``ClaimCheckOrchestrator`` running one claim check end to end.
    scheduler: ``next_fire_time`` and the ``CandleScheduler`` driver.
"""
