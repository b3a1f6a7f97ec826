"""
Claimer module for polyclaim.

Page-level logic for one claim-check run on the portfolio view:
detecting the login state, picking the claim button out of a page full of
other controls, and walking the confirmation dialog.

Submodules:
    base: ``RunOutcome`` dataclass, ``ErrorType`` enum, debug screenshots.
    matchers: ``ControlSnapshot`` and the ordered ``MatchRule`` tiers.
    dom: In-page probes producing ``ControlSnapshot`` values.
    login: ``LoginSignals``, ``is_authenticated`` and ``LoginOracle``.
    locator: ``ClaimButtonLocator`` tiered search with URL-drift recovery.
    modal: ``ModalSequencer`` confirmation-dialog state machine.
"""

from .base import ErrorType, RunOutcome
from .locator import ClaimButtonLocator, LocatorResult
from .login import LoginOracle, LoginSignals, is_authenticated
from .modal import ModalOutcome, ModalSequencer, ModalState

__all__ = [
    "ErrorType",
    "RunOutcome",
    "ClaimButtonLocator",
    "LocatorResult",
    "LoginOracle",
    "LoginSignals",
    "is_authenticated",
    "ModalOutcome",
    "ModalSequencer",
    "ModalState",
]
