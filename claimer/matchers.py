"""Declarative control-matching rules for the claim flow.

Every decision about *which* control to click is made here, against plain
:class:`ControlSnapshot` values, so the rules can be exercised without a
browser.  :mod:`claimer.dom` produces the snapshots; the locator and the
modal sequencer only iterate rules and click.
"""

from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

CLAIM_EXACT_TEXTS = frozenset({
    "claim",
    "claim proceeds",
    "claim winnings",
    "claim all",
})
CLAIM_PREFIX = "claim $"
DONE_TEXT = "done"
LOGIN_PROMPT_TEXTS = frozenset({
    "log in",
    "sign in",
    "sign up",
    "connect wallet",
})
MAX_ACTION_TEXT_LENGTH = 40

BUTTON_SELECTOR = "button, [role='button']"
MODAL_CONTAINER_SELECTOR = (
    "[role='dialog'], [aria-modal='true'], "
    "[class*='modal' i], [class*='dialog' i], "
    "[class*='drawer' i], [class*='overlay' i]"
)


@dataclass(frozen=True)
class ControlSnapshot:
    """What the page reported about one clickable control.

    Attributes:
        text: Raw ``textContent`` (untrimmed).
        visible: Rendered with a non-empty layout box.
        disabled: ``disabled`` attribute or ``aria-disabled="true"``.
        inside_link: Has an ``<a>`` ancestor (or is one).
    """

    text: str = ""
    visible: bool = True
    disabled: bool = False
    inside_link: bool = False

    @property
    def normalized_text(self) -> str:
        return " ".join(self.text.split()).lower()

    @classmethod
    def from_dict(cls, data: dict) -> "ControlSnapshot":
        return cls(
            text=data.get("text") or "",
            visible=bool(data.get("visible")),
            disabled=bool(data.get("disabled")),
            inside_link=bool(data.get("insideLink")),
        )


Predicate = Callable[[ControlSnapshot], bool]


def is_claim_text(text: str) -> bool:
    """Strict claim label: one of the known labels or ``claim $<amount>``."""
    normalized = " ".join(text.split()).lower()
    return normalized in CLAIM_EXACT_TEXTS or normalized.startswith(CLAIM_PREFIX)


def contains_claim_text(text: str) -> bool:
    return "claim" in text.lower()


def is_done_text(text: str) -> bool:
    return " ".join(text.split()).lower() == DONE_TEXT


def is_login_prompt_text(text: str) -> bool:
    return " ".join(text.split()).lower() in LOGIN_PROMPT_TEXTS


def is_actionable(
    control: ControlSnapshot,
    max_length: int = MAX_ACTION_TEXT_LENGTH,
) -> bool:
    """Shared exclusions for any control we might click on the portfolio.

    Rejects controls nested in a link, invisible controls, and controls
    whose text is longer than *max_length* (market cards, not buttons).
    """
    if control.inside_link or not control.visible:
        return False
    return len(control.normalized_text) <= max_length


@dataclass(frozen=True)
class MatchRule:
    """One tier of the claim-button search.

    Attributes:
        name: Tier label used in logs.
        priority: Lower runs first.
        selectors: CSS (or ``xpath=``) selectors scoping the scan.
        predicate: Decides whether a snapshot from the scope matches.
    """

    name: str
    priority: int
    selectors: Tuple[str, ...]
    predicate: Predicate

    def matches(self, control: ControlSnapshot) -> bool:
        return self.predicate(control)


def strict_claim(max_length: int = MAX_ACTION_TEXT_LENGTH) -> Predicate:
    def _predicate(control: ControlSnapshot) -> bool:
        return is_actionable(control, max_length) and is_claim_text(control.text)
    return _predicate


def loose_claim(max_length: int = MAX_ACTION_TEXT_LENGTH) -> Predicate:
    def _predicate(control: ControlSnapshot) -> bool:
        return is_actionable(control, max_length) and contains_claim_text(control.text)
    return _predicate


def modal_confirm(control: ControlSnapshot) -> bool:
    """In-dialog confirmation: visible, enabled, strict claim label."""
    return control.visible and not control.disabled and is_claim_text(control.text)


def done_button(control: ControlSnapshot) -> bool:
    return control.visible and is_done_text(control.text)


def build_claim_rules(
    css_selectors: Sequence[str] = (),
    xpaths: Sequence[str] = (),
    max_length: int = MAX_ACTION_TEXT_LENGTH,
) -> List[MatchRule]:
    """Build the ordered claim-button tiers.

    Layout-pinned selectors come first, then the broad button scan, then
    the substring fallback.  Tiers with no selectors are omitted.
    """
    rules = [
        MatchRule(
            name="pinned_css",
            priority=10,
            selectors=tuple(css_selectors),
            predicate=strict_claim(max_length),
        ),
        MatchRule(
            name="pinned_xpath",
            priority=20,
            selectors=tuple(
                xp if xp.startswith("xpath=") else f"xpath={xp}"
                for xp in xpaths
            ),
            predicate=strict_claim(max_length),
        ),
        MatchRule(
            name="broad_scan",
            priority=30,
            selectors=(BUTTON_SELECTOR,),
            predicate=strict_claim(max_length),
        ),
        MatchRule(
            name="substring_fallback",
            priority=90,
            selectors=(BUTTON_SELECTOR,),
            predicate=loose_claim(max_length),
        ),
    ]
    return sorted(
        (rule for rule in rules if rule.selectors),
        key=lambda rule: rule.priority,
    )
