"""In-page probes that turn live DOM nodes into :class:`ControlSnapshot`s."""

import logging
from typing import List, Tuple, Union

from playwright.async_api import ElementHandle, Page

from claimer.matchers import ControlSnapshot

logger = logging.getLogger(__name__)

SNAPSHOT_JS = """
(el) => {
    const style = window.getComputedStyle(el);
    const rect = el.getBoundingClientRect();
    const visible = style.display !== 'none'
        && style.visibility !== 'hidden'
        && rect.width > 0 && rect.height > 0;
    return {
        text: el.textContent || '',
        visible: visible,
        disabled: !!el.disabled || el.getAttribute('aria-disabled') === 'true',
        insideLink: !!el.closest('a'),
    };
}
"""

Scope = Union[Page, ElementHandle]
Control = Tuple[ElementHandle, ControlSnapshot]


async def snapshot_element(handle: ElementHandle) -> ControlSnapshot:
    return ControlSnapshot.from_dict(await handle.evaluate(SNAPSHOT_JS))


async def snapshot_controls(scope: Scope, selector: str) -> List[Control]:
    """Query *scope* for *selector* and snapshot every match.

    Handles that detach between the query and the snapshot are skipped.

    Args:
        scope: Page or container element to search within.
        selector: CSS selector, or ``xpath=...``.

    Returns:
        ``(handle, snapshot)`` pairs in document order.
    """
    controls: List[Control] = []
    for handle in await scope.query_selector_all(selector):
        try:
            controls.append((handle, await snapshot_element(handle)))
        except Exception as e:
            logger.debug(f"Skipping detached control for {selector!r}: {e}")
    return controls
