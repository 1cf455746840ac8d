"""
Ordered selector-fallback helpers.

Every lookup against the course site goes through a list of probes tried in
order; the first one that yields something usable wins. New fallbacks are
added by appending to the lists in the calling modules, not by new branches.
"""

import asyncio
import logging
from typing import List, NamedTuple, Optional, Sequence, Tuple

from playwright.async_api import ElementHandle, Error as PlaywrightError, Page

logger = logging.getLogger(__name__)


class Probe(NamedTuple):
    selector: str
    attribute: Optional[str] = None  # read this attribute instead of the text


def as_probe(item) -> Probe:
    if isinstance(item, Probe):
        return item
    return Probe(item)


async def element_text(element: ElementHandle) -> str:
    """Rendered text of an element, falling back to raw text content."""
    try:
        text = await element.inner_text()
    except PlaywrightError:
        text = None
    if not text:
        text = await element.text_content()
    return (text or "").strip()


async def probe_value(element: ElementHandle, probe: Probe) -> str:
    if probe.attribute:
        return ((await element.get_attribute(probe.attribute)) or "").strip()
    return await element_text(element)


async def first_text(root, probes: Sequence) -> Optional[Tuple[str, str]]:
    """Return ``(selector, text)`` for the first probe producing non-blank text."""
    for item in probes:
        probe = as_probe(item)
        try:
            element = await root.query_selector(probe.selector)
            if element is None:
                continue
            value = await probe_value(element, probe)
        except PlaywrightError as e:
            logger.debug(f"Selector {probe.selector!r} failed: {e}")
            continue
        if value:
            return probe.selector, value
    return None


async def first_matches(root, selectors: Sequence[str]) -> Tuple[Optional[str], List[ElementHandle]]:
    """Return the first selector that matches anything, with all of its matches."""
    for selector in selectors:
        try:
            elements = await root.query_selector_all(selector)
        except PlaywrightError as e:
            logger.debug(f"Selector {selector!r} failed: {e}")
            continue
        if elements:
            return selector, elements
    return None, []


async def joined_text(root, selectors: Sequence[str], separator: str = "\n") -> Optional[Tuple[str, str]]:
    """Like :func:`first_text` but joins the text of every match of a selector."""
    for selector in selectors:
        try:
            elements = await root.query_selector_all(selector)
            parts = [await element_text(el) for el in elements]
        except PlaywrightError as e:
            logger.debug(f"Selector {selector!r} failed: {e}")
            continue
        text = separator.join(p for p in parts if p)
        if text.strip():
            return selector, text
    return None


async def first_visible(
    page: Page,
    selectors: Sequence[str],
    timeout_ms: int = 5000,
    budget_ms: Optional[int] = None,
) -> Optional[Tuple[str, ElementHandle]]:
    """Wait (per selector) for the first selector that becomes visible.

    ``budget_ms`` bounds the total time spent across all selectors.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + budget_ms / 1000 if budget_ms else None
    for selector in selectors:
        wait_ms = timeout_ms
        if deadline is not None:
            remaining = int((deadline - loop.time()) * 1000)
            if remaining <= 0:
                logger.debug("Selector wait budget exhausted")
                break
            wait_ms = min(wait_ms, remaining)
        try:
            element = await page.wait_for_selector(selector, state="visible", timeout=wait_ms)
        except PlaywrightError:
            # TimeoutError is a subclass of Error
            continue
        if element is not None:
            return selector, element
    return None
