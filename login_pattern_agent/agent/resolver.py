from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from playwright.async_api import Page

from ..models import CandidateControl, CandidateField


async def selector_exists(page: Page, selector: Optional[str]) -> bool:
    if not selector:
        return False
    try:
        return await page.locator(selector).count() > 0
    except Exception as exc:
        # Unsupported or malformed patterns are a non-match, not an error.
        logging.debug("selector_probe_failed selector=%s reason=%s", selector, exc)
        return False


async def selector_visible(page: Page, selector: Optional[str]) -> bool:
    if not selector:
        return False
    try:
        return await page.locator(selector).first.is_visible()
    except Exception as exc:
        logging.debug("visibility_probe_failed selector=%s reason=%s", selector, exc)
        return False


def candidate_fallbacks(candidates: Iterable[CandidateField | CandidateControl]) -> list[str]:
    """Flatten per-candidate fallback selectors, keeping document and rank order."""

    selectors: list[str] = []
    for cand in candidates:
        selectors.extend(cand.fallback_selectors)
    return selectors


async def resolve_selector(
    page: Page,
    patterns: Sequence[str] | None,
    fallbacks: Sequence[str] | None = None,
) -> Optional[str]:
    """Return the first pattern (then fallback) that currently matches an element.

    The result is only valid for the moment it was resolved; callers resolve
    again before every use.
    """

    for pattern in patterns or ():
        if await selector_exists(page, pattern):
            return pattern
    for selector in fallbacks or ():
        if await selector_exists(page, selector):
            return selector
    return None
