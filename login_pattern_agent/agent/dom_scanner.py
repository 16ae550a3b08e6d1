from __future__ import annotations
"""Generic login-candidate scanner (no site-specific selectors)."""

import logging
import re
from typing import Any, List, Optional, Tuple

from playwright.async_api import Page

from ..config import settings
from ..models import CandidateControl, CandidateField

CONTROL_SELECTOR = 'button, input[type="submit"], [role="button"], a'

_CSS_IDENT = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$")

_INPUTS_SCRIPT = """
(els) => els.map((el, idx) => {
    const byFor = el.id ? document.querySelector(`label[for="${CSS.escape(el.id)}"]`) : null;
    const wrapping = el.closest("label");
    const label = (byFor && byFor.innerText) || (wrapping && wrapping.innerText) || "";
    return {
        index: idx,
        id: el.id || "",
        name: el.getAttribute("name") || "",
        type: (el.getAttribute("type") || el.type || "").toLowerCase(),
        placeholder: el.getAttribute("placeholder") || "",
        aria: el.getAttribute("aria-label") || "",
        label: label,
        classes: typeof el.className === "string" ? el.className : "",
        outerHTML: el.outerHTML || "",
    };
})
"""

_CONTROLS_SCRIPT = """
(els) => els.map((el, idx) => ({
    index: idx,
    tag: el.tagName.toLowerCase(),
    text: (el.innerText || el.value || "").trim(),
    id: el.id || "",
    aria: el.getAttribute("aria-label") || "",
    classes: typeof el.className === "string" ? el.className : "",
    outerHTML: el.outerHTML || "",
}))
"""


def trim_text(value: Optional[str], limit: int = 120) -> str:
    if not value:
        return ""
    collapsed = " ".join(str(value).split())
    return collapsed[:limit]


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def id_selector(element_id: str) -> str:
    if _CSS_IDENT.match(element_id):
        return f"#{element_id}"
    return f"[id={_quote(element_id)}]"


def field_fallback_selectors(raw: dict[str, Any], index: int) -> Tuple[str, ...]:
    """Rank selectors for an input from most specific (id) to positional."""

    selectors: List[str] = []
    if raw.get("id"):
        selectors.append(id_selector(raw["id"]))
    if raw.get("name"):
        selectors.append(f"input[name={_quote(raw['name'])}]")
    if raw.get("placeholder"):
        selectors.append(f"input[placeholder={_quote(raw['placeholder'])}]")
    if raw.get("type"):
        selectors.append(f"input[type={_quote(raw['type'])}]")
    if not selectors:
        selectors.append(f"input:nth-of-type({index + 1})")
    return tuple(selectors)


def control_fallback_selectors(raw: dict[str, Any], index: int) -> Tuple[str, ...]:
    tag = raw.get("tag") or "button"
    text = raw.get("text") or ""
    selectors: List[str] = []
    if raw.get("id"):
        selectors.append(id_selector(raw["id"]))
    if text:
        selectors.append(f"text={_quote(text)}")
        selectors.append(f"{tag}:has-text({_quote(text)})")
    if not selectors:
        selectors.append(f"{tag}:nth-of-type({index + 1})")
    return tuple(selectors)


def build_candidate_field(raw: dict[str, Any], index: int) -> CandidateField:
    return CandidateField(
        fallback_selectors=field_fallback_selectors(raw, index),
        id=raw.get("id") or "",
        name=raw.get("name") or "",
        input_type=(raw.get("type") or "").lower(),
        placeholder=raw.get("placeholder") or "",
        aria_label=raw.get("aria") or "",
        label=trim_text(raw.get("label")),
        classes=raw.get("classes") or "",
        outer_html=(raw.get("outerHTML") or "")[: settings.outer_html_limit],
    )


def build_candidate_control(raw: dict[str, Any], index: int) -> CandidateControl:
    # Selectors keep the full label; only the prompt copy is trimmed.
    full_text = " ".join(str(raw.get("text") or "").split())
    text = trim_text(full_text)
    normalized = dict(raw, text=full_text)
    return CandidateControl(
        fallback_selectors=control_fallback_selectors(normalized, index),
        tag=raw.get("tag") or "",
        text=text,
        id=raw.get("id") or "",
        aria_label=raw.get("aria") or "",
        classes=raw.get("classes") or "",
        outer_html=(raw.get("outerHTML") or "")[: settings.outer_html_limit],
    )


async def scan_input_fields(page: Page, max_fields: int | None = None) -> List[CandidateField]:
    max_fields = max_fields or settings.max_fields
    try:
        raw_fields = await page.eval_on_selector_all("input", _INPUTS_SCRIPT)
    except Exception as exc:
        logging.warning("input_scan_failed reason=%s", exc)
        return []
    fields = [
        build_candidate_field(raw, raw.get("index", idx))
        for idx, raw in enumerate(raw_fields or [])
        if isinstance(raw, dict)
    ]
    return fields[:max_fields]


async def scan_controls(page: Page, max_controls: int | None = None) -> List[CandidateControl]:
    max_controls = max_controls or settings.max_controls
    try:
        raw_controls = await page.eval_on_selector_all(CONTROL_SELECTOR, _CONTROLS_SCRIPT)
    except Exception as exc:
        logging.warning("control_scan_failed reason=%s", exc)
        return []
    controls = [
        build_candidate_control(raw, raw.get("index", idx))
        for idx, raw in enumerate(raw_controls or [])
        if isinstance(raw, dict)
    ]
    return controls[:max_controls]


async def scan_login_candidates(page: Page) -> tuple[List[CandidateField], List[CandidateControl]]:
    """Capture input fields and clickable controls from the current document.

    Safe to call repeatedly; every call re-reads the live page and nothing is
    carried over from a previous pass.
    """

    fields = await scan_input_fields(page)
    controls = await scan_controls(page)
    logging.debug("login_candidates url=%s fields=%s controls=%s", page.url, len(fields), len(controls))
    return fields, controls
