from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from playwright.async_api import Page

from ..config import settings
from ..models import MULTI_STEP_LOGIN, build_flat_record, build_multi_step_record
from ..storage.pattern_store import PatternStore, normalize_domain
from .browser import BrowserSession
from .classifier import classify_flow
from .dom_scanner import scan_login_candidates
from .llm_client import create_structured_llm_client
from .proposer import JSONGenerator, propose_login_patterns
from .run_log import log_run_event
from .step_executor import MultiStepExecutor


@dataclass
class AnalysisOptions:
    wait_after_click_ms: int = 2200
    save_path_json: str = "./login_pattern.json"
    save_path_yaml: str = "./login_pattern.yaml"
    prompt_verbose: bool = False

    @classmethod
    def from_settings(cls, **overrides: Any) -> "AnalysisOptions":
        values = {
            "wait_after_click_ms": settings.wait_after_click_ms,
            "save_path_json": settings.save_path_json,
            "save_path_yaml": settings.save_path_yaml,
            "prompt_verbose": settings.prompt_verbose,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


_run_lock: asyncio.Lock | None = None
_run_lock_loop: asyncio.AbstractEventLoop | None = None


def _get_run_lock() -> asyncio.Lock:
    """One analysis per event loop; the store file pair has no locking of its own."""

    global _run_lock, _run_lock_loop

    loop = asyncio.get_running_loop()
    if _run_lock is None or _run_lock_loop is not loop:
        _run_lock = asyncio.Lock()
        _run_lock_loop = loop

    return _run_lock


async def analyze_login_page(
    page: Page,
    options: Optional[AnalysisOptions] = None,
    *,
    llm: Optional[JSONGenerator] = None,
    store: Optional[PatternStore] = None,
) -> dict[str, Any]:
    """Infer login patterns for the page, persist them under its domain and return the record."""

    if page is None:
        raise ValueError("analyze_login_page requires a live page")

    options = options or AnalysisOptions.from_settings()
    verbose = options.prompt_verbose
    if llm is None:
        llm = create_structured_llm_client()

    fields, controls = await scan_login_candidates(page)
    log_run_event(verbose, "info", f"candidates_extracted fields={len(fields)} controls={len(controls)}")

    proposal = await propose_login_patterns(llm, fields, controls, verbose=verbose)
    classification = await classify_flow(page, proposal, verbose=verbose)

    domain = normalize_domain(page.url)
    if store is None:
        store = PatternStore.open(options.save_path_json, options.save_path_yaml)

    if classification.flow_type == MULTI_STEP_LOGIN:
        executor = MultiStepExecutor(
            llm,
            wait_after_click_ms=options.wait_after_click_ms,
            verbose=verbose,
        )
        report = await executor.run(page, classification, fields, controls)
        record = build_multi_step_record(page.url, classification.step_1, report.step_2())
    else:
        record = build_flat_record(page.url, classification.flow_type, classification)

    store.apply(domain, record)
    store.save()
    logging.info("login_patterns_saved domain=%s type=%s", domain, classification.flow_type)
    return record


async def run_analysis_async(
    url: str,
    options: Optional[AnalysisOptions] = None,
    *,
    page_id: str = "default",
    profile_base: str | None = None,
    chrome_path: str | None = None,
    browser_factory=None,
) -> dict[str, Any]:
    """Open a browser profile, navigate to the login URL and analyze it."""

    if not url:
        raise ValueError("url is required")

    browser_factory = browser_factory or BrowserSession
    print(f"[analyzer] Opening URL: {url}")
    async with _get_run_lock():
        async with browser_factory(page_id=page_id, profile_base=profile_base, chrome_path=chrome_path) as browser:
            await browser.goto(url)
            return await analyze_login_page(browser.page, options)


def run_analysis_blocking(url: str, options: Optional[AnalysisOptions] = None, **kwargs: Any) -> dict[str, Any]:
    """Synchronous wrapper for CLI usage."""

    return asyncio.run(run_analysis_async(url, options, **kwargs))
