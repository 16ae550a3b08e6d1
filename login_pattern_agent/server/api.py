from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from ..agent.analyzer import AnalysisOptions, run_analysis_async
from ..config import settings
from ..storage.pattern_store import PatternStore, normalize_domain

app = FastAPI()


class AnalyzeRequest(BaseModel):
    url: str
    page_id: str = "default"
    verbose: bool | None = None
    wait_after_click_ms: int | None = None


def get_store() -> PatternStore:
    return PatternStore.open(settings.save_path_json, settings.save_path_yaml)


@app.post("/analyze")
async def analyze(payload: AnalyzeRequest) -> dict[str, Any]:
    """
    Run a full login-page analysis in a browser profile and return the saved record.

    The record is stored under the domain of the page that was analyzed, which
    differs from the request URL when navigation redirects.
    """

    options = AnalysisOptions.from_settings(
        prompt_verbose=payload.verbose,
        wait_after_click_ms=payload.wait_after_click_ms,
    )
    try:
        record = await run_analysis_async(payload.url, options, page_id=payload.page_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return record


@app.get("/patterns")
def list_patterns() -> dict[str, Any]:
    return get_store().records


@app.get("/patterns/{domain}")
def get_pattern(domain: str) -> dict[str, Any]:
    key = normalize_domain(f"https://{domain}")
    record = get_store().get(key)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No login patterns stored for {key}")
    return record
