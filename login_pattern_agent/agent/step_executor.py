from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional, Sequence

from playwright.async_api import Page

from ..config import settings
from ..models import (
    CandidateControl,
    CandidateField,
    FlowClassification,
    PatternProposal,
    StepPatterns,
)
from .dom_scanner import scan_login_candidates
from .proposer import JSONGenerator, propose_second_stage_patterns
from .resolver import candidate_fallbacks, resolve_selector
from .run_log import log_run_event

TransitionMethod = Literal["click", "enter", "failed", "skipped"]

# Input kinds that never take the placeholder username.
NON_FILLABLE_INPUT_TYPES = {
    "hidden",
    "checkbox",
    "radio",
    "submit",
    "button",
    "file",
    "image",
    "reset",
    "password",
}


class StepState(str, Enum):
    IDLE = "idle"
    FIELD_RESOLVED = "field_resolved"
    FILLED = "filled"
    TRANSITION_TRIGGERED = "transition_triggered"
    SETTLED = "settled"
    REOBSERVED = "reobserved"
    TERMINAL = "terminal"


@dataclass
class StepReport:
    state: StepState = StepState.IDLE
    history: list[StepState] = field(default_factory=lambda: [StepState.IDLE])
    fill_selector: Optional[str] = None
    filled: bool = False
    click_selector: Optional[str] = None
    transition: TransitionMethod = "skipped"
    second_stage: PatternProposal = field(default_factory=PatternProposal.incomplete)

    def advance(self, state: StepState) -> None:
        self.state = state
        self.history.append(state)

    @property
    def skipped(self) -> bool:
        return self.transition == "skipped"

    def step_2(self) -> StepPatterns:
        # Second-stage patterns are recorded as received; no override rules apply here.
        return StepPatterns(
            field_type="password",
            field_patterns=self.second_stage.password_patterns,
            submit_patterns=self.second_stage.submit_patterns,
        )


def fillable_fields(fields: Sequence[CandidateField]) -> list[CandidateField]:
    return [f for f in fields if f.input_type not in NON_FILLABLE_INPUT_TYPES]


class MultiStepExecutor:
    """Drives the username screen of a multi-step login and re-observes the next screen."""

    def __init__(
        self,
        llm: JSONGenerator,
        *,
        wait_after_click_ms: int | None = None,
        placeholder_credential: str | None = None,
        click_timeout_ms: int | None = None,
        fill_settle_ms: int | None = None,
        verbose: bool = False,
    ) -> None:
        self.llm = llm
        self.wait_after_click_ms = (
            settings.wait_after_click_ms if wait_after_click_ms is None else wait_after_click_ms
        )
        self.placeholder_credential = placeholder_credential or settings.placeholder_credential
        self.click_timeout_ms = settings.click_timeout_ms if click_timeout_ms is None else click_timeout_ms
        self.fill_settle_ms = settings.fill_settle_ms if fill_settle_ms is None else fill_settle_ms
        self.verbose = verbose

    def _log(self, level: str, message: str) -> None:
        log_run_event(self.verbose, level, message)

    async def run(
        self,
        page: Page,
        classification: FlowClassification,
        fields: Sequence[CandidateField],
        controls: Sequence[CandidateControl],
    ) -> StepReport:
        report = StepReport()
        step_1 = classification.step_1 or StepPatterns(field_type="username")

        await self._resolve_field(page, report, step_1, classification, fields)
        await self._fill(page, report)
        await self._trigger_transition(page, report, step_1, controls)
        await self._settle(page, report)
        await self._reobserve(page, report)
        report.advance(StepState.TERMINAL)
        return report

    async def _resolve_field(
        self,
        page: Page,
        report: StepReport,
        step_1: StepPatterns,
        classification: FlowClassification,
        fields: Sequence[CandidateField],
    ) -> None:
        selector = await resolve_selector(page, step_1.field_patterns)
        if selector is None:
            selector = await resolve_selector(
                page,
                classification.username_patterns,
                candidate_fallbacks(fillable_fields(fields)),
            )
        if selector is None:
            self._log("warning", "step1_field_unresolved")
            return
        report.fill_selector = selector
        report.advance(StepState.FIELD_RESOLVED)
        self._log("info", f"step1_field_resolved selector={selector}")

    async def _fill(self, page: Page, report: StepReport) -> None:
        if report.fill_selector is None:
            return
        try:
            await page.locator(report.fill_selector).first.fill(self.placeholder_credential)
            if self.fill_settle_ms:
                await page.wait_for_timeout(self.fill_settle_ms)
        except Exception as exc:
            # Some screens advance without a value, so keep going.
            self._log("warning", f"step1_fill_failed selector={report.fill_selector} reason={exc}")
            return
        report.filled = True
        report.advance(StepState.FILLED)

    async def _press_enter(self, page: Page, report: StepReport) -> TransitionMethod:
        if not report.fill_selector:
            self._log("warning", "enter_fallback_unavailable reason=no_field")
            return "failed"
        try:
            await page.locator(report.fill_selector).first.press("Enter")
        except Exception as exc:
            self._log("warning", f"enter_fallback_failed selector={report.fill_selector} reason={exc}")
            return "failed"
        return "enter"

    async def _click_control(self, page: Page, report: StepReport) -> TransitionMethod:
        locator = page.locator(report.click_selector).first
        try:
            disabled = await locator.is_disabled()
        except Exception:
            disabled = False
        if disabled:
            self._log("info", f"transition_control_disabled selector={report.click_selector}")
            return await self._press_enter(page, report)
        try:
            await locator.click(timeout=self.click_timeout_ms)
        except Exception as exc:
            self._log("warning", f"transition_click_failed selector={report.click_selector} reason={exc}")
            return await self._press_enter(page, report)
        return "click"

    async def _trigger_transition(
        self,
        page: Page,
        report: StepReport,
        step_1: StepPatterns,
        controls: Sequence[CandidateControl],
    ) -> None:
        report.click_selector = await resolve_selector(
            page, step_1.submit_patterns, candidate_fallbacks(controls)
        )
        if report.click_selector:
            report.transition = await self._click_control(page, report)
        elif report.filled:
            report.transition = await self._press_enter(page, report)
        else:
            report.transition = "skipped"
            self._log("warning", "step1_skipped reason=no_field_and_no_control")
            return

        report.advance(StepState.TRANSITION_TRIGGERED)
        self._log(
            "info",
            f"step1_transition method={report.transition} control={report.click_selector} field={report.fill_selector}",
        )

    async def _settle(self, page: Page, report: StepReport) -> None:
        if report.skipped:
            return
        await page.wait_for_timeout(self.wait_after_click_ms)
        report.advance(StepState.SETTLED)

    async def _reobserve(self, page: Page, report: StepReport) -> None:
        fields, controls = await scan_login_candidates(page)
        self._log("info", f"second_pass fields={len(fields)} controls={len(controls)}")
        report.second_stage = await propose_second_stage_patterns(
            self.llm, fields, controls, verbose=self.verbose
        )
        report.advance(StepState.REOBSERVED)
