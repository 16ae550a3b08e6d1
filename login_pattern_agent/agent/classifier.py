from __future__ import annotations

from typing import Optional

from playwright.async_api import Page

from ..models import (
    INCOMPLETE,
    KNOWN_FLOW_TYPES,
    MULTI_STEP_LOGIN,
    FlowClassification,
    PatternProposal,
    StepPatterns,
)
from .resolver import selector_visible
from .run_log import log_run_event

TRANSITION_WORDS = ("next", "continue", "verify", "proceed")

RULE_MISSING_PASSWORD = "missing_password"
RULE_HIDDEN_PASSWORD = "hidden_password"
RULE_TRANSITIONAL_SUBMIT = "transitional_submit"


def looks_transitional(pattern: str) -> bool:
    lowered = pattern.lower()
    return any(word in lowered for word in TRANSITION_WORDS)


def find_override_rules(proposal: PatternProposal, password_visible: Optional[bool]) -> tuple[str, ...]:
    """Evaluate every multi-step signal independently and return the ones that fired.

    `password_visible` is the live visibility of the first password pattern, or
    None when the proposal has no password pattern to probe.
    """

    fired: list[str] = []
    if proposal.username_patterns and not proposal.password_patterns:
        fired.append(RULE_MISSING_PASSWORD)
    if proposal.password_patterns and not password_visible:
        fired.append(RULE_HIDDEN_PASSWORD)
    if any(looks_transitional(p) for p in proposal.submit_patterns):
        fired.append(RULE_TRANSITIONAL_SUBMIT)
    return tuple(fired)


def apply_flow_overrides(proposal: PatternProposal, password_visible: Optional[bool]) -> FlowClassification:
    """Build a corrected classification without touching the proposal."""

    overrides = find_override_rules(proposal, password_visible)
    flow_type = MULTI_STEP_LOGIN if overrides else proposal.flow_type
    if flow_type not in KNOWN_FLOW_TYPES:
        flow_type = INCOMPLETE

    step_1 = None
    if flow_type == MULTI_STEP_LOGIN:
        step_1 = proposal.step_1 or StepPatterns(
            field_type="username",
            field_patterns=proposal.username_patterns,
            submit_patterns=proposal.submit_patterns,
        )

    return FlowClassification(
        flow_type=flow_type,
        declared_type=proposal.flow_type,
        username_patterns=proposal.username_patterns,
        password_patterns=proposal.password_patterns,
        submit_patterns=proposal.submit_patterns,
        step_1=step_1,
        overrides=overrides,
    )


async def classify_flow(page: Page, proposal: PatternProposal, *, verbose: bool = False) -> FlowClassification:
    password_visible: Optional[bool] = None
    if proposal.password_patterns:
        password_visible = await selector_visible(page, proposal.password_patterns[0])

    classification = apply_flow_overrides(proposal, password_visible)
    if classification.overridden:
        log_run_event(
            verbose,
            "warning",
            "flow_override declared={declared} forced={forced} rules={rules}".format(
                declared=proposal.flow_type,
                forced=classification.flow_type,
                rules=",".join(classification.overrides),
            ),
        )
    log_run_event(verbose, "info", f"flow_classified type={classification.flow_type}")
    return classification
