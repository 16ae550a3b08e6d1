"""Pattern proposer: asks the LLM for semantic login patterns, never for instance selectors."""

import json
from typing import Any, Protocol, Sequence

from ..models import CandidateControl, CandidateField, PatternProposal
from .run_log import log_run_event


class JSONGenerator(Protocol):
    async def generate_json(self, prompt: str) -> dict: ...


PATTERN_SYSTEM_PROMPT = """
You are a UI automation assistant. Given the lists of input fields and button candidates,
return a JSON object that represents PATTERN rules (not raw instance selectors) for login.

Return ONLY JSON. Two possible outputs:

1) Single-step login:
{
  "type": "simple_login",
  "username_patterns": ["css-or-playwright-pattern", ...],
  "password_patterns": ["..."],
  "submit_patterns": ["..."]
}

2) Multi-step login:
{
  "type": "multi_step_login",
  "steps": 2,
  "step_1": {
    "field_type": "username",
    "field_patterns": ["..."],
    "submit_patterns": ["..."]
  },
  "step_2": {
    "field_type": "password",
    "field_patterns": ["..."],
    "submit_patterns": ["..."]
  }
}

Important rules:
- DO NOT return ephemeral selectors like '#user_12345' or '.class_abcd'.
- Prefer semantic patterns: input[type='email'], input[name='username'], input[placeholder*='Email'],
  input[type='password'], button[type='submit'], button:has-text('Next')
- If a category is not present, return an empty array for that key.
- Only produce valid JSON, nothing else.
"""

SECOND_STAGE_SYSTEM_PROMPT = """
You are a UI automation assistant. This is a second-stage page (after clicking Next).
Return ONLY JSON:
{
  "password_patterns": ["..."],
  "submit_patterns": ["..."]
}
"""


def _candidate_sections(
    fields: Sequence[CandidateField], controls: Sequence[CandidateControl]
) -> list[str]:
    lines: list[str] = []
    lines.append("Inputs:")
    lines.append(json.dumps([f.to_prompt_dict() for f in fields], indent=2))
    lines.append("")
    lines.append("Buttons:")
    lines.append(json.dumps([c.to_prompt_dict() for c in controls], indent=2))
    return lines


def build_pattern_prompt(fields: Sequence[CandidateField], controls: Sequence[CandidateControl]) -> str:
    lines = [PATTERN_SYSTEM_PROMPT.strip(), ""]
    lines.extend(_candidate_sections(fields, controls))
    return "\n".join(lines)


def build_second_stage_prompt(fields: Sequence[CandidateField], controls: Sequence[CandidateControl]) -> str:
    lines = [SECOND_STAGE_SYSTEM_PROMPT.strip(), ""]
    lines.extend(_candidate_sections(fields, controls))
    return "\n".join(lines)


def _summarize(proposal: PatternProposal) -> dict[str, Any]:
    return {
        "type": proposal.flow_type,
        "username": list(proposal.username_patterns),
        "password": list(proposal.password_patterns),
        "submit": list(proposal.submit_patterns),
        "step_1": proposal.step_1.to_dict() if proposal.step_1 else None,
    }


async def propose_login_patterns(
    llm: JSONGenerator,
    fields: Sequence[CandidateField],
    controls: Sequence[CandidateControl],
    *,
    verbose: bool = False,
) -> PatternProposal:
    """First-pass proposal. Any service or parse failure degrades to an incomplete proposal."""

    log_run_event(verbose, "info", f"pattern_prompt fields={len(fields)} controls={len(controls)}")
    prompt = build_pattern_prompt(fields, controls)
    try:
        raw = await llm.generate_json(prompt)
    except Exception as exc:  # noqa: BLE001
        log_run_event(verbose, "error", f"pattern_proposal_failed reason={exc!r}")
        return PatternProposal.incomplete()

    proposal = PatternProposal.from_llm_output(raw)
    log_run_event(verbose, "info", f"pattern_proposal {json.dumps(_summarize(proposal))}")
    return proposal


async def propose_second_stage_patterns(
    llm: JSONGenerator,
    fields: Sequence[CandidateField],
    controls: Sequence[CandidateControl],
    *,
    verbose: bool = False,
) -> PatternProposal:
    """Password-stage proposal scoped to password and submit patterns only.

    Failure yields empty lists instead of aborting the run.
    """

    log_run_event(verbose, "info", f"second_stage_prompt fields={len(fields)} controls={len(controls)}")
    prompt = build_second_stage_prompt(fields, controls)
    try:
        raw = await llm.generate_json(prompt)
    except Exception as exc:  # noqa: BLE001
        log_run_event(verbose, "error", f"second_stage_proposal_failed reason={exc!r}")
        return PatternProposal.incomplete()

    proposal = PatternProposal.from_llm_output(raw)
    log_run_event(
        verbose,
        "info",
        f"second_stage_proposal password={list(proposal.password_patterns)} submit={list(proposal.submit_patterns)}",
    )
    return proposal
