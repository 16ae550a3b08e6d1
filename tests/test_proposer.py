import asyncio
import json

from fake_page import FakeLLM
from login_pattern_agent.agent.proposer import (
    build_pattern_prompt,
    propose_login_patterns,
    propose_second_stage_patterns,
)
from login_pattern_agent.models import CandidateControl, CandidateField, PatternProposal

FIELDS = [CandidateField(fallback_selectors=("#email", 'input[type="email"]'), id="email", input_type="email")]
CONTROLS = [CandidateControl(fallback_selectors=('text="Next"',), tag="button", text="Next")]


def test_prompt_embeds_candidates_as_json():
    prompt = build_pattern_prompt(FIELDS, CONTROLS)

    assert "DO NOT return ephemeral selectors" in prompt
    inputs_block = prompt.split("Inputs:\n", 1)[1].split("\n\nButtons:", 1)[0]
    assert json.loads(inputs_block)[0]["suggestedSelectors"] == ["#email", 'input[type="email"]']
    assert '"text": "Next"' in prompt


def test_proposal_is_parsed_from_llm_json():
    llm = FakeLLM({"type": "simple_login", "usernamePatterns": ["input[type='email']"]})

    proposal = asyncio.run(propose_login_patterns(llm, FIELDS, CONTROLS))

    assert proposal.flow_type == "simple_login"
    assert proposal.username_patterns == ("input[type='email']",)
    assert proposal.password_patterns == ()
    assert len(llm.prompts) == 1


def test_service_failure_degrades_to_incomplete():
    llm = FakeLLM(ValueError("LLM output did not contain valid JSON"))

    proposal = asyncio.run(propose_login_patterns(llm, FIELDS, CONTROLS, verbose=True))

    assert proposal == PatternProposal.incomplete()


def test_second_stage_prompt_is_scoped_to_password():
    llm = FakeLLM({"password_patterns": ["input[type=password]"], "submit_patterns": ["#signin"]})

    proposal = asyncio.run(propose_second_stage_patterns(llm, [], []))

    assert '"password_patterns"' in llm.prompts[0]
    assert '"username_patterns"' not in llm.prompts[0]
    assert proposal.password_patterns == ("input[type=password]",)
    assert proposal.submit_patterns == ("#signin",)


def test_second_stage_failure_gives_empty_lists():
    proposal = asyncio.run(propose_second_stage_patterns(FakeLLM(ConnectionError("offline")), [], []))

    assert proposal.password_patterns == ()
    assert proposal.submit_patterns == ()
