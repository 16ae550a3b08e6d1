from login_pattern_agent.models import (
    PatternProposal,
    StepPatterns,
    build_flat_record,
    build_multi_step_record,
    FlowClassification,
)


def test_multi_step_proposal_reads_alternate_key_spellings():
    proposal = PatternProposal.from_llm_output(
        {
            "type": "multi_step_login",
            "steps": "2",
            "step1": {"fieldPatterns": ["input[type='email']"], "submitPatterns": ["button:has-text('Next')"]},
            "step_2": {"field_type": "password", "field_patterns": ["input[type='password']"]},
        }
    )

    assert proposal.flow_type == "multi_step_login"
    assert proposal.steps == 2
    assert proposal.step_1 == StepPatterns("username", ("input[type='email']",), ("button:has-text('Next')",))
    assert proposal.step_2 == StepPatterns("password", ("input[type='password']",), ())


def test_snake_case_wins_over_camel_case():
    proposal = PatternProposal.from_llm_output(
        {"username_patterns": ["#a"], "usernamePatterns": ["#b"], "submitPatterns": ["#go"]}
    )

    assert proposal.username_patterns == ("#a",)
    assert proposal.submit_patterns == ("#go",)


def test_missing_and_malformed_lists_default_to_empty():
    proposal = PatternProposal.from_llm_output(
        {
            "type": "simple_login",
            "username_patterns": "input[name=user]",
            "password_patterns": {"oops": 1},
            "submit_patterns": ["", None, 3, " button[type=submit] "],
            "steps": "two",
            "step_1": "not an object",
        }
    )

    assert proposal.username_patterns == ("input[name=user]",)
    assert proposal.password_patterns == ()
    assert proposal.submit_patterns == ("button[type=submit]",)
    assert proposal.steps is None
    assert proposal.step_1 is None


def test_non_mapping_output_is_incomplete():
    assert PatternProposal.from_llm_output(["simple_login"]) == PatternProposal.incomplete()
    assert PatternProposal.incomplete().flow_type == "incomplete"


def test_raw_payload_is_kept_but_not_compared():
    raw = {"type": "simple_login", "note": "extra"}
    proposal = PatternProposal.from_llm_output(raw)

    assert proposal.raw == raw
    assert proposal == PatternProposal(flow_type="simple_login")


def test_records_always_carry_lists():
    classification = FlowClassification(flow_type="incomplete")

    assert build_flat_record("https://x.test", "incomplete", classification) == {
        "url": "https://x.test",
        "incomplete": {"username_patterns": [], "password_patterns": [], "submit_patterns": []},
    }

    record = build_multi_step_record("https://x.test", StepPatterns("username"), StepPatterns("password"))
    assert record["multi_step_login"]["steps"] == 2
    assert record["multi_step_login"]["step_2"] == {
        "field_type": "password",
        "field_patterns": [],
        "submit_patterns": [],
    }
