import asyncio

from fake_page import FakeElement, FakeLLM, FakePage
from login_pattern_agent.agent.step_executor import MultiStepExecutor, StepState
from login_pattern_agent.models import (
    CandidateControl,
    CandidateField,
    FlowClassification,
    StepPatterns,
)

PASSWORD_STAGE = {"password_patterns": ["input[type=password]"], "submit_patterns": ["button:has-text('Sign in')"]}


def multi_step(field_patterns=("input[type=email]",), submit_patterns=("button:has-text('Next')",), username=()):
    return FlowClassification(
        flow_type="multi_step_login",
        declared_type="simple_login",
        username_patterns=tuple(username),
        step_1=StepPatterns("username", tuple(field_patterns), tuple(submit_patterns)),
        overrides=("hidden_password",),
    )


def stub_scan(monkeypatch, fields=None, controls=None):
    calls = []

    async def fake_scan(page):
        calls.append(page.url)
        return list(fields or []), list(controls or [])

    monkeypatch.setattr("login_pattern_agent.agent.step_executor.scan_login_candidates", fake_scan)
    return calls


def run(executor, page, classification, fields=(), controls=()):
    return asyncio.run(executor.run(page, classification, list(fields), list(controls)))


def test_fill_click_settle_and_reobserve(monkeypatch):
    scans = stub_scan(monkeypatch)
    page = FakePage(
        elements={"input[type=email]": FakeElement(), "button:has-text('Next')": FakeElement()},
    )
    llm = FakeLLM(PASSWORD_STAGE)
    executor = MultiStepExecutor(llm, wait_after_click_ms=2200, fill_settle_ms=300, click_timeout_ms=5000)

    report = run(executor, page, multi_step())

    assert page.actions == [
        ("fill", "input[type=email]", "dummy@example.com"),
        ("click", "button:has-text('Next')", 5000),
    ]
    assert page.waits == [300, 2200]
    assert report.transition == "click"
    assert report.history == [
        StepState.IDLE,
        StepState.FIELD_RESOLVED,
        StepState.FILLED,
        StepState.TRANSITION_TRIGGERED,
        StepState.SETTLED,
        StepState.REOBSERVED,
        StepState.TERMINAL,
    ]
    assert scans == [page.url]
    assert "second-stage page" in llm.prompts[0]
    assert report.step_2() == StepPatterns(
        "password", ("input[type=password]",), ("button:has-text('Sign in')",)
    )


def test_disabled_control_falls_back_to_enter(monkeypatch):
    stub_scan(monkeypatch)
    page = FakePage(
        elements={
            "input[type=email]": FakeElement(),
            "button:has-text('Next')": FakeElement(disabled=True),
        }
    )

    report = run(MultiStepExecutor(FakeLLM(PASSWORD_STAGE)), page, multi_step())

    assert ("press", "input[type=email]", "Enter") in page.actions
    assert not any(action[0] == "click" for action in page.actions)
    assert report.transition == "enter"


def test_click_failure_falls_back_to_enter(monkeypatch):
    stub_scan(monkeypatch)
    page = FakePage(
        elements={
            "input[type=email]": FakeElement(),
            "button:has-text('Next')": FakeElement(click_fails=True),
        }
    )

    report = run(MultiStepExecutor(FakeLLM(PASSWORD_STAGE)), page, multi_step())

    assert [a[0] for a in page.actions] == ["fill", "click", "press"]
    assert report.transition == "enter"
    assert report.state == StepState.TERMINAL


def test_nothing_resolvable_skips_step_but_still_reobserves(monkeypatch):
    fields_after = [CandidateField(fallback_selectors=("#password",), id="password", input_type="password")]
    scans = stub_scan(monkeypatch, fields=fields_after)
    page = FakePage()
    llm = FakeLLM(PASSWORD_STAGE)

    report = run(MultiStepExecutor(llm), page, multi_step())

    assert report.skipped
    assert page.actions == []
    assert page.waits == []
    assert scans == [page.url]
    assert StepState.TRANSITION_TRIGGERED not in report.history
    assert report.history[-2:] == [StepState.REOBSERVED, StepState.TERMINAL]
    assert report.step_2().field_patterns == ("input[type=password]",)


def test_fill_failure_does_not_abort_transition(monkeypatch):
    stub_scan(monkeypatch)
    page = FakePage(
        elements={
            "input[type=email]": FakeElement(fill_fails=True),
            "button:has-text('Next')": FakeElement(),
        }
    )

    report = run(MultiStepExecutor(FakeLLM(PASSWORD_STAGE)), page, multi_step())

    assert report.filled is False
    assert report.transition == "click"
    assert StepState.FILLED not in report.history


def test_filled_field_without_control_submits_with_enter(monkeypatch):
    stub_scan(monkeypatch)
    page = FakePage(elements={"input[type=email]": FakeElement()})

    report = run(MultiStepExecutor(FakeLLM(PASSWORD_STAGE)), page, multi_step())

    assert report.click_selector is None
    assert report.transition == "enter"
    assert page.actions[-1] == ("press", "input[type=email]", "Enter")


def test_field_falls_back_to_username_patterns_then_candidates(monkeypatch):
    stub_scan(monkeypatch)
    page = FakePage(elements={"#login": FakeElement(), 'input[name="user"]': FakeElement()})
    classification = multi_step(field_patterns=("#stale",), username=("#login",))

    report = run(MultiStepExecutor(FakeLLM(PASSWORD_STAGE)), page, classification)
    assert report.fill_selector == "#login"

    page = FakePage(
        elements={
            'input[name="csrf"]': FakeElement(visible=False),
            'input[name="user"]': FakeElement(),
        }
    )
    fields = [
        CandidateField(fallback_selectors=('input[name="csrf"]',), name="csrf", input_type="hidden"),
        CandidateField(fallback_selectors=('input[name="user"]',), name="user", input_type="text"),
    ]
    report = run(MultiStepExecutor(FakeLLM(PASSWORD_STAGE)), page, multi_step(field_patterns=()), fields)
    assert report.fill_selector == 'input[name="user"]'


def test_control_falls_back_to_extracted_candidates(monkeypatch):
    stub_scan(monkeypatch)
    page = FakePage(elements={"input[type=email]": FakeElement(), 'text="Weiter"': FakeElement()})
    controls = [
        CandidateControl(fallback_selectors=("#gone",), tag="a", id="gone"),
        CandidateControl(fallback_selectors=('text="Weiter"', 'button:has-text("Weiter")'), tag="button", text="Weiter"),
    ]

    report = run(MultiStepExecutor(FakeLLM(PASSWORD_STAGE)), page, multi_step(), controls=controls)

    assert report.click_selector == 'text="Weiter"'
    assert report.transition == "click"


def test_second_stage_failure_yields_empty_step_2(monkeypatch):
    stub_scan(monkeypatch)
    page = FakePage(elements={"input[type=email]": FakeElement(), "button:has-text('Next')": FakeElement()})

    report = run(MultiStepExecutor(FakeLLM(RuntimeError("quota exceeded"))), page, multi_step())

    assert report.step_2() == StepPatterns("password", (), ())
    assert report.state == StepState.TERMINAL


def test_explicit_zero_click_timeout_is_kept(monkeypatch):
    stub_scan(monkeypatch)
    page = FakePage(elements={"input[type=email]": FakeElement(), "button:has-text('Next')": FakeElement()})
    executor = MultiStepExecutor(FakeLLM(PASSWORD_STAGE), click_timeout_ms=0)

    run(executor, page, multi_step())

    assert executor.click_timeout_ms == 0
    assert ("click", "button:has-text('Next')", 0) in page.actions
