from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Optional, Sequence

FlowType = Literal["simple_login", "multi_step_login", "incomplete"]

SIMPLE_LOGIN = "simple_login"
MULTI_STEP_LOGIN = "multi_step_login"
INCOMPLETE = "incomplete"
KNOWN_FLOW_TYPES = (SIMPLE_LOGIN, MULTI_STEP_LOGIN, INCOMPLETE)

# The engine only drives a username screen followed by a password screen.
MULTI_STEP_COUNT = 2

# Key spellings seen from the pattern service, most preferred first.
TYPE_KEYS = ("type", "flow_type", "flowType")
USERNAME_KEYS = ("username_patterns", "usernamePatterns")
PASSWORD_KEYS = ("password_patterns", "passwordPatterns")
SUBMIT_KEYS = ("submit_patterns", "submitPatterns")
STEPS_KEYS = ("steps", "step_count", "stepCount")
STEP_1_KEYS = ("step_1", "step1")
STEP_2_KEYS = ("step_2", "step2")
FIELD_TYPE_KEYS = ("field_type", "fieldType")
FIELD_PATTERN_KEYS = ("field_patterns", "fieldPatterns")


@dataclass(frozen=True)
class CandidateField:
    """One input element observed on the page during a single extraction pass."""

    fallback_selectors: tuple[str, ...]
    id: str = ""
    name: str = ""
    input_type: str = ""
    placeholder: str = ""
    aria_label: str = ""
    label: str = ""
    classes: str = ""
    outer_html: str = ""

    def to_prompt_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.input_type,
            "placeholder": self.placeholder,
            "aria": self.aria_label,
            "label": self.label,
            "classes": self.classes,
            "outerHTML": self.outer_html,
            "suggestedSelectors": list(self.fallback_selectors),
        }


@dataclass(frozen=True)
class CandidateControl:
    """One clickable element observed on the page during a single extraction pass."""

    fallback_selectors: tuple[str, ...]
    tag: str = ""
    text: str = ""
    id: str = ""
    aria_label: str = ""
    classes: str = ""
    outer_html: str = ""

    def to_prompt_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "text": self.text,
            "id": self.id,
            "aria": self.aria_label,
            "classes": self.classes,
            "outerHTML": self.outer_html,
            "suggestedSelectors": list(self.fallback_selectors),
        }


def _first_present(data: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def pattern_list(data: Any, keys: Sequence[str]) -> tuple[str, ...]:
    """Read a pattern list under the first matching key, defaulting to empty.

    A bare string is accepted as a one-element list; anything that is not a
    non-empty string is dropped.
    """

    if not isinstance(data, Mapping):
        return ()
    value = _first_present(data, keys)
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(item.strip() for item in value if isinstance(item, str) and item.strip())


def text_value(data: Any, keys: Sequence[str]) -> Optional[str]:
    if not isinstance(data, Mapping):
        return None
    value = _first_present(data, keys)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass(frozen=True)
class StepPatterns:
    field_type: str
    field_patterns: tuple[str, ...] = ()
    submit_patterns: tuple[str, ...] = ()

    @classmethod
    def from_llm_output(cls, data: Any, default_field_type: str) -> Optional["StepPatterns"]:
        if not isinstance(data, Mapping):
            return None
        return cls(
            field_type=text_value(data, FIELD_TYPE_KEYS) or default_field_type,
            field_patterns=pattern_list(data, FIELD_PATTERN_KEYS),
            submit_patterns=pattern_list(data, SUBMIT_KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "field_type": self.field_type,
            "field_patterns": list(self.field_patterns),
            "submit_patterns": list(self.submit_patterns),
        }


@dataclass(frozen=True)
class PatternProposal:
    """What the pattern service answered, normalized once at the parsing boundary."""

    flow_type: Optional[str] = None
    username_patterns: tuple[str, ...] = ()
    password_patterns: tuple[str, ...] = ()
    submit_patterns: tuple[str, ...] = ()
    steps: Optional[int] = None
    step_1: Optional[StepPatterns] = None
    step_2: Optional[StepPatterns] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_llm_output(cls, data: Any) -> "PatternProposal":
        if not isinstance(data, Mapping):
            return cls.incomplete()

        steps_value = _first_present(data, STEPS_KEYS)
        try:
            steps = int(steps_value) if steps_value is not None else None
        except (TypeError, ValueError):
            steps = None

        return cls(
            flow_type=text_value(data, TYPE_KEYS),
            username_patterns=pattern_list(data, USERNAME_KEYS),
            password_patterns=pattern_list(data, PASSWORD_KEYS),
            submit_patterns=pattern_list(data, SUBMIT_KEYS),
            steps=steps,
            step_1=StepPatterns.from_llm_output(_first_present(data, STEP_1_KEYS), "username"),
            step_2=StepPatterns.from_llm_output(_first_present(data, STEP_2_KEYS), "password"),
            raw=dict(data),
        )

    @classmethod
    def incomplete(cls) -> "PatternProposal":
        return cls(flow_type=INCOMPLETE)


@dataclass(frozen=True)
class FlowClassification:
    flow_type: FlowType
    declared_type: Optional[str] = None
    username_patterns: tuple[str, ...] = ()
    password_patterns: tuple[str, ...] = ()
    submit_patterns: tuple[str, ...] = ()
    step_1: Optional[StepPatterns] = None
    overrides: tuple[str, ...] = ()

    @property
    def overridden(self) -> bool:
        return bool(self.overrides)

    def flat_patterns(self) -> dict[str, list[str]]:
        return {
            "username_patterns": list(self.username_patterns),
            "password_patterns": list(self.password_patterns),
            "submit_patterns": list(self.submit_patterns),
        }


def build_flat_record(url: str, flow_type: str, classification: FlowClassification) -> dict[str, Any]:
    return {"url": url, flow_type: classification.flat_patterns()}


def build_multi_step_record(url: str, step_1: StepPatterns, step_2: StepPatterns) -> dict[str, Any]:
    return {
        "url": url,
        MULTI_STEP_LOGIN: {
            "steps": MULTI_STEP_COUNT,
            "step_1": step_1.to_dict(),
            "step_2": step_2.to_dict(),
        },
    }
