"""Shared pydantic models — the contract between intake, rendering and delivery."""

import json
import math
from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def format_number(value: float) -> str:
    """Shortest text for a number: 42.0 → "42", 0.5 → "0.5"."""
    if math.isfinite(value) and value == int(value) and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


# ---------------------------------------------------------------------------
# Violation values
# ---------------------------------------------------------------------------


class NumberValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["number"] = "number"
    value: float

    def __str__(self) -> str:
        return format_number(self.value)


class BooleanValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["boolean"] = "boolean"
    value: bool

    def __str__(self) -> str:
        return "true" if self.value else "false"


class TextValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: str

    def __str__(self) -> str:
        return self.value


def _tag_raw_value(raw: Any) -> Any:
    if isinstance(raw, BaseModel) or (isinstance(raw, dict) and "kind" in raw):
        return raw
    # bool before number: bool is an int subclass
    if isinstance(raw, bool):
        return {"kind": "boolean", "value": raw}
    if isinstance(raw, (int, float)):
        return {"kind": "number", "value": raw}
    if raw is None:
        return raw
    if isinstance(raw, str):
        return {"kind": "text", "value": raw}
    return {"kind": "text", "value": json.dumps(raw, separators=(",", ":"))}


ViolationValue = Annotated[NumberValue | BooleanValue | TextValue, BeforeValidator(_tag_raw_value)]


class Violation(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str = ""
    value: ViolationValue
    breach: str = ""
    threshold: ViolationValue | None = None


class IndicatorResult(BaseModel):
    """One SLI row of an evaluation, normalized from either payload shape."""

    model_config = ConfigDict(frozen=True)

    metric: str
    value: ViolationValue | None = None
    score: float = 0.0
    status: str = ""
    violations: list[Violation] = []


# ---------------------------------------------------------------------------
# Lifecycle events
# ---------------------------------------------------------------------------


class LifecycleEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ClassVar[str] = ""
    title_tag: ClassVar[str] = ""

    event_id: str = ""
    keptn_context: str = ""  # shkeptncontext, used for the bridge deep link
    project: str
    service: str
    stage: str
    result: str  # pass | warning | fail | anything else, kept verbatim
    message: str = ""
    labels: dict[str, str] = {}


class EvaluationFinished(LifecycleEvent):
    kind: ClassVar[str] = "evaluation"
    title_tag: ClassVar[str] = "EVALUATION"

    score: float = 0.0
    time_start: str = ""
    time_end: str = ""
    indicator_results: list[IndicatorResult] = []


class RemediationFinished(LifecycleEvent):
    kind: ClassVar[str] = "remediation"
    title_tag: ClassVar[str] = "REMEDIATION"


# ---------------------------------------------------------------------------
# Tickets
# ---------------------------------------------------------------------------


class Ticket(BaseModel):
    """Everything the tracker needs for one issue; never persisted."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    labels: list[str] = []


class CreatedIssue(BaseModel):
    """Returned by create_issue — minimal, just what the caller needs."""

    model_config = ConfigDict(frozen=True)

    identifier: str  # tracker issue key, e.g. OPS-42
    title: str
    url: str
    provider: str


class SubmitFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str
    status_code: int | None = None
    body: str | None = None


class ForwardResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    delivered: bool = False
    skipped: bool = False
    status_code: int | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Monitoring wire models (Dynatrace events API v1)
# ---------------------------------------------------------------------------


class DtTag(BaseModel):
    model_config = ConfigDict(frozen=True)

    context: str
    key: str
    value: str | None = None


class DtTagRule(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    me_types: list[str] = Field(alias="meTypes")
    tags: list[DtTag]


class DtAttachRules(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    tag_rule: list[DtTagRule] = Field(alias="tagRule")


class DtInfoEvent(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event_type: str = Field(alias="eventType")
    source: str
    attach_rules: DtAttachRules = Field(alias="attachRules")
    custom_properties: dict[str, str] = Field(alias="customProperties")
    description: str
    title: str

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
