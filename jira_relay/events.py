"""Keptn CloudEvent intake: envelope parsing and decoding into lifecycle events."""

import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from jira_relay.models import (
    EvaluationFinished,
    IndicatorResult,
    LifecycleEvent,
    RemediationFinished,
    Violation,
    ViolationValue,
)

logger = logging.getLogger(__name__)

EVALUATION_FINISHED = "sh.keptn.event.evaluation.finished"
REMEDIATION_FINISHED = "sh.keptn.event.remediation.finished"


class EventDecodeError(ValueError):
    """Inbound payload could not be decoded; no ticket is attempted."""


class KeptnCloudEvent(BaseModel):
    """CloudEvents 1.0 envelope as sent by the Keptn distributor."""

    model_config = ConfigDict(extra="ignore")

    specversion: str = "1.0"
    type: str
    source: str = ""
    id: str = ""
    time: str | None = None
    datacontenttype: str | None = "application/json"
    shkeptncontext: str = ""
    data: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Wire payloads (Keptn spec v0.2)
# ---------------------------------------------------------------------------


class _SLIValue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    metric: str = ""
    value: ViolationValue | None = None
    success: bool = True
    message: str = ""


class _SLITarget(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    criteria: str = ""
    target_value: ViolationValue | None = Field(default=None, alias="targetValue")
    violated: bool = False


class _LegacyViolation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: Any = ""
    value: ViolationValue | None = None
    breach: str = ""
    threshold: ViolationValue | None = None


class _IndicatorResultPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    score: float = 0.0
    status: str = ""
    value: _SLIValue | None = None
    targets: list[_SLITarget] = []
    violations: list[_LegacyViolation] = []


class _EvaluationDetails(BaseModel):
    # legacy senders use epoch ints for the window
    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    time_start: str = Field(default="", alias="timeStart")
    time_end: str = Field(default="", alias="timeEnd")
    result: str = ""
    score: float = 0.0
    indicator_results: list[_IndicatorResultPayload] | None = Field(default=None, alias="indicatorResults")


class _EventData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    project: str = ""
    stage: str = ""
    service: str = ""
    labels: dict[str, str] | None = None
    status: str = ""
    result: str = ""
    message: str = ""


class _EvaluationFinishedData(_EventData):
    evaluation: _EvaluationDetails = _EvaluationDetails()


def _violation_key(raw: Any) -> str:
    # Legacy payloads carry the key as arbitrary JSON
    if isinstance(raw, str):
        return raw
    return json.dumps(raw, separators=(",", ":"), sort_keys=True)


def _indicator_from_payload(node: _IndicatorResultPayload) -> IndicatorResult:
    metric = (node.value.metric if node.value else "") or node.id
    value = node.value.value if node.value else None
    violations = [
        Violation(
            key=_violation_key(v.key),
            value=v.value if v.value is not None else "",
            breach=v.breach,
            threshold=v.threshold,
        )
        for v in node.violations
    ]
    violations += [
        Violation(
            key=t.criteria,
            value=value if value is not None else "",
            breach="violated",
            threshold=t.target_value,
        )
        for t in node.targets
        if t.violated
    ]
    return IndicatorResult(
        metric=metric,
        value=value,
        score=node.score,
        status=node.status,
        violations=violations,
    )


def _decode_evaluation(envelope: KeptnCloudEvent) -> EvaluationFinished:
    data = _EvaluationFinishedData.model_validate(envelope.data or {})
    evaluation = data.evaluation
    return EvaluationFinished(
        event_id=envelope.id,
        keptn_context=envelope.shkeptncontext,
        project=data.project,
        service=data.service,
        stage=data.stage,
        result=evaluation.result,
        message=data.message,
        labels=data.labels or {},
        score=evaluation.score,
        time_start=evaluation.time_start,
        time_end=evaluation.time_end,
        indicator_results=[_indicator_from_payload(n) for n in evaluation.indicator_results or []],
    )


def _decode_remediation(envelope: KeptnCloudEvent) -> RemediationFinished:
    data = _EventData.model_validate(envelope.data or {})
    return RemediationFinished(
        event_id=envelope.id,
        keptn_context=envelope.shkeptncontext,
        project=data.project,
        service=data.service,
        stage=data.stage,
        result=data.result,
        message=data.message,
        labels=data.labels or {},
    )


def decode_event(envelope: KeptnCloudEvent) -> LifecycleEvent | None:
    """Decode the envelope's data for the supported event types.

    Returns None for any other type. Raises EventDecodeError when the data does
    not match the payload shape of a supported type.
    """
    try:
        if envelope.type == EVALUATION_FINISHED:
            return _decode_evaluation(envelope)
        if envelope.type == REMEDIATION_FINISHED:
            return _decode_remediation(envelope)
    except ValidationError as exc:
        raise EventDecodeError(f"Invalid {envelope.type} payload: {exc}") from exc
    logger.debug("Ignoring event type %s (%s)", envelope.type, envelope.id)
    return None


def parse_envelope(body: Any, headers: Mapping[str, str] | None = None) -> KeptnCloudEvent:
    """Build an envelope from a structured-mode body or a binary-mode (ce-* headers) request."""
    headers = {k.lower(): v for k, v in (headers or {}).items()}
    try:
        if "ce-type" in headers:
            if not isinstance(body, dict):
                raise EventDecodeError("Binary-mode event data must be a JSON object")
            return KeptnCloudEvent(
                specversion=headers.get("ce-specversion", "1.0"),
                type=headers["ce-type"],
                source=headers.get("ce-source", ""),
                id=headers.get("ce-id", ""),
                time=headers.get("ce-time"),
                datacontenttype=headers.get("content-type"),
                shkeptncontext=headers.get("ce-shkeptncontext", ""),
                data=body,
            )
        if not isinstance(body, dict):
            raise EventDecodeError("CloudEvent envelope must be a JSON object")
        return KeptnCloudEvent.model_validate(body)
    except ValidationError as exc:
        raise EventDecodeError(f"Invalid CloudEvent envelope: {exc}") from exc


def load_event(raw: str | bytes) -> LifecycleEvent | None:
    """Parse a structured-mode CloudEvent JSON document and decode it."""
    try:
        body = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise EventDecodeError(f"Event is not valid JSON: {exc}") from exc
    return decode_event(parse_envelope(body))
