"""Shared test fixtures."""

import pytest

from jira_relay.models import EvaluationFinished, IndicatorResult, RemediationFinished, Violation
from jira_relay.settings import RelaySettings

JIRA_BASE_URL = "https://acme.atlassian.net"
BRIDGE_URL = "https://keptn.example.com/bridge"

_ENV_VARS = (
    "JIRA_BASE_URL",
    "JIRA_USERNAME",
    "JIRA_API_TOKEN",
    "JIRA_ASSIGNEE_ID",
    "JIRA_REPORTER_ID",
    "JIRA_PROJECT_KEY",
    "JIRA_ISSUE_TYPE",
    "JIRA_TICKET_FOR_PROBLEMS",
    "JIRA_TICKET_FOR_EVALUATIONS",
    "KEPTN_DOMAIN",
    "KEPTN_BRIDGE_URL",
    "SEND_EVENT",
    "DT_TENANT",
    "DT_API_TOKEN",
    "DEBUG",
    "HTTP_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Isolate every test from the developer's environment and any .env in cwd."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def make_settings(**kwargs) -> RelaySettings:
    defaults = {
        "jira_base_url": JIRA_BASE_URL,
        "jira_username": "keptn@acme.com",
        "jira_api_token": "jira_token_12345",
        "jira_assignee_id": "acc-assignee",
        "jira_reporter_id": "acc-reporter",
        "jira_project_key": "OPS",
        "jira_issue_type": "Task",
        "jira_ticket_for_problems": True,
        "jira_ticket_for_evaluations": True,
        "keptn_domain": "https://keptn.example.com",
        "keptn_bridge_url": BRIDGE_URL,
    }
    defaults.update(kwargs)
    return RelaySettings(**defaults)  # type: ignore[arg-type]


@pytest.fixture
def settings() -> RelaySettings:
    return make_settings()


@pytest.fixture
def evaluation_event() -> EvaluationFinished:
    return EvaluationFinished(
        event_id="evt-1",
        keptn_context="ctx-123",
        project="shop",
        service="cart",
        stage="prod",
        result="fail",
        score=42,
        time_start="2024-05-01T10:00:00Z",
        time_end="2024-05-01T10:15:00Z",
        labels={"owner": "team a"},
    )


@pytest.fixture
def remediation_event() -> RemediationFinished:
    return RemediationFinished(
        event_id="evt-2",
        keptn_context="ctx-456",
        project="shop",
        service="cart",
        stage="prod",
        result="pass",
        message="Scaled cart to 3 replicas",
    )


@pytest.fixture
def evaluation_with_slis(evaluation_event: EvaluationFinished) -> EvaluationFinished:
    return evaluation_event.model_copy(
        update={
            "indicator_results": [
                IndicatorResult(
                    metric="response_time_p95",
                    value=612.5,
                    score=0,
                    status="fail",
                    violations=[Violation(key="<=+10%", value=612.5, breach="violated", threshold=550)],
                ),
                IndicatorResult(metric="error_rate", value=0, score=1, status="pass"),
            ]
        }
    )


def evaluation_envelope(**data_overrides) -> dict:
    data = {
        "project": "shop",
        "stage": "prod",
        "service": "cart",
        "labels": {"owner": "team a"},
        "status": "succeeded",
        "result": "fail",
        "message": "",
        "evaluation": {
            "timeStart": "2024-05-01T10:00:00Z",
            "timeEnd": "2024-05-01T10:15:00Z",
            "result": "fail",
            "score": 42,
        },
    }
    data.update(data_overrides)
    return {
        "specversion": "1.0",
        "type": "sh.keptn.event.evaluation.finished",
        "source": "lighthouse-service",
        "id": "evt-1",
        "time": "2024-05-01T10:15:01Z",
        "datacontenttype": "application/json",
        "shkeptncontext": "ctx-123",
        "data": data,
    }


def remediation_envelope(**data_overrides) -> dict:
    data = {
        "project": "shop",
        "stage": "prod",
        "service": "cart",
        "status": "succeeded",
        "result": "pass",
        "message": "Scaled cart to 3 replicas",
    }
    data.update(data_overrides)
    return {
        "specversion": "1.0",
        "type": "sh.keptn.event.remediation.finished",
        "source": "remediation-service",
        "id": "evt-2",
        "shkeptncontext": "ctx-456",
        "data": data,
    }
