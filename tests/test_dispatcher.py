"""End-to-end dispatch tests: event in, Jira and Dynatrace calls out (pytest-httpx)."""

import json
from unittest.mock import MagicMock

import pytest
from conftest import BRIDGE_URL, JIRA_BASE_URL, make_settings
from pytest_httpx import HTTPXMock

from jira_relay.dispatcher import Dispatcher, build_dispatcher
from jira_relay.models import EvaluationFinished, ForwardResult, RemediationFinished
from jira_relay.monitoring import DynatraceForwarder
from jira_relay.providers.jira import ISSUE_PATH
from jira_relay.settings import EchoSettings

ISSUE_URL = f"{JIRA_BASE_URL}{ISSUE_PATH}"
DT_URL = "https://abc123.live.dynatrace.com/api/v1/events"


@pytest.fixture
def echo_on(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SEND_EVENT", "true")
    monkeypatch.setenv("DT_TENANT", "abc123.live.dynatrace.com")
    monkeypatch.setenv("DT_API_TOKEN", "dt0c01.secret")


def _jira_requests(httpx_mock: HTTPXMock) -> list:
    return [r for r in httpx_mock.get_requests() if str(r.url) == ISSUE_URL]


def _dt_requests(httpx_mock: HTTPXMock) -> list:
    return [r for r in httpx_mock.get_requests() if str(r.url) == DT_URL]


class TestEvaluation:
    def test_creates_one_ticket(self, httpx_mock: HTTPXMock, evaluation_event: EvaluationFinished) -> None:
        httpx_mock.add_response(method="POST", url=ISSUE_URL, status_code=201, json={"key": "OPS-42"})
        created = build_dispatcher(make_settings()).handle(evaluation_event)

        assert created is not None
        assert created.identifier == "OPS-42"
        (request,) = _jira_requests(httpx_mock)
        fields = json.loads(request.content)["fields"]
        assert "prod" in fields["summary"]
        assert "fail" in fields["summary"]
        assert "keptn_result:fail" in fields["labels"]

    def test_toggle_off_makes_no_calls(
        self, httpx_mock: HTTPXMock, evaluation_event: EvaluationFinished, echo_on: None
    ) -> None:
        created = build_dispatcher(make_settings(jira_ticket_for_evaluations=False)).handle(evaluation_event)
        assert created is None
        assert httpx_mock.get_requests() == []

    def test_echo_off_makes_no_monitoring_call(
        self, httpx_mock: HTTPXMock, evaluation_event: EvaluationFinished, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DT_TENANT", "abc123.live.dynatrace.com")
        monkeypatch.setenv("DT_API_TOKEN", "dt0c01.secret")
        httpx_mock.add_response(method="POST", url=ISSUE_URL, status_code=201, json={"key": "OPS-42"})
        build_dispatcher(make_settings()).handle(evaluation_event)
        assert _dt_requests(httpx_mock) == []

    def test_problem_toggle_does_not_affect_evaluations(
        self, httpx_mock: HTTPXMock, evaluation_event: EvaluationFinished
    ) -> None:
        httpx_mock.add_response(method="POST", url=ISSUE_URL, status_code=201, json={"key": "OPS-1"})
        created = build_dispatcher(make_settings(jira_ticket_for_problems=False)).handle(evaluation_event)
        assert created is not None


class TestRemediation:
    @pytest.mark.usefixtures("echo_on")
    def test_echo_carries_ticket_url(self, httpx_mock: HTTPXMock, remediation_event: RemediationFinished) -> None:
        httpx_mock.add_response(method="POST", url=ISSUE_URL, status_code=201, json={"key": "OPS-77"})
        httpx_mock.add_response(method="POST", url=DT_URL, json={"storedEventIds": [1]})

        build_dispatcher(make_settings()).handle(remediation_event)

        (dt_request,) = _dt_requests(httpx_mock)
        body = json.loads(dt_request.content)
        assert body["customProperties"]["Ticket"] == f"{JIRA_BASE_URL}/browse/OPS-77"
        assert body["title"] == "Ticket Created: OPS-77"

    @pytest.mark.usefixtures("echo_on")
    def test_ticket_created_before_echo(self, httpx_mock: HTTPXMock, remediation_event: RemediationFinished) -> None:
        httpx_mock.add_response(method="POST", url=ISSUE_URL, status_code=201, json={"key": "OPS-77"})
        httpx_mock.add_response(method="POST", url=DT_URL, json={})

        build_dispatcher(make_settings()).handle(remediation_event)

        assert [str(r.url) for r in httpx_mock.get_requests()] == [ISSUE_URL, DT_URL]

    @pytest.mark.usefixtures("echo_on")
    def test_toggle_off_makes_no_calls(self, httpx_mock: HTTPXMock, remediation_event: RemediationFinished) -> None:
        created = build_dispatcher(make_settings(jira_ticket_for_problems=False)).handle(remediation_event)
        assert created is None
        assert httpx_mock.get_requests() == []

    @pytest.mark.usefixtures("echo_on")
    def test_tracker_failure_skips_echo_and_does_not_raise(
        self, httpx_mock: HTTPXMock, remediation_event: RemediationFinished
    ) -> None:
        httpx_mock.add_response(method="POST", url=ISSUE_URL, status_code=500, text="boom")
        created = build_dispatcher(make_settings()).handle(remediation_event)
        assert created is None
        assert _dt_requests(httpx_mock) == []

    @pytest.mark.usefixtures("echo_on")
    def test_echo_failure_is_logged_not_raised(
        self, httpx_mock: HTTPXMock, remediation_event: RemediationFinished, caplog: pytest.LogCaptureFixture
    ) -> None:
        httpx_mock.add_response(method="POST", url=ISSUE_URL, status_code=201, json={"key": "OPS-77"})
        httpx_mock.add_response(method="POST", url=DT_URL, status_code=503, text="unavailable")
        created = build_dispatcher(make_settings()).handle(remediation_event)
        assert created is not None
        assert "Monitoring echo for OPS-77 failed" in caplog.text


class TestIsolation:
    def test_unexpected_error_is_swallowed(self, evaluation_event: EvaluationFinished) -> None:
        provider = MagicMock()
        provider.create_issue.side_effect = ValueError("unexpected")
        dispatcher = Dispatcher(make_settings(), provider, DynatraceForwarder(BRIDGE_URL))
        assert dispatcher.handle(evaluation_event) is None

    def test_echo_toggle_read_per_dispatch(self, remediation_event: RemediationFinished) -> None:
        provider = MagicMock()
        provider.create_issue.return_value = MagicMock(url=f"{JIRA_BASE_URL}/browse/OPS-1", identifier="OPS-1")
        forwarder = MagicMock()
        forwarder.forward.return_value = ForwardResult(delivered=True)
        echo_off, echo_on = MagicMock(send_event=False), MagicMock(send_event=True)
        toggles = iter([echo_off, echo_on])
        dispatcher = Dispatcher(make_settings(), provider, forwarder, echo_settings=lambda: next(toggles))

        dispatcher.handle(remediation_event)
        forwarder.forward.assert_not_called()
        dispatcher.handle(remediation_event)
        forwarder.forward.assert_called_once_with(
            "dynatrace", "CUSTOM_INFO", f"{JIRA_BASE_URL}/browse/OPS-1", remediation_event, echo=echo_on
        )

    def test_echo_settings_read_once_per_dispatch(self, remediation_event: RemediationFinished) -> None:
        provider = MagicMock()
        provider.create_issue.return_value = MagicMock(url=f"{JIRA_BASE_URL}/browse/OPS-1", identifier="OPS-1")
        echo_settings = MagicMock(return_value=EchoSettings(send_event=True))
        forwarder_echo = MagicMock(return_value=EchoSettings(send_event=False))
        forwarder = DynatraceForwarder(BRIDGE_URL, echo_settings=forwarder_echo)
        dispatcher = Dispatcher(make_settings(), provider, forwarder, echo_settings=echo_settings)

        assert dispatcher.handle(remediation_event) is not None
        echo_settings.assert_called_once_with()
        forwarder_echo.assert_not_called()
