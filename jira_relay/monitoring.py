"""Echoes a "ticket created" info event to Dynatrace.

Relies on the standard keptn tags (keptn_project, keptn_stage, keptn_service)
being present on the monitored service entity.
"""

import logging
from collections.abc import Callable

import httpx

from jira_relay.formatter import properties
from jira_relay.models import (
    DtAttachRules,
    DtInfoEvent,
    DtTag,
    DtTagRule,
    EvaluationFinished,
    ForwardResult,
    LifecycleEvent,
    RemediationFinished,
)
from jira_relay.settings import EchoSettings, load_echo_settings

logger = logging.getLogger(__name__)

DYNATRACE = "dynatrace"
CUSTOM_INFO = "CUSTOM_INFO"
EVENT_SOURCE = "jira-service"

_DESCRIPTIONS = {
    EvaluationFinished: "Keptn Quality Gate Evaluation",
    RemediationFinished: "Keptn Remediation Attempt",
}


def issue_key_from_url(ticket_url: str) -> str:
    """https://x.atlassian.net/browse/OPS-42 → OPS-42"""
    return ticket_url.rsplit("/", 1)[-1]


def attach_rules(event: LifecycleEvent) -> DtAttachRules:
    return DtAttachRules(
        tag_rule=[
            DtTagRule(
                me_types=["SERVICE"],
                tags=[
                    DtTag(context="CONTEXTLESS", key="keptn_project", value=event.project),
                    DtTag(context="CONTEXTLESS", key="keptn_stage", value=event.stage),
                    DtTag(context="CONTEXTLESS", key="keptn_service", value=event.service),
                ],
            )
        ]
    )


class DynatraceForwarder:
    def __init__(
        self,
        bridge_url: str,
        timeout: float = 30.0,
        echo_settings: Callable[[], EchoSettings] = load_echo_settings,
    ) -> None:
        self._bridge_url = bridge_url
        self._timeout = timeout
        self._echo_settings = echo_settings

    def build_event(self, event_type: str, ticket_url: str, event: LifecycleEvent) -> DtInfoEvent:
        return DtInfoEvent(
            event_type=event_type,
            source=EVENT_SOURCE,
            title=f"Ticket Created: {issue_key_from_url(ticket_url)}",
            attach_rules=attach_rules(event),
            description=_DESCRIPTIONS.get(type(event), "Keptn Event"),
            custom_properties=properties(event, ticket_url, self._bridge_url),
        )

    def forward(
        self,
        destination: str,
        event_type: str,
        ticket_url: str,
        event: LifecycleEvent,
        echo: EchoSettings | None = None,
    ) -> ForwardResult:
        """POST one info event.

        Uses the caller's ``echo`` snapshot when given, else reads credentials from the environment.
        """
        logger.info("Sending event to: %s as type: %s", destination, event_type)
        if echo is None:
            echo = self._echo_settings()
        if destination != DYNATRACE or not echo.has_dynatrace_credentials:
            logger.debug("No %s credentials (DT_TENANT / DT_API_TOKEN); not sending", destination)
            return ForwardResult(skipped=True)

        token = echo.dt_api_token.get_secret_value()  # type: ignore[union-attr]
        payload = self.build_event(event_type, ticket_url, event).to_payload()
        try:
            response = httpx.post(
                f"https://{echo.dt_tenant}/api/v1/events",
                json=payload,
                headers={
                    "accept": "application/json",
                    "Authorization": f"Api-Token {token}",
                },
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            return ForwardResult(error=f"{type(exc).__name__}: {exc}")

        if response.is_error:
            return ForwardResult(
                status_code=response.status_code,
                error=f"Dynatrace API returned {response.status_code}: {response.text}",
            )
        return ForwardResult(delivered=True, status_code=response.status_code)
