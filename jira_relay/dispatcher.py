"""Routes decoded lifecycle events through ticket creation and the monitoring echo."""

import logging
from collections.abc import Callable

from jira_relay.models import (
    CreatedIssue,
    EvaluationFinished,
    LifecycleEvent,
    RemediationFinished,
    SubmitFailure,
)
from jira_relay.monitoring import CUSTOM_INFO, DYNATRACE, DynatraceForwarder
from jira_relay.providers.base import TicketProvider
from jira_relay.providers.jira import JiraProvider
from jira_relay.renderer import build_ticket
from jira_relay.settings import EchoSettings, RelaySettings, load_echo_settings
from jira_relay.submitter import submit_ticket

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(
        self,
        settings: RelaySettings,
        provider: TicketProvider,
        forwarder: DynatraceForwarder,
        echo_settings: Callable[[], EchoSettings] = load_echo_settings,
    ) -> None:
        self._settings = settings
        self._provider = provider
        self._forwarder = forwarder
        self._echo_settings = echo_settings

    def _ticket_enabled(self, event: LifecycleEvent) -> tuple[bool, str]:
        match event:
            case EvaluationFinished():
                return self._settings.jira_ticket_for_evaluations, "JIRA_TICKET_FOR_EVALUATIONS"
            case RemediationFinished():
                return self._settings.jira_ticket_for_problems, "JIRA_TICKET_FOR_PROBLEMS"
            case _:
                return False, "(unsupported event)"

    def handle(self, event: LifecycleEvent) -> CreatedIssue | None:
        """Create the ticket and optionally echo it. Errors are logged, never raised."""
        try:
            return self._handle(event)
        except Exception:
            logger.exception("Handling %s.finished event %s failed", event.kind, event.event_id)
            return None

    def _handle(self, event: LifecycleEvent) -> CreatedIssue | None:
        logger.info("Handling %s.finished event: %s", event.kind, event.event_id)

        enabled, flag = self._ticket_enabled(event)
        if not enabled:
            logger.info(
                "%s is false. Got a %s.finished from Keptn but doing nothing.",
                flag,
                event.kind,
            )
            return None

        logger.info("Creating Jira ticket for %s.finished...", event.kind)
        ticket = build_ticket(event, self._settings.bridge_url)
        outcome = submit_ticket(self._provider, ticket)
        if isinstance(outcome, SubmitFailure):
            logger.warning("No ticket created for %s; skipping monitoring echo", event.event_id)
            return None

        echo = self._echo_settings()
        if echo.send_event:
            result = self._forwarder.forward(DYNATRACE, CUSTOM_INFO, outcome.url, event, echo=echo)
            if result.error:
                logger.error("Monitoring echo for %s failed: %s", outcome.identifier, result.error)
            elif result.delivered:
                logger.info("Monitoring echo sent for %s", outcome.identifier)

        return outcome


def build_dispatcher(settings: RelaySettings) -> Dispatcher:
    return Dispatcher(
        settings=settings,
        provider=JiraProvider(settings),
        forwarder=DynatraceForwarder(bridge_url=settings.bridge_url, timeout=settings.http_timeout),
    )
