"""Files one ticket with the tracker; failures come back as values, not exceptions."""

import logging

import httpx

from jira_relay.models import CreatedIssue, SubmitFailure, Ticket
from jira_relay.providers.base import TicketProvider, TrackerError

logger = logging.getLogger(__name__)


def submit_ticket(provider: TicketProvider, ticket: Ticket) -> CreatedIssue | SubmitFailure:
    """Make exactly one create call; never retries."""
    try:
        created = provider.create_issue(
            title=ticket.title,
            description=ticket.description,
            labels=ticket.labels,
        )
    except TrackerError as exc:
        logger.error("Creating ticket %r failed: %s", ticket.title, exc)
        if exc.body:
            logger.error("Tracker response body: %s", exc.body)
        return SubmitFailure(reason=str(exc), status_code=exc.status_code, body=exc.body)
    except httpx.HTTPError as exc:
        logger.error("Creating ticket %r failed: %s: %s", ticket.title, type(exc).__name__, exc)
        return SubmitFailure(reason=f"{type(exc).__name__}: {exc}")

    logger.info("Created ticket successfully: %s", created.identifier)
    return created
