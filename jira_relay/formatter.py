"""Ticket labels and monitoring custom properties derived from a lifecycle event."""

import logging

from jira_relay.models import EvaluationFinished, LifecycleEvent, format_number

logger = logging.getLogger(__name__)

# Jira rejects labels longer than this
MAX_LABEL_LENGTH = 255

RESERVED_LABEL_KEYS = frozenset({"keptn_project", "keptn_result"})


def sanitize(text: str) -> str:
    """Jira labels can't contain spaces."""
    return text.replace(" ", "-")


def labels(event: LifecycleEvent) -> list[str]:
    """Return the ticket labels: the fixed keptn_* set, then the event's own labels.

    The stage is emitted under the keptn_service key; there is no keptn_stage label.
    """
    result = [
        f"keptn_project:{sanitize(event.project)}",
        f"keptn_service:{sanitize(event.service)}",
        f"keptn_service:{sanitize(event.stage)}",
        f"keptn_result:{event.result}",
    ]

    for key, value in event.labels.items():
        label = f"{sanitize(key)}:{sanitize(value)}"
        prefix = label.split(":", 1)[0]
        if prefix in RESERVED_LABEL_KEYS:
            logger.warning("Skipping label %s: key %s is reserved", label, prefix)
            continue
        if len(label) > MAX_LABEL_LENGTH:
            logger.warning(
                "Skipping label %s: Jira accepts labels of max %d chars and this label has %d",
                label,
                MAX_LABEL_LENGTH,
                len(label),
            )
            continue
        result.append(label)

    return result


def properties(event: LifecycleEvent, ticket_url: str, bridge_url: str) -> dict[str, str]:
    """Human-readable custom properties attached to the monitoring event."""
    props = {"Result": event.result}
    if isinstance(event, EvaluationFinished):
        props["Quality Gate Score"] = format_number(event.score)
    props.update(
        {
            "Keptn Project": event.project,
            "Keptn Service": event.service,
            "Keptn Stage": event.stage,
            "Ticket": ticket_url,
            "SentBy": "Keptn",
            "BridgeURL": bridge_link(bridge_url, event),
        }
    )
    return props


def bridge_link(bridge_url: str, event: LifecycleEvent) -> str:
    return f"{bridge_url}/project/{event.project}/sequence/{event.keptn_context}"
