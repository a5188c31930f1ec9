"""Ticket title and Jira wiki-markup description for a lifecycle event.

Values are interpolated verbatim: characters Jira treats as markup (``|``,
``*``, ``[``) are not escaped.
"""

from jira_relay.formatter import bridge_link, labels
from jira_relay.models import (
    EvaluationFinished,
    IndicatorResult,
    LifecycleEvent,
    RemediationFinished,
    Ticket,
    format_number,
)

# Jira icon shortcuts; emojis sent via the API don't render like the UI ones
STATUS_GLYPHS = {
    "pass": "(/)",
    "warning": "(!)",
    "fail": "(x)",
}


def annotate_result(result: str) -> str:
    """Append the status glyph for pass/warning/fail; other values are returned unchanged."""
    glyph = STATUS_GLYPHS.get(result)
    return f"{result} {glyph}" if glyph else result


def title(event: LifecycleEvent) -> str:
    return (
        f"[{event.title_tag}] {event.project} - {event.service} - {event.stage} - Result: {event.result}"
    )


def _sli_section(indicators: list[IndicatorResult]) -> str:
    rows = ["||*SLI*||*Value*||*Status*||*Score*||"]
    violations = []
    for indicator in indicators:
        value = str(indicator.value) if indicator.value is not None else ""
        rows.append(
            f"|{indicator.metric}|{value}|{annotate_result(indicator.status)}|{format_number(indicator.score)}|"
        )
        for v in indicator.violations:
            line = f"Violation: {indicator.metric} {v.key} = {v.value}"
            if v.breach:
                line += f" (breach: {v.breach}"
                line += f", threshold: {v.threshold})" if v.threshold is not None else ")"
            elif v.threshold is not None:
                line += f" (threshold: {v.threshold})"
            violations.append(line)
    return "\n".join(rows + violations) + "\n\n"


def render(event: LifecycleEvent, bridge_url: str) -> str:
    """Render the ticket description. Deterministic for a given event and bridge URL."""
    match event:
        case EvaluationFinished():
            description = "||*Result*||*Score*||\n"
            description += f"|{annotate_result(event.result)}|{format_number(event.score)}|\n\n"
            description += f"Start Time: {event.time_start}\n"
            description += f"End Time: {event.time_end}\n"
            if event.indicator_results:
                description += "\n" + _sli_section(event.indicator_results)
        case RemediationFinished():
            description = "||*Remediation Status*||*Project*||*Service*||*Stage*||\n"
            description += (
                f"|{annotate_result(event.result)}|{event.project}|{event.service}|{event.stage}|\n\n"
            )
            description += f"Message: {event.message}\n\n"
        case _:
            raise TypeError(f"Unsupported event type: {type(event).__name__}")

    description += f"Keptn Context ID: {event.keptn_context}\n"
    description += f"[Link To Keptn's Bridge|{bridge_link(bridge_url, event)}]"
    return description


def build_ticket(event: LifecycleEvent, bridge_url: str) -> Ticket:
    return Ticket(title=title(event), description=render(event, bridge_url), labels=labels(event))
