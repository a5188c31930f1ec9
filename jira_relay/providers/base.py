"""Abstract base class for issue tracker providers."""

from abc import ABC, abstractmethod

from jira_relay.models import CreatedIssue


class TrackerError(RuntimeError):
    """The tracker rejected the request or answered with an unexpected payload."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TicketProvider(ABC):
    @abstractmethod
    def create_issue(
        self,
        title: str,
        description: str,
        labels: list[str],
    ) -> CreatedIssue: ...
