"""Jira REST API v2 provider."""

import httpx

from jira_relay.models import CreatedIssue
from jira_relay.providers.base import TicketProvider, TrackerError
from jira_relay.settings import RelaySettings

ISSUE_PATH = "/rest/api/2/issue"


def _error_detail(response: httpx.Response) -> str:
    """Join Jira's errorMessages / errors into one line, falling back to the raw body."""
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if not isinstance(data, dict):
        return response.text
    parts = [str(m) for m in data.get("errorMessages") or []]
    errors = data.get("errors")
    if isinstance(errors, dict):
        parts += [f"{k}: {v}" for k, v in errors.items()]
    return "; ".join(parts) or response.text


class JiraProvider(TicketProvider):
    def __init__(self, settings: RelaySettings) -> None:
        self._base_url = settings.jira_base_url.rstrip("/")
        token = settings.jira_api_token.get_secret_value() if settings.jira_api_token else ""
        self._auth = (settings.jira_username, token)
        self._assignee_id = settings.jira_assignee_id
        self._reporter_id = settings.jira_reporter_id
        self._project_key = settings.jira_project_key
        self._issue_type = settings.jira_issue_type
        self._timeout = settings.http_timeout

    def browse_url(self, key: str) -> str:
        return f"{self._base_url}/browse/{key}"

    def _fields(self, title: str, description: str, labels: list[str]) -> dict:
        fields: dict = {
            "project": {"key": self._project_key},
            "issuetype": {"name": self._issue_type},
            "summary": title,
            "description": description,
            "labels": labels,
        }
        if self._assignee_id:
            fields["assignee"] = {"accountId": self._assignee_id}
        if self._reporter_id:
            fields["reporter"] = {"accountId": self._reporter_id}
        return fields

    def _post(self, path: str, body: dict) -> dict:
        response = httpx.post(
            f"{self._base_url}{path}",
            auth=self._auth,
            headers={"Accept": "application/json"},
            json=body,
            timeout=self._timeout,
        )
        if response.status_code == 401:
            raise TrackerError(
                "Jira API returned 401. Check JIRA_USERNAME and JIRA_API_TOKEN.",
                status_code=401,
                body=response.text,
            )
        if response.is_error:
            raise TrackerError(
                f"Jira API returned {response.status_code}: {_error_detail(response)}",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise TrackerError(
                "Jira API returned a non-JSON body", status_code=response.status_code, body=response.text
            ) from exc

    def create_issue(
        self,
        title: str,
        description: str,
        labels: list[str],
    ) -> CreatedIssue:
        node = self._post(ISSUE_PATH, {"fields": self._fields(title, description, labels)})
        key = node.get("key") if isinstance(node, dict) else None
        if not key:
            raise TrackerError("Jira issue create response has no key", body=str(node))
        return CreatedIssue(
            identifier=key,
            title=title,
            url=self.browse_url(key),
            provider="jira",
        )
