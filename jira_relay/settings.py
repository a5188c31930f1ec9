"""Settings resolution: environment variables over an optional TOML defaults file."""

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

import tomlkit
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_PATH = Path.home() / ".config" / "jira-relay" / "config.toml"

MANDATORY_FIELDS = (
    "jira_base_url",
    "jira_username",
    "jira_api_token",
    "jira_project_key",
    "jira_issue_type",
    "keptn_domain",
)


class RelaySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    # Jira
    jira_base_url: str = ""
    jira_username: str = ""
    jira_api_token: SecretStr | None = None
    jira_assignee_id: str = ""
    jira_reporter_id: str = ""
    jira_project_key: str = ""
    jira_issue_type: str = ""
    jira_ticket_for_problems: bool = False  # remediation.finished
    jira_ticket_for_evaluations: bool = False  # evaluation.finished

    # Keptn
    keptn_domain: str = ""
    keptn_bridge_url: str = ""  # falls back to keptn_domain

    debug: bool = False
    http_timeout: float = 30.0

    @property
    def bridge_url(self) -> str:
        return self.keptn_bridge_url or self.keptn_domain


class EchoSettings(BaseSettings):
    """Monitoring echo toggle and credentials, read from the environment on every dispatch."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    send_event: bool = False
    dt_tenant: str = ""
    dt_api_token: SecretStr | None = None

    @property
    def has_dynatrace_credentials(self) -> bool:
        return bool(self.dt_tenant and self.dt_api_token and self.dt_api_token.get_secret_value())


def load_echo_settings() -> EchoSettings:
    return EchoSettings()


@lru_cache(maxsize=4)
def _load_toml(path: Path) -> tomlkit.TOMLDocument:
    """Load the defaults file, returning an empty document if missing."""
    if not path.exists():
        return tomlkit.document()
    return tomlkit.load(path.open())


def _file_defaults(config: Mapping) -> dict:
    # Only known scalar keys; env vars present in the process always win over the file
    known = RelaySettings.model_fields
    return {
        key: value
        for key, value in config.items()
        if key in known and not isinstance(value, Mapping) and key.upper() not in os.environ
    }


def get_settings(config_path: Path | None = None) -> RelaySettings:
    """Build the immutable settings snapshot used for the whole process lifetime.

    Precedence (highest to lowest):
    1. Process environment variables
    2. config.toml (``--config`` or ~/.config/jira-relay/config.toml)
    3. .env in cwd
    4. Field defaults
    """
    toml_config = _load_toml(config_path or CONFIG_PATH)
    return RelaySettings(**_file_defaults(toml_config))


def missing_mandatory(settings: RelaySettings) -> list[str]:
    """Names of the mandatory environment variables that are unset."""
    missing = []
    for name in MANDATORY_FIELDS:
        value = getattr(settings, name)
        if isinstance(value, SecretStr):
            value = value.get_secret_value()
        if not value:
            missing.append(name.upper())
    return missing
