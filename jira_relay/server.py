"""FastAPI receiver for Keptn CloudEvents."""

import json
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from jira_relay.dispatcher import Dispatcher, build_dispatcher
from jira_relay.events import EventDecodeError, decode_event, parse_envelope
from jira_relay.settings import RelaySettings, missing_mandatory

logger = logging.getLogger(__name__)


def log_configuration(settings: RelaySettings) -> None:
    """Warn about missing mandatory settings; dump the rest when DEBUG is on."""
    missing = missing_mandatory(settings)
    if missing:
        logger.warning("Missing mandatory input parameters: %s", ", ".join(missing))

    if not settings.debug:
        return
    logger.debug("--- Jira input details ---")
    logger.debug("Base URL: %s", settings.jira_base_url)
    logger.debug("Username: %s", settings.jira_username)
    logger.debug("Assignee ID: %s", settings.jira_assignee_id)
    logger.debug("Reporter ID: %s", settings.jira_reporter_id)
    logger.debug("API Token: %s", settings.jira_api_token)  # SecretStr prints masked
    logger.debug("Project Key: %s", settings.jira_project_key)
    logger.debug("Issue Type: %s", settings.jira_issue_type)
    logger.debug("Keptn Domain: %s", settings.keptn_domain)
    logger.debug("Keptn Bridge URL: %s", settings.bridge_url)
    logger.debug(
        "Will %screate tickets for problems", "" if settings.jira_ticket_for_problems else "NOT "
    )
    logger.debug(
        "Will %screate tickets for evaluations", "" if settings.jira_ticket_for_evaluations else "NOT "
    )


def create_app(settings: RelaySettings, dispatcher: Dispatcher | None = None, path: str = "/") -> FastAPI:
    app = FastAPI(title="jira-relay")
    app.state.settings = settings
    app.state.dispatcher = dispatcher or build_dispatcher(settings)
    log_configuration(settings)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.post(path, status_code=202)
    async def receive(request: Request) -> dict:
        """Accept one CloudEvent. Unsupported types get the same answer as handled ones."""
        raw = await request.body()
        try:
            body = json.loads(raw) if raw else None
            envelope = parse_envelope(body, request.headers)
            event = decode_event(envelope)
        except (json.JSONDecodeError, UnicodeDecodeError, EventDecodeError) as exc:
            logger.error("Could not decode incoming event: %s", exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        logger.info("gotEvent(%s): %s - %s", envelope.type, envelope.shkeptncontext, envelope.id)
        if event is not None:
            # Blocking HTTP calls; each event gets its own worker thread
            await run_in_threadpool(app.state.dispatcher.handle, event)
        return {"status": "accepted"}

    return app
