"""Webhook delivery pipeline.

verify signature → parse → resolve route → resolve fields → build → deliver.
Each step consumes the previous one's output and any failure ends the
request; nothing is retried and nothing is sent after a failure.
"""

from __future__ import annotations

import enum
from typing import Awaitable, Callable, Optional

import httpx

from repoact.logs import get_logger
from repoact.schemas import Action, Scenario, WebhookEvent, parse_event, scenario_of
from repoact.services.github import GitHubAppClient
from repoact.services.messages import PULL_REQUEST_ACTIONS, MessageSynthesizer
from repoact.services.resolver import (
    Connect,
    ResolvedFields,
    needs_pull_request_lookup,
    resolve_comment_target,
    resolve_deployment_context,
    resolve_pull_request_flags,
)
from repoact.services.routes import Route, RouteStore, resolve_route
from repoact.services.secrets import Secrets
from repoact.services.slack import NotificationMessage, post_message
from repoact.utils import SignatureMode, require_signature

log = get_logger(__name__)

Deliver = Callable[[str, NotificationMessage], Awaitable[str]]
GitHubConnector = Callable[[Secrets, str], Awaitable[GitHubAppClient]]

UNPROCESSED = "unprocessed"


class DeliveryState(str, enum.Enum):
    RECEIVED = "received"
    SIGNATURE_VERIFIED = "signature_verified"
    PARSED = "parsed"
    ROUTE_RESOLVED = "route_resolved"
    FIELDS_RESOLVED = "fields_resolved"
    MESSAGE_BUILT = "message_built"
    DELIVERED = "delivered"


def needs_lookup(event: WebhookEvent) -> bool:
    """True when the event cannot be rendered from its payload alone."""
    scenario = scenario_of(event)
    if scenario is Scenario.ISSUE_COMMENT:
        return event.issue.is_pr()
    if scenario is Scenario.PULL_REQUEST:
        # Unhandled actions are rejected by the synthesizer without a lookup.
        return event.action in PULL_REQUEST_ACTIONS and needs_pull_request_lookup(
            event.pull_request
        )
    if scenario is Scenario.WORKFLOW_JOB:
        return event.action is Action.WAITING
    return False


class Dispatcher:
    """Runs one webhook through the pipeline. Holds no cross-request state."""

    def __init__(
        self,
        secrets: Secrets,
        routes: RouteStore,
        *,
        http: httpx.AsyncClient,
        synthesizer: Optional[MessageSynthesizer] = None,
        connect_github: Optional[GitHubConnector] = None,
        deliver: Optional[Deliver] = None,
    ) -> None:
        self._secrets = secrets
        self._routes = routes
        self._http = http
        self._synthesizer = synthesizer or MessageSynthesizer()
        self._connect_github = connect_github or self._default_connect
        self._deliver = deliver or self._default_deliver

    async def _default_connect(self, secrets: Secrets, repo_fullname: str) -> GitHubAppClient:
        return await GitHubAppClient.connect(
            self._http,
            secrets.github_app_id,
            secrets.github_app_installation_id,
            secrets.github_app_pem,
            repo_fullname,
        )

    async def _default_deliver(self, token: str, message: NotificationMessage) -> str:
        return await post_message(token, message, client=self._http)

    async def handle(
        self,
        route_id: str,
        body: bytes,
        signature: Optional[str],
        event_name: Optional[str] = None,
    ) -> str:
        bound = log.bind(route_id=route_id, github_event=event_name)
        bound.debug("delivery_state", state=DeliveryState.RECEIVED.value)

        require_signature(
            body, None, signature, self._secrets.github_webhook_verification_secret, SignatureMode.GITHUB
        )
        bound.debug("delivery_state", state=DeliveryState.SIGNATURE_VERIFIED.value)
        if event_name == "ping":
            bound.info("webhook_ping")
            return "pong"

        event = parse_event(body)
        scenario = scenario_of(event)
        bound = bound.bind(scenario=scenario.value, action=event.action.value)
        bound.debug("delivery_state", state=DeliveryState.PARSED.value)

        route = resolve_route(self._routes, route_id)
        bound.debug("delivery_state", state=DeliveryState.ROUTE_RESOLVED.value)

        if needs_lookup(event):
            resolved = await self.resolve_fields(event, route)
            bound.debug("delivery_state", state=DeliveryState.FIELDS_RESOLVED.value)
        else:
            resolved = ResolvedFields()
            bound.debug("delivery_state", state=DeliveryState.FIELDS_RESOLVED.value, skipped=True)

        message = self._synthesizer.build(event, route.channel_id, resolved)
        if message is None:
            bound.info("webhook_unprocessed")
            return f"{UNPROCESSED} {scenario.value} event"
        bound.debug("delivery_state", state=DeliveryState.MESSAGE_BUILT.value)

        response = await self._deliver(self._secrets.slack_bot_token, message)
        bound.info("delivery_state", state=DeliveryState.DELIVERED.value, channel=route.channel_id)
        return response

    async def resolve_fields(self, event: WebhookEvent, route: Route) -> ResolvedFields:
        connect = self._connector(route.repository_fullpath)
        scenario = scenario_of(event)
        if scenario is Scenario.ISSUE_COMMENT:
            return ResolvedFields(pr_flags=await resolve_comment_target(event.issue, connect))
        if scenario is Scenario.PULL_REQUEST:
            return ResolvedFields(
                pr_flags=await resolve_pull_request_flags(event.pull_request, connect)
            )
        if scenario is Scenario.WORKFLOW_JOB:
            return ResolvedFields(
                deployment=await resolve_deployment_context(event.workflow_job, event.deployment, connect)
            )
        return ResolvedFields()

    def _connector(self, repo_fullname: str) -> Connect:
        client: Optional[GitHubAppClient] = None

        async def connect() -> GitHubAppClient:
            nonlocal client
            if client is None:
                client = await self._connect_github(self._secrets, repo_fullname)
            return client

        return connect
