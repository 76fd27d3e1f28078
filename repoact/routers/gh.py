"""Ruter GH?"""

from __future__ import annotations

from typing import AsyncIterator

import httpx
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse

from repoact.services.dispatch import Dispatcher
from repoact.services.routes import RouteStore, get_route_store
from repoact.services.secrets import Secrets, get_secrets
from repoact.services.slack import HTTP_TIMEOUT_SECONDS

router = APIRouter(prefix="/wh", tags=["github"])


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """One outbound HTTP client per request, shared by every follow-up call."""
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as client:
        yield client


@router.post("/{route_id}", response_class=PlainTextResponse)
async def github_webhook(
    route_id: str,
    request: Request,
    x_hub_signature_256: str | None = Header(None),
    x_github_event: str | None = Header(None),
    secrets: Secrets = Depends(get_secrets),
    routes: RouteStore = Depends(get_route_store),
    http: httpx.AsyncClient = Depends(get_http_client),
):
    """
    GitHub webhook endpoint.

    The `route_id` names a route row holding the repository and the Slack channel
    to notify. The payload signature is validated against `X-Hub-Signature-256`
    before anything else is looked at.
    """
    body = await request.body()
    dispatcher = Dispatcher(secrets, routes, http=http)
    return await dispatcher.handle(route_id, body, x_hub_signature_256, x_github_event)
