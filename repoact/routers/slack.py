"""Slack slash command that registers webhook routes."""

from __future__ import annotations

import uuid
from urllib.parse import parse_qs

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from repoact.config import settings
from repoact.errors import InvalidSignature
from repoact.logs import get_logger
from repoact.services.routes import Route, RouteStore, get_route_store
from repoact.services.secrets import Secrets, get_secrets
from repoact.utils import (
    SignatureMode,
    is_fresh_timestamp,
    parse_repository_argument,
    require_signature,
)

log = get_logger(__name__)

router = APIRouter(prefix="/slack", tags=["slack"])

USAGE_TEXT = "Usage: `/repoact owner/repository`"


def _ephemeral(text: str) -> JSONResponse:
    return JSONResponse({"response_type": "ephemeral", "text": text})


def _form_value(form: dict[str, list[str]], key: str) -> str:
    values = form.get(key) or [""]
    return values[0].strip()


@router.post("/commands")
async def slash_command(
    request: Request,
    x_slack_request_timestamp: str | None = Header(None),
    x_slack_signature: str | None = Header(None),
    secrets: Secrets = Depends(get_secrets),
    routes: RouteStore = Depends(get_route_store),
):
    """
    Register a route for the calling channel.

    The command text is the repository (`owner/name`). The reply carries the
    webhook URL to paste into the repository's webhook settings.
    """
    body = await request.body()
    if not is_fresh_timestamp(x_slack_request_timestamp):
        raise InvalidSignature("Slack request timestamp is missing or stale")
    require_signature(
        body,
        x_slack_request_timestamp,
        x_slack_signature,
        secrets.slack_app_signing_secret,
        SignatureMode.SLACK,
    )

    form = parse_qs(body.decode("utf-8", errors="replace"))
    channel_id = _form_value(form, "channel_id")
    repository = parse_repository_argument(_form_value(form, "text"))
    if not channel_id or not repository:
        return _ephemeral(USAGE_TEXT)

    route_id = uuid.uuid4().hex
    routes.put(route_id, Route(repository_fullpath=repository, channel_id=channel_id))
    log.info("route_registered", route_id=route_id, repository=repository, channel=channel_id)

    base = settings.public_base_url.rstrip("/")
    return _ephemeral(
        f"Notifications for `{repository}` will be posted here.\n"
        f"Webhook URL: {base}/wh/{route_id}"
    )
