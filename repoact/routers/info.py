"""Ruter Ingfo?"""

from __future__ import annotations

from textwrap import dedent

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from repoact.config import settings

router = APIRouter()

HTTP_HELP_TEXT = dedent(
    f"""
GitHub → Slack Repository Activity Notifier (HTTP Help)

Endpoints
---------
- GET  /                 : Health check
- GET  /help             : This text
- POST /wh/{{route_id}}    : GitHub webhook (per route)
- POST /slack/commands   : Slack slash command, registers a route for a channel

Notes
-----
- PUBLIC_BASE_URL: {settings.public_base_url}
- Webhooks must be signed with the GitHub App's webhook secret (X-Hub-Signature-256).
- Handled events: issues, issue_comment, pull_request, discussion,
  discussion_comment, workflow_job (waiting deployments).
"""
).strip()


@router.get("/", response_class=PlainTextResponse)
def health() -> str:
    return "ok"


@router.get("/help", response_class=PlainTextResponse)
def http_help() -> str:
    return HTTP_HELP_TEXT
