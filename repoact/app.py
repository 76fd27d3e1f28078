"""the beautiful world start from here."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from repoact.config import settings
from repoact.db import Base, engine
from repoact.errors import NotificationError
from repoact.logs import get_logger, setup_logging
from repoact.routers import gh, info, slack
from repoact.services.secrets import SecretsError

setup_logging(settings.log_level, json_output=settings.log_json)
log = get_logger(__name__)

Base.metadata.create_all(engine)

app = FastAPI(title="GitHub → Slack (repository activity)")


@app.exception_handler(NotificationError)
async def notification_error_handler(request: Request, exc: NotificationError):
    log.warning(
        "request_failed",
        path=request.url.path,
        error=type(exc).__name__,
        detail=str(exc),
        status=exc.status_code,
    )
    return PlainTextResponse(str(exc), status_code=exc.status_code)


@app.exception_handler(SecretsError)
async def secrets_error_handler(request: Request, exc: SecretsError):
    log.error("secrets_unavailable", path=request.url.path, detail=str(exc))
    return PlainTextResponse("Secrets unavailable", status_code=500)


app.include_router(info.router)
app.include_router(gh.router)
app.include_router(slack.router)
