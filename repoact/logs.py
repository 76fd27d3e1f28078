"""structlog wiring for the notifier."""

from __future__ import annotations

import logging
import re
import sys

import structlog

REDACTED = "***"

# Values under these keys are never logged.
_SECRET_KEYS = frozenset(
    {
        "token",
        "slack_bot_token",
        "slack_app_signing_secret",
        "github_webhook_verification_secret",
        "github_app_pem",
        "signature",
    }
)

# Secrets that show up inside free text such as error details or Slack replies.
_INLINE_SECRETS = (
    (re.compile(r"\bBearer\s+[\w\-.]+"), "Bearer " + REDACTED),
    (re.compile(r"\bgh[opsu]_\w+"), "gh_" + REDACTED),
    (re.compile(r"\b(sha256|v0)=[0-9a-f]{64}\b"), r"\1=" + REDACTED),
    (re.compile(r"\bxox[abpr]-[\w-]+"), "xox-" + REDACTED),
    (
        re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----", re.S),
        REDACTED,
    ),
)

_QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access")


def redact_secrets(
    _logger: structlog.types.WrappedLogger,
    _method: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    for key, value in event_dict.items():
        if key in _SECRET_KEYS and value:
            event_dict[key] = REDACTED
        elif isinstance(value, str):
            for pattern, replacement in _INLINE_SECRETS:
                value = pattern.sub(replacement, value)
            event_dict[key] = value
    return event_dict


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """
    Route structlog and stdlib records (uvicorn, SQLAlchemy) through one handler.

    ``LOG_JSON`` picks the JSON renderer; otherwise output is the console format.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
    ]
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(numeric_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
