"""Secret bundle loading."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path

from repoact.config import Settings, settings as default_settings


class SecretsError(RuntimeError):
    """Raised when the secret bundle cannot be read."""


@dataclass(frozen=True)
class Secrets:
    slack_bot_token: str
    github_app_id: str
    github_app_installation_id: str
    github_webhook_verification_secret: str
    github_app_pem: str
    slack_app_signing_secret: str = ""


def load_secrets(config: Settings | None = None) -> Secrets:
    """
    Read the bundle once per request.

    ``SECRETS_FILE`` points at a JSON object with the :class:`Secrets` keys;
    without it the values come from the environment via :class:`Settings`.
    """
    config = config or default_settings
    if not config.secrets_file:
        return Secrets(**{f.name: getattr(config, f.name) for f in fields(Secrets)})

    try:
        data = json.loads(Path(config.secrets_file).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise SecretsError(f"Failed to read secrets from {config.secrets_file}: {exc}") from exc
    if not isinstance(data, dict):
        raise SecretsError("Secret bundle must be a JSON object")
    try:
        return Secrets(**{f.name: str(data[f.name]) for f in fields(Secrets) if f.name in data})
    except TypeError as exc:
        raise SecretsError(f"Secret bundle is incomplete: {exc}") from exc


def get_secrets() -> Secrets:
    """FastAPI dependency; reads the bundle for the current request."""
    return load_secrets()
