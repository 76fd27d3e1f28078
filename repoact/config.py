"""the beautiful world start from here."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """App Settings"""

    db_url: str = os.getenv("DB_URL", "sqlite:///./repoact_routes.sqlite3")
    route_table_name: str = os.getenv("ROUTE_TABLE_NAME", "repoact_route_map")
    public_base_url: str = os.getenv("PUBLIC_BASE_URL", "https://yourdomain.exe")
    secrets_file: str = os.getenv("SECRETS_FILE", "")
    github_api_base: str = os.getenv("GITHUB_API_BASE", "https://api.github.com")
    slack_api_base: str = os.getenv("SLACK_API_BASE", "https://slack.com/api")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_json: bool = _env_flag("LOG_JSON")

    # Used only when SECRETS_FILE is unset.
    slack_bot_token: str = os.getenv("SLACK_BOT_TOKEN", "")
    slack_app_signing_secret: str = os.getenv("SLACK_APP_SIGNING_SECRET", "")
    github_app_id: str = os.getenv("GITHUB_APP_ID", "")
    github_app_installation_id: str = os.getenv("GITHUB_APP_INSTALLATION_ID", "")
    github_webhook_verification_secret: str = os.getenv(
        "GITHUB_WEBHOOK_VERIFICATION_SECRET", ""
    )
    github_app_pem: str = os.getenv("GITHUB_APP_PEM", "")


settings = Settings()
