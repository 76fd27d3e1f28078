"""Yet another slack services"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from repoact.config import settings
from repoact.errors import DeliveryFailed
from repoact.logs import get_logger

log = get_logger(__name__)

HTTP_TIMEOUT_SECONDS = 15

JSONDict = dict[str, Any]


@dataclass(frozen=True)
class AttachmentField:
    title: str
    value: str
    short: bool = False


@dataclass(frozen=True)
class Attachment:
    color: str
    author_name: str
    author_link: str
    author_icon: str
    text: str = ""
    title: Optional[str] = None
    title_link: Optional[str] = None
    fields: list[AttachmentField] = field(default_factory=list)

    def to_payload(self) -> JSONDict:
        payload: JSONDict = {
            "color": self.color,
            "author_name": self.author_name,
            "author_link": self.author_link,
            "author_icon": self.author_icon,
            "text": self.text,
            "fields": [
                {"title": f.title, "value": f.value, "short": f.short} for f in self.fields
            ],
        }
        if self.title is not None:
            payload["title"] = self.title
        if self.title_link is not None:
            payload["title_link"] = self.title_link
        return payload


@dataclass(frozen=True)
class NotificationMessage:
    channel: str
    text: str
    attachment: Optional[Attachment] = None

    def to_payload(self) -> JSONDict:
        """Body for ``chat.postMessage``."""
        return {
            "channel": self.channel,
            "text": self.text,
            "as_user": True,
            "unfurl_links": False,
            "unfurl_media": False,
            "attachments": [self.attachment.to_payload()] if self.attachment else [],
        }


async def post_message(
    token: str,
    message: NotificationMessage,
    *,
    client: Optional[httpx.AsyncClient] = None,
    api_base: Optional[str] = None,
) -> str:
    """
    Send ``message`` once. Returns Slack's raw response text.

    Only the HTTP status is checked; the body is logged as-is.
    """
    api = f"{(api_base or settings.slack_api_base).rstrip('/')}/chat.postMessage"
    headers = {"Authorization": f"Bearer {token}"}
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as own:
                resp = await own.post(api, json=message.to_payload(), headers=headers)
        else:
            resp = await client.post(api, json=message.to_payload(), headers=headers)
    except httpx.HTTPError as exc:
        raise DeliveryFailed(f"Slack request failed: {exc}") from exc
    if resp.status_code >= 300:
        raise DeliveryFailed(f"Slack error: {resp.status_code} {resp.text}")
    log.info("slack_delivered", channel=message.channel, response=resp.text)
    return resp.text
