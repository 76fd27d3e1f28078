"""the beautiful world start from here."""

from __future__ import annotations

import enum
import hashlib
import hmac
import re
import time

from repoact.errors import InvalidSignature

SLACK_REQUEST_TTL_SECONDS = 5 * 60  # 5 minutes


class SignatureMode(str, enum.Enum):
    """Which signing scheme an inbound request uses."""

    GITHUB = "sha256"
    SLACK = "v0"


def _as_bytes(value: str | bytes) -> bytes:
    return value if isinstance(value, bytes) else value.encode()


def compute_signature(
    body: bytes,
    secret: str | bytes,
    *,
    timestamp: str | None = None,
    mode: SignatureMode = SignatureMode.GITHUB,
) -> str:
    """
    Render the expected signature header value for ``body``.

    GitHub signs the raw body (``sha256=<hex>``); Slack signs
    ``v0:<timestamp>:<body>`` (``v0=<hex>``).
    """
    if mode is SignatureMode.SLACK:
        if timestamp is None:
            raise ValueError("Slack signatures need a request timestamp")
        message = b"v0:" + timestamp.encode() + b":" + body
    else:
        message = body
    mac = hmac.new(_as_bytes(secret), msg=message, digestmod=hashlib.sha256).hexdigest()
    return f"{mode.value}={mac}"


def verify_signature(
    body: bytes,
    timestamp: str | None,
    provided_signature: str | None,
    secret: str | bytes,
    mode: SignatureMode = SignatureMode.GITHUB,
) -> bool:
    """
    Verify an HMAC-SHA256 request signature.

    Returns
    -------
    bool
        True if valid, False otherwise. An empty secret never validates.
    """
    if not secret or not provided_signature:
        return False
    if mode is SignatureMode.SLACK and not timestamp:
        return False
    expected = compute_signature(body, secret, timestamp=timestamp, mode=mode)
    return hmac.compare_digest(expected.encode(), provided_signature.encode())


def require_signature(
    body: bytes,
    timestamp: str | None,
    provided_signature: str | None,
    secret: str | bytes,
    mode: SignatureMode = SignatureMode.GITHUB,
) -> None:
    """Raise :class:`InvalidSignature` unless ``verify_signature`` accepts."""
    if not verify_signature(body, timestamp, provided_signature, secret, mode):
        raise InvalidSignature(f"{mode.value} signature mismatch")


def is_fresh_timestamp(timestamp: str | None, *, now: float | None = None) -> bool:
    """Return True if a Slack request timestamp is inside the replay window."""
    try:
        issued = int(timestamp or "")
    except ValueError:
        return False
    current = time.time() if now is None else now
    return abs(int(current) - issued) <= SLACK_REQUEST_TTL_SECONDS


_REPOSITORY_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


def parse_repository_argument(text: str | None) -> str | None:
    """Return ``owner/repo`` from slash command text, or None if invalid."""
    parts = (text or "").split()
    if len(parts) != 1:
        return None
    candidate = parts[0].removeprefix("https://github.com/").strip("/")
    return candidate if _REPOSITORY_RE.match(candidate) else None
