"""Typed failures for a single webhook delivery.

Every error here is terminal for the request that raised it. The HTTP layer
turns them into responses using ``status_code``.
"""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for failures that abort a notification."""

    status_code = 500


class InvalidSignature(NotificationError):
    """Raised when the request signature does not match the shared secret."""

    status_code = 401


class MalformedPayload(NotificationError):
    """Raised when a webhook body cannot be decoded into a known event."""

    status_code = 422


class RouteNotFound(NotificationError):
    """Raised when the route id from the request path has no mapping."""

    status_code = 404

    def __init__(self, route_id: str, message: str | None = None) -> None:
        super().__init__(message or f"Route {route_id!r} is not registered")
        self.route_id = route_id


class RouteRecordInvalid(RouteNotFound):
    """Raised when a stored route lacks one of its string columns."""

    def __init__(self, route_id: str, key: str) -> None:
        super().__init__(route_id, f"Route record key {key} is missing or empty")
        self.key = key


class UnhandledAction(NotificationError):
    """Raised for a (resource, action) combination with no message defined."""

    status_code = 422

    def __init__(self, resource: str, action: str) -> None:
        super().__init__(f"Unhandled {resource} action: {action}")
        self.resource = resource
        self.action = action


class MissingRequiredField(NotificationError):
    """Raised when a scenario needs a payload field the webhook left out."""

    status_code = 422


class OriginLookupFailed(NotificationError):
    """Raised when a follow-up call to GitHub fails."""

    status_code = 502


class DeliveryFailed(NotificationError):
    """Raised when Slack does not accept the message."""

    status_code = 502
