"""
Customer push notifications for tow requests.

Delivery belongs to whatever relay is plugged in. Sending is best effort:
a failed send is logged and never propagates into the transition that
triggered it.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

import structlog

from app.core.config import settings
from app.models.user import User

log = structlog.get_logger(__name__)

_MESSAGES = {
    "assigned": ("Tow truck assigned", "A tow truck has been assigned to your request."),
    "en_route": ("Tow truck on the way", "Your tow truck is on the way."),
    "arrived": ("Tow truck arrived", "Your tow truck has arrived at the pickup location."),
    "completed": ("Tow completed", "Your tow has been completed."),
    "cancelled": ("Tow request cancelled", "Your tow request has been cancelled."),
}


class NotificationRelay(Protocol):
    def send(self, recipient: User, payload: Dict[str, Any]) -> None: ...


class LogNotificationRelay:
    """Default relay: writes the notification to the log."""

    def send(self, recipient: User, payload: Dict[str, Any]) -> None:
        log.info("notification_sent", recipient_id=recipient.id, **payload)


def build_tow_notification(kind: str, driver_name: Optional[str] = None, request_number: Optional[str] = None) -> dict:
    if kind not in _MESSAGES:
        raise ValueError(f"Unknown tow notification: {kind}")
    title, body = _MESSAGES[kind]
    if kind == "assigned" and driver_name:
        body = f"{driver_name} has been assigned to your tow request."
    payload = {"type": "tow_request", "status": kind, "title": title, "body": body}
    if request_number:
        payload["request_number"] = request_number
    return payload


def notify_best_effort(relay: Optional[NotificationRelay], recipient: Optional[User], payload: dict) -> bool:
    """Returns True when the relay accepted the notification."""
    if relay is None or recipient is None or not settings.ENABLE_PUSH:
        return False
    try:
        relay.send(recipient, payload)
    except Exception as e:
        log.warning(
            "notification_failed",
            recipient_id=recipient.id,
            status=payload.get("status"),
            error=repr(e),
        )
        return False
    return True
