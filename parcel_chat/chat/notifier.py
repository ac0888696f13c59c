"""Notification adapters used after a message is persisted.

Notifications are best effort: every adapter reports its outcome as a
:class:`NotifyOutcome` value and the router only logs failures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import requests

logger = logging.getLogger(__name__)

CHAT_MESSAGE_CATEGORY = "CHAT_MESSAGE"


@dataclass(frozen=True)
class NotifyOutcome:
    delivered: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> NotifyOutcome:
        return cls(True)

    @classmethod
    def failed(cls, error: str) -> NotifyOutcome:
        return cls(False, error)


class Notifier(Protocol):
    def notify(
        self,
        recipient_id: int,
        title: str,
        body: str,
        category: str,
        link_ref: Optional[str] = None,
    ) -> NotifyOutcome: ...


class LoggingNotifier:
    """Writes notifications to the log; used when no webhook is configured."""

    def notify(
        self,
        recipient_id: int,
        title: str,
        body: str,
        category: str,
        link_ref: Optional[str] = None,
    ) -> NotifyOutcome:
        logger.info(
            "notification recipient=%s category=%s title=%s link=%s",
            recipient_id,
            category,
            title,
            link_ref,
        )
        return NotifyOutcome.ok()


class WebhookNotifier:
    """Posts notifications as JSON to the platform's push gateway."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        if not url:
            raise ValueError("Webhook notifier requires a URL")
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def notify(
        self,
        recipient_id: int,
        title: str,
        body: str,
        category: str,
        link_ref: Optional[str] = None,
    ) -> NotifyOutcome:
        payload: dict[str, Any] = {
            "recipient_id": recipient_id,
            "title": title,
            "body": body,
            "category": category,
            "link": link_ref,
        }
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            return NotifyOutcome.failed(str(exc))
        return NotifyOutcome.ok()


def deliver(
    notifier: Notifier,
    recipient_id: int,
    title: str,
    body: str,
    category: str = CHAT_MESSAGE_CATEGORY,
    link_ref: Optional[str] = None,
) -> NotifyOutcome:
    """Call ``notifier`` and turn any unexpected exception into an outcome."""

    try:
        return notifier.notify(recipient_id, title, body, category, link_ref)
    except Exception as exc:
        return NotifyOutcome.failed(str(exc) or exc.__class__.__name__)


__all__ = [
    "CHAT_MESSAGE_CATEGORY",
    "LoggingNotifier",
    "Notifier",
    "NotifyOutcome",
    "WebhookNotifier",
    "deliver",
]
