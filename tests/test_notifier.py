from __future__ import annotations

from typing import Any, Dict, List

import pytest
import requests

from parcel_chat.chat.notifier import (
    LoggingNotifier,
    NotifyOutcome,
    WebhookNotifier,
    deliver,
)


class _FakeResponse:
    def __init__(self, status_code: int = 200):
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class _FakeSession:
    def __init__(self, response: _FakeResponse | None = None, error: Exception | None = None):
        self._response = response or _FakeResponse()
        self._error = error
        self.requests: List[Dict[str, Any]] = []

    def post(self, url: str, **kwargs: Any) -> _FakeResponse:
        self.requests.append({"url": url, **kwargs})
        if self._error is not None:
            raise self._error
        return self._response


def test_webhook_notifier_posts_json_payload():
    session = _FakeSession()
    notifier = WebhookNotifier("https://push.example/notify", timeout=2.5, session=session)

    outcome = notifier.notify(7, "New Message", "hello", "CHAT_MESSAGE", "/chat/shipment/1")

    assert outcome == NotifyOutcome.ok()
    assert session.requests == [
        {
            "url": "https://push.example/notify",
            "json": {
                "recipient_id": 7,
                "title": "New Message",
                "body": "hello",
                "category": "CHAT_MESSAGE",
                "link": "/chat/shipment/1",
            },
            "timeout": 2.5,
        }
    ]


def test_webhook_notifier_reports_http_errors():
    notifier = WebhookNotifier("https://push.example", session=_FakeSession(_FakeResponse(503)))

    outcome = notifier.notify(7, "t", "b", "CHAT_MESSAGE")

    assert outcome.delivered is False
    assert "503" in outcome.error


def test_webhook_notifier_reports_connection_errors():
    session = _FakeSession(error=requests.ConnectionError("refused"))
    notifier = WebhookNotifier("https://push.example", session=session)

    outcome = notifier.notify(7, "t", "b", "CHAT_MESSAGE")

    assert outcome == NotifyOutcome.failed("refused")


def test_webhook_notifier_requires_url():
    with pytest.raises(ValueError):
        WebhookNotifier("")


def test_deliver_converts_exceptions():
    class Broken:
        def notify(self, *args, **kwargs):
            raise KeyError()

    assert deliver(Broken(), 1, "t", "b") == NotifyOutcome.failed("KeyError")
    assert deliver(LoggingNotifier(), 1, "t", "b").delivered is True
