"""Runtime configuration read from the environment."""

from __future__ import annotations

import dataclasses
import os
from functools import lru_cache
from typing import Callable, TypeVar

_T = TypeVar("_T", int, float)


@dataclasses.dataclass(frozen=True)
class Settings:
    """Service settings.

    Environment variables: ``DATABASE_URL``, ``NOTIFY_WEBHOOK_URL``,
    ``NOTIFY_TIMEOUT_SECONDS``, ``CHAT_MAX_MESSAGE_LENGTH``. Token and logging
    variables are read by :mod:`parcel_chat.core.auth` and
    :mod:`parcel_chat.app_logging`.
    """

    database_url: str | None
    notify_webhook_url: str | None = None
    notify_timeout_seconds: float = 5.0
    chat_max_message_length: int = 2000


def _positive(name: str, default: str, parse: Callable[[str], _T]) -> _T:
    raw = os.getenv(name, default).strip()
    try:
        value = parse(raw)
    except ValueError:
        value = None
    if value is None or value <= 0:
        raise RuntimeError(f"{name} must be a positive number, got {raw!r}.")
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from the environment with defaults for development.

    Raises:
        RuntimeError: If a numeric setting is malformed or not positive.
    """

    webhook = os.getenv("NOTIFY_WEBHOOK_URL", "").strip()
    return Settings(
        database_url=os.getenv("DATABASE_URL"),
        notify_webhook_url=webhook or None,
        notify_timeout_seconds=_positive("NOTIFY_TIMEOUT_SECONDS", "5", float),
        chat_max_message_length=_positive("CHAT_MAX_MESSAGE_LENGTH", "2000", int),
    )


def reset_settings_cache() -> None:
    """Clear cached settings; useful in tests when env vars change."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
