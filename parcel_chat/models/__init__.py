"""SQLAlchemy declarative base and chat-facing models.

This package hosts the SQLAlchemy models used by the chat backend.  It exposes
a single declarative ``Base`` class that other modules can import when
creating tables or writing migrations in Python.  Individual models live in
dedicated modules within this package.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


# Re-export the models so callers can import them via
# ``from parcel_chat.models import ChatMessageRecord``.
from .chat import (
    AgentProfileRecord,
    ChatMessageRecord,
    CustomerProfileRecord,
    PoolRecord,
    ShipmentRecord,
)


__all__ = [
    "AgentProfileRecord",
    "Base",
    "ChatMessageRecord",
    "CustomerProfileRecord",
    "PoolRecord",
    "ShipmentRecord",
]
