"""Chat-related SQLAlchemy models.

``chat_messages`` is owned by this service and mirrors the DDL in
``parcel_chat/migrations/001_create_chat_messages.py``.  The shipment, pool
and profile tables belong to the wider logistics platform; they are mapped
here read-only so the directory adapters can resolve ownership.
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column

from . import Base


def _utcnow() -> dt.datetime:
    """Return the current UTC timestamp with timezone awareness."""

    return dt.datetime.now(dt.timezone.utc)


class ChatMessageRecord(Base):
    """A persisted chat message.

    Attributes:
        id: Surrogate primary key assigned by the database.
        shipment_id: Shipment the thread belongs to; for pooled messages the
            member shipment of the sub-thread.
        pool_id: Pool of a pooled sub-thread, ``NULL`` for single shipments.
        sender_id: User id of the author.
        sender_type: Role of the author at send time.
        receiver_id: User id of the resolved counterparty.
        message: Body text.
        is_read: Whether the receiver has read the message.
        created_at: Server-assigned creation timestamp.
        read_at: Timestamp of the first read, never cleared.
    """

    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("ix_chat_messages_shipment_id", "shipment_id"),
        Index("ix_chat_messages_pool_id", "pool_id"),
        Index("ix_chat_messages_sender_id", "sender_id"),
        Index("ix_chat_messages_receiver_unread", "receiver_id", "is_read"),
        Index("ix_chat_messages_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shipment_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pool_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sender_id: Mapped[int] = mapped_column(Integer, nullable=False)
    sender_type: Mapped[str] = mapped_column(String(length=32), nullable=False)
    receiver_id: Mapped[int] = mapped_column(Integer, nullable=False)
    message: Mapped[str] = mapped_column(Text(), nullable=False)
    is_read: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    read_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )


class ShipmentRecord(Base):
    """Platform shipment (a single parcel)."""

    __tablename__ = "shipments"
    __table_args__ = (Index("ix_shipments_pool_id", "pool_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tracking_number: Mapped[str] = mapped_column(String(length=32), nullable=False)
    customer_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    agent_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pool_id: Mapped[int | None] = mapped_column(Integer, nullable=True)


class PoolRecord(Base):
    """Platform pooled shipment with its two agent roles."""

    __tablename__ = "pools"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pool_code: Mapped[str] = mapped_column(String(length=16), nullable=False)
    pickup_agent_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    delivery_agent_id: Mapped[int | None] = mapped_column(Integer, nullable=True)


class CustomerProfileRecord(Base):
    __tablename__ = "customer_profiles"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    profile_image_url: Mapped[str | None] = mapped_column(String(length=500))


class AgentProfileRecord(Base):
    __tablename__ = "agent_profiles"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    profile_photo_url: Mapped[str | None] = mapped_column(String(length=500))


__all__ = [
    "AgentProfileRecord",
    "ChatMessageRecord",
    "CustomerProfileRecord",
    "PoolRecord",
    "ShipmentRecord",
]
