"""Domain models used by the chat routing engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Role(str, Enum):
    """Role tag carried by every principal."""

    CUSTOMER = "CUSTOMER"
    AGENT = "DELIVERY_AGENT"


@dataclass(frozen=True)
class Principal:
    """Authenticated actor performing a chat operation."""

    user_id: int
    role: Role

    @classmethod
    def customer(cls, user_id: int) -> Principal:
        return cls(user_id, Role.CUSTOMER)

    @classmethod
    def agent(cls, user_id: int) -> Principal:
        return cls(user_id, Role.AGENT)


@dataclass(frozen=True)
class Shipment:
    id: int
    tracking_number: str
    customer_id: int | None = None
    agent_id: int | None = None
    pool_id: int | None = None


@dataclass(frozen=True)
class Pool:
    """A pooled shipment served by up to two agents."""

    id: int
    pool_code: str
    pickup_agent_id: int | None = None
    delivery_agent_id: int | None = None

    def is_agent(self, user_id: int) -> bool:
        return user_id in (self.pickup_agent_id, self.delivery_agent_id)


@dataclass(frozen=True)
class ShipmentConversation:
    """Thread between a shipment's customer and its agent."""

    shipment_id: int


@dataclass(frozen=True)
class PoolConversation:
    """A pool as a whole, or one member shipment's sub-thread.

    With ``shipment_id`` set the reference addresses the private exchange
    between the pool's agents and the customer of that member shipment.
    """

    pool_id: int
    shipment_id: int | None = None

    def with_shipment(self, shipment_id: int) -> PoolConversation:
        return PoolConversation(self.pool_id, shipment_id)


ConversationRef = ShipmentConversation | PoolConversation


@dataclass
class Message:
    """A single chat message.

    Sender and receiver are fixed when the message is created; only the read
    flag and timestamp change afterwards.
    """

    sender_id: int
    sender_role: Role
    receiver_id: int
    body: str
    shipment_id: int | None = None
    pool_id: int | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_read: bool = False
    read_at: datetime | None = None

    def involves(self, user_id: int) -> bool:
        return user_id in (self.sender_id, self.receiver_id)


@dataclass(frozen=True)
class Display:
    name: str
    avatar_url: str | None = None


def message_scope(ref: ConversationRef) -> tuple[int | None, int | None]:
    """Return the ``(shipment_id, pool_id)`` pair stored on messages of ``ref``."""

    if isinstance(ref, PoolConversation):
        return ref.shipment_id, ref.pool_id
    return ref.shipment_id, None


def in_conversation(message: Message, ref: ConversationRef) -> bool:
    """Whether ``message`` belongs to the thread addressed by ``ref``.

    Single-shipment threads only hold messages without a pool; a pool
    reference without a shipment id covers every sub-thread of the pool.
    """

    shipment_id, pool_id = message_scope(ref)
    if pool_id is None:
        return message.pool_id is None and message.shipment_id == shipment_id
    if message.pool_id != pool_id:
        return False
    return shipment_id is None or message.shipment_id == shipment_id
