"""Persistence of chat messages."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Protocol

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.orm import Session

from ..models import ChatMessageRecord
from .models import ConversationRef, Message, Role, in_conversation, message_scope


class MessageStore(Protocol):
    """Abstraction for persisting and querying chat messages."""

    def save(self, message: Message) -> Message: ...

    def find_by_conversation(
        self, ref: ConversationRef, participant_id: Optional[int] = None
    ) -> List[Message]: ...

    def mark_read(self, ref: ConversationRef, receiver_id: int, now: datetime) -> int: ...

    def count_unread(self, receiver_id: int, ref: Optional[ConversationRef] = None) -> int: ...


class SqlAlchemyMessageStore:
    """SQLAlchemy implementation of :class:`MessageStore`.

    ``save`` commits on its own so a message is durable before the router
    dispatches the notification for it; the other writes are left to the
    caller's transaction.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def save(self, message: Message) -> Message:
        record = ChatMessageRecord(
            shipment_id=message.shipment_id,
            pool_id=message.pool_id,
            sender_id=message.sender_id,
            sender_type=message.sender_role.value,
            receiver_id=message.receiver_id,
            message=message.body,
            is_read=message.is_read,
            created_at=message.created_at,
            read_at=message.read_at,
        )
        self._session.add(record)
        self._session.commit()
        return _to_message(record)

    def find_by_conversation(
        self, ref: ConversationRef, participant_id: Optional[int] = None
    ) -> List[Message]:
        stmt = select(ChatMessageRecord).where(_scope_clause(ref))
        if participant_id is not None:
            stmt = stmt.where(
                or_(
                    ChatMessageRecord.sender_id == participant_id,
                    ChatMessageRecord.receiver_id == participant_id,
                )
            )
        stmt = stmt.order_by(ChatMessageRecord.created_at.asc(), ChatMessageRecord.id.asc())
        return [_to_message(row) for row in self._session.scalars(stmt)]

    def mark_read(self, ref: ConversationRef, receiver_id: int, now: datetime) -> int:
        result = self._session.execute(
            update(ChatMessageRecord)
            .where(
                _scope_clause(ref),
                ChatMessageRecord.receiver_id == receiver_id,
                ChatMessageRecord.is_read.is_(False),
            )
            .values(is_read=True, read_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def count_unread(self, receiver_id: int, ref: Optional[ConversationRef] = None) -> int:
        stmt = select(func.count(ChatMessageRecord.id)).where(
            ChatMessageRecord.receiver_id == receiver_id,
            ChatMessageRecord.is_read.is_(False),
        )
        if ref is not None:
            stmt = stmt.where(_scope_clause(ref))
        return int(self._session.scalar(stmt) or 0)


def _scope_clause(ref: ConversationRef):
    shipment_id, pool_id = message_scope(ref)
    if pool_id is None:
        return and_(
            ChatMessageRecord.pool_id.is_(None),
            ChatMessageRecord.shipment_id == shipment_id,
        )
    clause = ChatMessageRecord.pool_id == pool_id
    if shipment_id is not None:
        clause = and_(clause, ChatMessageRecord.shipment_id == shipment_id)
    return clause


def _to_message(record: ChatMessageRecord) -> Message:
    return Message(
        id=record.id,
        shipment_id=record.shipment_id,
        pool_id=record.pool_id,
        sender_id=record.sender_id,
        sender_role=Role(record.sender_type),
        receiver_id=record.receiver_id,
        body=record.message,
        created_at=record.created_at,
        is_read=record.is_read,
        read_at=record.read_at,
    )


class InMemoryMessageStore:
    """List-backed message store used by tests."""

    def __init__(self) -> None:
        self._messages: Dict[int, Message] = {}
        self._id_seq = 1

    def save(self, message: Message) -> Message:
        message.id = self._id_seq
        self._id_seq += 1
        self._messages[message.id] = message
        return message

    def find_by_conversation(
        self, ref: ConversationRef, participant_id: Optional[int] = None
    ) -> List[Message]:
        found = [
            m
            for m in self._messages.values()
            if in_conversation(m, ref)
            and (participant_id is None or m.involves(participant_id))
        ]
        found.sort(key=lambda m: (m.created_at, m.id or 0))
        return found

    def mark_read(self, ref: ConversationRef, receiver_id: int, now: datetime) -> int:
        changed = 0
        for message in self._messages.values():
            if (
                in_conversation(message, ref)
                and message.receiver_id == receiver_id
                and not message.is_read
            ):
                message.is_read = True
                message.read_at = now
                changed += 1
        return changed

    def count_unread(self, receiver_id: int, ref: Optional[ConversationRef] = None) -> int:
        return sum(
            1
            for m in self._messages.values()
            if m.receiver_id == receiver_id
            and not m.is_read
            and (ref is None or in_conversation(m, ref))
        )

    def all(self) -> List[Message]:
        return list(self._messages.values())


__all__ = ["InMemoryMessageStore", "MessageStore", "SqlAlchemyMessageStore"]
