"""Pydantic schemas for the chat APIs."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator


class ChatMessageView(BaseModel):
    """A message as seen by one participant."""

    id: int
    shipment_id: int | None = None
    pool_id: int | None = None
    sender_id: int
    sender_name: str
    sender_type: str
    sender_avatar: str | None = None
    receiver_id: int
    receiver_name: str
    message: str
    is_read: bool
    created_at: datetime
    read_at: datetime | None = None
    is_mine: bool


class MessageList(BaseModel):
    items: list[ChatMessageView]
    total: int


class SendMessageRequest(BaseModel):
    message: str

    @field_validator("message")
    @classmethod
    def _validate_message(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message cannot be empty")
        return value


class MarkReadResponse(BaseModel):
    updated: int


class UnreadCount(BaseModel):
    unread_count: int
