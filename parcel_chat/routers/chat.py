"""Chat API routes for shipment threads and pool sub-threads."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, sessionmaker

from ..chat import schemas as chat_schemas
from ..chat.directory import SqlAlchemyDirectory
from ..chat.errors import (
    AccessDeniedError,
    MissingTargetError,
    NoCounterpartyError,
    NotFoundError,
)
from ..chat.models import PoolConversation, Principal, ShipmentConversation
from ..chat.notifier import LoggingNotifier, Notifier, WebhookNotifier
from ..chat.repository import SqlAlchemyMessageStore
from ..chat.service import MessageRouter
from ..config import Settings, get_settings
from ..models.session import get_sessionmaker
from ..security.auth import get_current_principal

router = APIRouter(prefix="/api/chat", tags=["chat"])

logger = logging.getLogger(__name__)

_SESSION_FACTORY: sessionmaker[Session] | None = None


def _get_session_factory() -> sessionmaker[Session]:
    global _SESSION_FACTORY
    if _SESSION_FACTORY is None:
        try:
            _SESSION_FACTORY = get_sessionmaker()
        except RuntimeError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
    return _SESSION_FACTORY


def _build_notifier(settings: Settings) -> Notifier:
    if settings.notify_webhook_url:
        return WebhookNotifier(
            settings.notify_webhook_url, timeout=settings.notify_timeout_seconds
        )
    return LoggingNotifier()


@contextmanager
def _service_context() -> Iterator[MessageRouter]:
    session = _get_session_factory()()
    try:
        settings = get_settings()
        directory = SqlAlchemyDirectory(session)
        service = MessageRouter(
            SqlAlchemyMessageStore(session),
            directory,
            directory,
            _build_notifier(settings),
            max_length=settings.chat_max_message_length,
        )
    except Exception as exc:
        session.close()
        logger.exception("Failed to set up chat service")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Chat service is misconfigured",
        ) from exc
    try:
        yield service
        session.commit()
    except HTTPException:
        session.rollback()
        raise
    except Exception as exc:
        session.rollback()
        raise _to_http_error(exc) from exc
    finally:
        session.close()


def _to_http_error(exc: Exception) -> HTTPException:
    """Translate a domain error into the matching client or server error."""

    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, AccessDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, (NoCounterpartyError, MissingTargetError, ValueError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logger.exception("Chat request failed")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Chat request failed",
    )


# ----------------------------------------------------------------------
# Shipment threads


@router.get(
    "/shipment/{shipment_id}/messages",
    response_model=chat_schemas.MessageList,
)
def list_shipment_messages(
    shipment_id: int,
    principal: Principal = Depends(get_current_principal),
) -> chat_schemas.MessageList:
    with _service_context() as chat:
        items = chat.list_messages(ShipmentConversation(shipment_id), principal)
    return chat_schemas.MessageList(items=items, total=len(items))


@router.post(
    "/shipment/{shipment_id}/send",
    response_model=chat_schemas.ChatMessageView,
)
def send_shipment_message(
    shipment_id: int,
    payload: chat_schemas.SendMessageRequest,
    principal: Principal = Depends(get_current_principal),
) -> chat_schemas.ChatMessageView:
    with _service_context() as chat:
        return chat.send(ShipmentConversation(shipment_id), principal, payload.message)


@router.put(
    "/shipment/{shipment_id}/read",
    response_model=chat_schemas.MarkReadResponse,
)
def mark_shipment_messages_read(
    shipment_id: int,
    principal: Principal = Depends(get_current_principal),
) -> chat_schemas.MarkReadResponse:
    with _service_context() as chat:
        updated = chat.mark_read(ShipmentConversation(shipment_id), principal)
    return chat_schemas.MarkReadResponse(updated=updated)


@router.get(
    "/shipment/{shipment_id}/unread",
    response_model=chat_schemas.UnreadCount,
)
def shipment_unread_count(
    shipment_id: int,
    principal: Principal = Depends(get_current_principal),
) -> chat_schemas.UnreadCount:
    with _service_context() as chat:
        count = chat.unread_count(principal, shipment_id=shipment_id)
    return chat_schemas.UnreadCount(unread_count=count)


# ----------------------------------------------------------------------
# Pools


@router.get(
    "/pool/{pool_id}/messages",
    response_model=chat_schemas.MessageList,
)
def list_pool_messages(
    pool_id: int,
    shipment_id: int | None = None,
    principal: Principal = Depends(get_current_principal),
) -> chat_schemas.MessageList:
    with _service_context() as chat:
        items = chat.list_messages(PoolConversation(pool_id, shipment_id), principal)
    return chat_schemas.MessageList(items=items, total=len(items))


@router.post(
    "/pool/{pool_id}/send",
    response_model=chat_schemas.ChatMessageView,
)
def send_pool_message(
    pool_id: int,
    payload: chat_schemas.SendMessageRequest,
    receiver_shipment_id: int | None = None,
    principal: Principal = Depends(get_current_principal),
) -> chat_schemas.ChatMessageView:
    with _service_context() as chat:
        return chat.send(
            PoolConversation(pool_id),
            principal,
            payload.message,
            target_shipment_id=receiver_shipment_id,
        )


@router.put(
    "/pool/{pool_id}/read",
    response_model=chat_schemas.MarkReadResponse,
)
def mark_pool_messages_read(
    pool_id: int,
    shipment_id: int | None = None,
    principal: Principal = Depends(get_current_principal),
) -> chat_schemas.MarkReadResponse:
    with _service_context() as chat:
        updated = chat.mark_read(PoolConversation(pool_id, shipment_id), principal)
    return chat_schemas.MarkReadResponse(updated=updated)


@router.get(
    "/pool/{pool_id}/unread",
    response_model=chat_schemas.UnreadCount,
)
def pool_unread_count(
    pool_id: int,
    principal: Principal = Depends(get_current_principal),
) -> chat_schemas.UnreadCount:
    with _service_context() as chat:
        count = chat.unread_count(principal, pool_id=pool_id)
    return chat_schemas.UnreadCount(unread_count=count)


# ----------------------------------------------------------------------
# General


@router.get("/unread-count", response_model=chat_schemas.UnreadCount)
def total_unread_count(
    principal: Principal = Depends(get_current_principal),
) -> chat_schemas.UnreadCount:
    with _service_context() as chat:
        count = chat.unread_count(principal)
    return chat_schemas.UnreadCount(unread_count=count)
