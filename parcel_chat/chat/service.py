"""Chat message routing: access checks, receiver resolution and read state."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from . import schemas
from .access import AccessEvaluator
from .directory import ProfileDirectory, ShipmentDirectory
from .identity import IdentityResolver
from .models import (
    ConversationRef,
    Display,
    Message,
    PoolConversation,
    Principal,
    Role,
    ShipmentConversation,
    message_scope,
)
from .notifier import CHAT_MESSAGE_CATEGORY, LoggingNotifier, Notifier, deliver
from .receivers import ReceiverResolver, Route
from .repository import MessageStore

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "New Message"

_COUNTERPART_ROLE = {Role.CUSTOMER: Role.AGENT, Role.AGENT: Role.CUSTOMER}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def conversation_link(ref: ConversationRef) -> str:
    """Return the client-side link a notification should open."""

    if isinstance(ref, PoolConversation):
        link = f"/chat/pool/{ref.pool_id}"
        if ref.shipment_id is not None:
            link += f"?shipment_id={ref.shipment_id}"
        return link
    return f"/chat/shipment/{ref.shipment_id}"


class MessageRouter:
    """Coordinates access evaluation, receiver resolution and persistence."""

    def __init__(
        self,
        store: MessageStore,
        directory: ShipmentDirectory,
        profiles: ProfileDirectory,
        notifier: Optional[Notifier] = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        max_length: Optional[int] = None,
    ) -> None:
        self._store = store
        self._access = AccessEvaluator(directory)
        self._receivers = ReceiverResolver(directory)
        self._identity = IdentityResolver(profiles)
        self._notifier = notifier or LoggingNotifier()
        self._clock = clock
        self._max_length = max_length

    # ------------------------------------------------------------------
    # Queries

    def list_messages(
        self, ref: ConversationRef, principal: Principal
    ) -> List[schemas.ChatMessageView]:
        """Return the messages of ``ref`` visible to ``principal``, oldest first.

        A pool sub-thread returns its complete history to anyone allowed into
        that sub-thread. Shipment threads and whole-pool listings only return
        messages the principal sent or received.
        """

        self._access.authorize(ref, principal)
        if isinstance(ref, PoolConversation) and ref.shipment_id is not None:
            messages = self._store.find_by_conversation(ref)
        else:
            messages = self._store.find_by_conversation(
                ref, participant_id=principal.user_id
            )
        displays: Dict[Principal, Display] = {}
        return [self._to_view(m, principal, displays) for m in messages]

    def unread_count(
        self,
        principal: Principal,
        *,
        shipment_id: Optional[int] = None,
        pool_id: Optional[int] = None,
    ) -> int:
        """Count unread messages addressed to ``principal``.

        Without a scope the count covers every conversation; ``pool_id`` scopes
        to a pool (or one of its sub-threads when ``shipment_id`` is also
        given) and ``shipment_id`` alone scopes to a shipment thread.
        """

        ref: Optional[ConversationRef] = None
        if pool_id is not None:
            ref = PoolConversation(pool_id, shipment_id)
        elif shipment_id is not None:
            ref = ShipmentConversation(shipment_id)
        return self._store.count_unread(principal.user_id, ref)

    # ------------------------------------------------------------------
    # Actions

    def send(
        self,
        ref: ConversationRef,
        principal: Principal,
        body: str,
        target_shipment_id: Optional[int] = None,
    ) -> schemas.ChatMessageView:
        """Persist a new message and notify its receiver.

        ``target_shipment_id`` selects the sub-thread when posting to a pool;
        it is ignored for shipment conversations.
        """

        text = (body or "").strip()
        if not text:
            raise ValueError("Message cannot be empty")
        if self._max_length is not None and len(text) > self._max_length:
            raise ValueError(f"Message cannot exceed {self._max_length} characters")
        if target_shipment_id is not None and isinstance(ref, PoolConversation):
            ref = ref.with_shipment(target_shipment_id)

        self._access.authorize(ref, principal)
        route = self._receivers.resolve(ref, principal)
        if route.conversation != ref:
            self._access.authorize(route.conversation, principal)

        shipment_id, pool_id = message_scope(route.conversation)
        saved = self._store.save(
            Message(
                sender_id=principal.user_id,
                sender_role=principal.role,
                receiver_id=route.receiver.user_id,
                body=text,
                shipment_id=shipment_id,
                pool_id=pool_id,
                created_at=self._clock(),
            )
        )
        logger.info(
            "Chat message %s sent for %s from %s to %s",
            saved.id,
            route.reference,
            principal.user_id,
            route.receiver.user_id,
        )
        self._notify(route, principal)
        return self._to_view(saved, principal, {})

    def mark_read(self, ref: ConversationRef, principal: Principal) -> int:
        """Mark every unread message addressed to ``principal`` in ``ref`` as read."""

        self._access.authorize(ref, principal)
        updated = self._store.mark_read(ref, principal.user_id, self._clock())
        logger.info(
            "Marked %d messages as read on %s for user %s",
            updated,
            conversation_link(ref),
            principal.user_id,
        )
        return updated

    # ------------------------------------------------------------------
    # Helpers

    def _notify(self, route: Route, sender: Principal) -> None:
        sender_name = self._identity.display_name(sender)
        outcome = deliver(
            self._notifier,
            route.receiver.user_id,
            NOTIFICATION_TITLE,
            f"{sender_name} sent you a message regarding {route.reference}",
            CHAT_MESSAGE_CATEGORY,
            conversation_link(route.conversation),
        )
        if not outcome.delivered:
            logger.warning("Failed to send chat notification: %s", outcome.error)

    def _display(self, principal: Principal, cache: Dict[Principal, Display]) -> Display:
        if principal not in cache:
            cache[principal] = self._identity.resolve_display(principal)
        return cache[principal]

    def _to_view(
        self,
        message: Message,
        viewer: Principal,
        cache: Dict[Principal, Display],
    ) -> schemas.ChatMessageView:
        sender = Principal(message.sender_id, message.sender_role)
        receiver = Principal(message.receiver_id, _COUNTERPART_ROLE[message.sender_role])
        sender_display = self._display(sender, cache)
        return schemas.ChatMessageView(
            id=message.id,
            shipment_id=message.shipment_id,
            pool_id=message.pool_id,
            sender_id=message.sender_id,
            sender_name=sender_display.name,
            sender_type=message.sender_role.value,
            sender_avatar=sender_display.avatar_url,
            receiver_id=message.receiver_id,
            receiver_name=self._display(receiver, cache).name,
            message=message.body,
            is_read=message.is_read,
            created_at=message.created_at,
            read_at=message.read_at,
            is_mine=message.sender_id == viewer.user_id,
        )


__all__ = ["MessageRouter", "NOTIFICATION_TITLE", "conversation_link"]
