"""In-conversation message routing and access control."""

from . import schemas
from .errors import (
    AccessDeniedError,
    ChatError,
    MissingTargetError,
    NoCounterpartyError,
    NotFoundError,
)
from .models import (
    ConversationRef,
    Message,
    Pool,
    PoolConversation,
    Principal,
    Role,
    Shipment,
    ShipmentConversation,
)
from .service import MessageRouter

__all__ = [
    "AccessDeniedError",
    "ChatError",
    "ConversationRef",
    "Message",
    "MessageRouter",
    "MissingTargetError",
    "NoCounterpartyError",
    "NotFoundError",
    "Pool",
    "PoolConversation",
    "Principal",
    "Role",
    "Shipment",
    "ShipmentConversation",
    "schemas",
]
