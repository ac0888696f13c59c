"""Exceptions raised by the chat routing engine."""

from __future__ import annotations


class ChatError(Exception):
    """Base class for client-facing chat errors."""


class NotFoundError(ChatError):
    """Raised when a shipment, pool or target shipment does not exist."""

    def __init__(self, resource: str, identifier: object) -> None:
        super().__init__(f"{resource} {identifier} not found")
        self.resource = resource
        self.identifier = identifier


class AccessDeniedError(ChatError):
    """Raised when a principal may not read or post to a conversation."""

    def __init__(self, message: str = "You don't have access to this chat") -> None:
        super().__init__(message)


class NoCounterpartyError(ChatError):
    """Raised when a send cannot be routed because nobody is on the other side."""


class MissingTargetError(ChatError):
    """Raised when an agent posts to a pool without naming a member shipment."""

    def __init__(self, message: str = "Please specify which customer to message") -> None:
        super().__init__(message)


__all__ = [
    "AccessDeniedError",
    "ChatError",
    "MissingTargetError",
    "NoCounterpartyError",
    "NotFoundError",
]
