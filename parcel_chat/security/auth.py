"""JWT-backed authentication dependencies for FastAPI routers."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from parcel_chat.chat.models import Principal, Role
from parcel_chat.core.auth import AccessTokenPayload, get_token_payload


def principal_from_payload(payload: AccessTokenPayload) -> Principal:
    """Build the chat principal described by ``payload``.

    Raises:
        HTTPException: ``401`` for a malformed user id, ``403`` when the role
            does not take part in chat (company admins, super admins).
    """

    try:
        user_id = int(payload["user_id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identifier in token.",
        ) from exc

    try:
        role = Role(str(payload.get("role", "")).upper())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Chat is only available to customers and delivery agents.",
        ) from exc
    return Principal(user_id, role)


async def get_current_principal(
    request: Request,
    payload: AccessTokenPayload = Depends(get_token_payload),
) -> Principal:
    """Resolve the authenticated :class:`Principal` from the bearer token.

    The principal is also stored on ``request.state`` for the access log.
    """

    principal = principal_from_payload(payload)
    request.state.principal = principal
    return principal


__all__ = ["get_current_principal", "principal_from_payload"]
