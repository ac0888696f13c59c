"""Decoding of the access tokens issued by the logistics platform's auth service.

Tokens are HS256 (or ``TOKEN_ALGORITHM``) JWTs carrying the numeric
``user_id`` and the platform ``role`` of the caller. Only ``type=access`` tokens
(or tokens without a type) are accepted; refresh tokens are rejected.
"""

from __future__ import annotations

import os
from typing import cast

from typing_extensions import TypedDict

import jwt
from fastapi import HTTPException, Request, status
from jwt import ExpiredSignatureError, InvalidTokenError

__all__ = [
    "AccessTokenPayload",
    "TokenConfigurationError",
    "TokenValidationError",
    "decode_access_token",
    "get_token_payload",
]


class TokenConfigurationError(RuntimeError):
    """A ``TOKEN_*`` environment variable is missing."""


class TokenValidationError(ValueError):
    """The bearer token is expired, forged or lacks ``user_id``/``role``."""


class _AccessTokenRequiredClaims(TypedDict):
    user_id: str | int
    role: str


class AccessTokenPayload(_AccessTokenRequiredClaims, total=False):
    """Claims read from a platform access token."""

    aud: str | list[str]
    email: str
    exp: int
    iat: int
    iss: str
    type: str


def _get_env(name: str, *, required: bool = True, default: str | None = None) -> str:
    value = os.getenv(name, default)
    if required and (value is None or not value.strip()):
        raise TokenConfigurationError(
            f"Environment variable '{name}' must be set for token validation.",
        )
    if value is None:
        return ""
    return value.strip()


def decode_access_token(token: str) -> AccessTokenPayload:
    """Verify signature, expiry, audience and issuer of ``token`` and return its claims.

    Reads ``TOKEN_SECRET``, ``TOKEN_AUDIENCE``, ``TOKEN_ISSUER`` and
    ``TOKEN_ALGORITHM`` on every call.
    """

    secret_key = _get_env("TOKEN_SECRET")
    audience = _get_env("TOKEN_AUDIENCE")
    issuer = _get_env("TOKEN_ISSUER")
    algorithm = _get_env("TOKEN_ALGORITHM", required=False, default="HS256")

    try:
        payload = jwt.decode(
            token,
            secret_key,
            algorithms=[algorithm],
            audience=audience,
            issuer=issuer,
            options={"require": ["exp", "aud", "iss"]},
        )
    except ExpiredSignatureError as exc:
        raise TokenValidationError("Access token has expired.") from exc
    except InvalidTokenError as exc:
        raise TokenValidationError("Access token is invalid.") from exc

    if "user_id" not in payload or "role" not in payload:
        raise TokenValidationError(
            "Access token payload must include 'user_id' and 'role'.",
        )
    type_claim = payload.get("type")
    if type_claim and type_claim != "access":
        raise TokenValidationError("Token must be an access token.")

    return cast(AccessTokenPayload, payload)


async def get_token_payload(request: Request) -> AccessTokenPayload:
    """FastAPI dependency: claims of the ``Authorization: Bearer`` token.

    Bad or missing tokens are ``401``; missing ``TOKEN_*`` configuration is ``500``.
    """

    authorization = request.headers.get("Authorization")
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header.",
        )

    scheme, _, credentials = authorization.partition(" ")
    if not credentials or scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header must use Bearer scheme.",
        )

    try:
        return decode_access_token(credentials)
    except TokenConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    except TokenValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
