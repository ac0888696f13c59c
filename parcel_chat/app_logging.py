"""Service and access logging for Parcel Chat.

``init_logging`` routes every ``parcel_chat.*`` module logger to ``app.log``
and the per-request access lines to ``access.log`` (``uvicorn.access``); both
files rotate at midnight.

Access lines are JSON and carry the request id and, once the bearer token has
been resolved, the chat principal (``user_id`` and ``role``). Request bodies
are only recorded with ``LOG_REQUEST_BODIES=true``; credentials are masked and
chat message text is replaced by its length so conversations never reach the
log files.

Environment variables: LOG_DIR, LOG_LEVEL, LOG_JSON, LOG_REQUEST_BODIES,
LOG_RETENTION_DAYS, LOG_ROTATE_UTC.
"""

from __future__ import annotations

import json
import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler
from typing import Any, cast
from uuid import uuid4

from fastapi import FastAPI, Request

SERVICE_LOGGER = "parcel_chat"
ACCESS_LOGGER = "uvicorn.access"

REDACTED = "***"
CREDENTIAL_FIELDS = frozenset(
    {"authorization", "cookie", "set-cookie", "password", "token", "access_token"}
)
# Free-text chat content submitted by users.
CONTENT_FIELDS = frozenset({"message"})
UNLOGGED_PATHS = frozenset({"/api/health", "/api/metrics"})


class JsonFormatter(logging.Formatter):
    """One JSON object per record, used when LOG_JSON=true."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() == "true"


def _scrub(data: Any) -> Any:
    """Mask credentials and chat text in decoded headers or JSON bodies."""

    if isinstance(data, list):
        return [_scrub(item) for item in data]
    if not isinstance(data, dict):
        return data
    scrubbed: dict[str, Any] = {}
    for key, value in data.items():
        name = key.lower()
        if name in CREDENTIAL_FIELDS:
            scrubbed[key] = REDACTED
        elif name in CONTENT_FIELDS and isinstance(value, str):
            scrubbed[key] = f"<{len(value)} chars>"
        else:
            scrubbed[key] = _scrub(value)
    return scrubbed


def _principal_fields(request: Request) -> dict[str, Any]:
    principal = getattr(request.state, "principal", None)
    if principal is None:
        return {}
    return {"user_id": principal.user_id, "role": principal.role.value}


async def _read_body(request: Request) -> Any:
    """Read and scrub the request body, replaying it for the endpoint."""

    raw = await request.body()

    async def replay() -> dict:
        return {"type": "http.request", "body": raw, "more_body": False}

    request._receive = replay  # type: ignore[attr-defined]
    if not raw:
        return None
    try:
        return _scrub(json.loads(raw))
    except ValueError:
        return f"<{len(raw)} bytes>"


def _install_access_logging(app: FastAPI) -> None:
    """Log one JSON line per request and echo an ``X-Request-Id`` header."""

    with_bodies = _env_flag("LOG_REQUEST_BODIES")
    access_logger = logging.getLogger(ACCESS_LOGGER)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        if request.url.path in UNLOGGED_PATHS:
            return await call_next(request)

        request_id = request.headers.get("X-Request-Id") or uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()
        body = await _read_body(request) if with_bodies else None

        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id

        forwarded = request.headers.get("X-Forwarded-For")
        entry: dict[str, Any] = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            "client_ip": forwarded or (request.client.host if request.client else None),
            **_principal_fields(request),
            "headers": _scrub(dict(request.headers)),
        }
        if body is not None:
            entry["body"] = body
        access_logger.info(json.dumps(entry, default=str))
        return response


def _file_handler(
    filename: str, formatter: logging.Formatter
) -> TimedRotatingFileHandler:
    log_dir = os.getenv("LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)
    handler = TimedRotatingFileHandler(
        os.path.join(log_dir, filename),
        when="midnight",
        backupCount=int(os.getenv("LOG_RETENTION_DAYS", "7")),
        utc=_env_flag("LOG_ROTATE_UTC"),
    )
    handler.setFormatter(formatter)
    return handler


def init_logging(app: FastAPI | None = None) -> None:
    """Attach rotating file handlers and, given an app, the access middleware."""

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    formatter: logging.Formatter = (
        JsonFormatter()
        if _env_flag("LOG_JSON")
        else logging.Formatter("[%(asctime)s] %(levelname)s in %(name)s: %(message)s")
    )

    service_logger = logging.getLogger(SERVICE_LOGGER)
    if not service_logger.handlers:
        service_logger.addHandler(_file_handler("app.log", formatter))
    service_logger.setLevel(level)

    access_logger = logging.getLogger(ACCESS_LOGGER)
    access_logger.handlers.clear()
    access_logger.addHandler(_file_handler("access.log", formatter))
    access_logger.setLevel(level)

    if app is not None:
        cast(Any, app).logger = service_logger
        _install_access_logging(app)
