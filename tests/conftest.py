import pathlib
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import pytest
from fastapi import FastAPI, Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from parcel_chat.app_logging import init_logging
from parcel_chat.chat.directory import InMemoryDirectory
from parcel_chat.chat.models import Display, Pool, Shipment
from parcel_chat.chat.notifier import NotifyOutcome
from parcel_chat.chat.repository import InMemoryMessageStore
from parcel_chat.chat.service import MessageRouter
from parcel_chat.config import reset_settings_cache
from parcel_chat.models import Base

# Users
CUSTOMER = 101
OTHER_CUSTOMER = 102
THIRD_CUSTOMER = 103
AGENT = 201
DELIVERY_AGENT = 202
PICKUP_AGENT = 203
STRANGER_AGENT = 299

# Shipments and pools
SOLO_SHIPMENT = 1
UNASSIGNED_SHIPMENT = 2
POOL = 10
OTHER_POOL = 20
POOL_SHIPMENT_1 = 11
POOL_SHIPMENT_2 = 12
OTHER_POOL_SHIPMENT = 21

TOKEN_SECRET = "secret-key"
TOKEN_AUDIENCE = "parcel-chat"
TOKEN_ISSUER = "auth.parcels"


@dataclass
class RecordingNotifier:
    """Notifier double that records calls and can be told to fail."""

    calls: list[dict] = field(default_factory=list)
    fail_with: Optional[Exception] = None

    def notify(self, recipient_id, title, body, category, link_ref=None):
        self.calls.append(
            {
                "recipient_id": recipient_id,
                "title": title,
                "body": body,
                "category": category,
                "link_ref": link_ref,
            }
        )
        if self.fail_with is not None:
            raise self.fail_with
        return NotifyOutcome.ok()


def build_directory() -> InMemoryDirectory:
    directory = InMemoryDirectory()
    directory.add_shipment(
        Shipment(SOLO_SHIPMENT, "TRK0001", customer_id=CUSTOMER, agent_id=AGENT)
    )
    directory.add_shipment(Shipment(UNASSIGNED_SHIPMENT, "TRK0002", customer_id=CUSTOMER))
    directory.add_pool(
        Pool(POOL, "GRP1001", pickup_agent_id=PICKUP_AGENT, delivery_agent_id=DELIVERY_AGENT)
    )
    directory.add_pool(Pool(OTHER_POOL, "GRP2002", pickup_agent_id=STRANGER_AGENT))
    directory.add_shipment(
        Shipment(POOL_SHIPMENT_1, "TRK0011", customer_id=CUSTOMER, pool_id=POOL)
    )
    directory.add_shipment(
        Shipment(POOL_SHIPMENT_2, "TRK0012", customer_id=OTHER_CUSTOMER, pool_id=POOL)
    )
    directory.add_shipment(
        Shipment(OTHER_POOL_SHIPMENT, "TRK0021", customer_id=THIRD_CUSTOMER, pool_id=OTHER_POOL)
    )
    directory.customers[CUSTOMER] = Display("Asha Rao", "https://cdn.example/asha.png")
    directory.customers[OTHER_CUSTOMER] = Display("Ben Ortiz")
    directory.agents[AGENT] = Display("Ravi Kumar", "https://cdn.example/ravi.png")
    directory.agents[DELIVERY_AGENT] = Display("Dana Lee")
    return directory


@pytest.fixture
def directory() -> InMemoryDirectory:
    return build_directory()


@pytest.fixture
def store() -> InMemoryMessageStore:
    return InMemoryMessageStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


class TickingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self) -> None:
        self.now = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def chat(store, directory, notifier) -> MessageRouter:
    return MessageRouter(store, directory, directory, notifier, clock=TickingClock())


@pytest.fixture
def token_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set required environment variables for token decoding."""

    monkeypatch.setenv("TOKEN_SECRET", TOKEN_SECRET)
    monkeypatch.setenv("TOKEN_AUDIENCE", TOKEN_AUDIENCE)
    monkeypatch.setenv("TOKEN_ISSUER", TOKEN_ISSUER)
    monkeypatch.setenv("TOKEN_ALGORITHM", "HS256")


def issue_token(
    *,
    secret: str = TOKEN_SECRET,
    audience: str = TOKEN_AUDIENCE,
    issuer: str = TOKEN_ISSUER,
    user_id: str | int | None = CUSTOMER,
    role: str | None = "CUSTOMER",
    **extra_claims: object,
) -> str:
    """Generate a signed JWT for testing purposes."""

    payload: dict[str, object] = {
        "aud": audience,
        "iss": issuer,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
    }
    if user_id is not None:
        payload["user_id"] = user_id
    if role is not None:
        payload["role"] = role
    payload.update(extra_claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_header(user_id: int, role: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user_id=user_id, role=role)}"}


@pytest.fixture
def db_session(tmp_path) -> Session:
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'chat.db'}", future=True)
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False, future=True)
    session = factory()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def app_factory(monkeypatch):
    def _create_app(log_dir: str, log_request_bodies: bool = False):
        """Create a FastAPI app with logging initialised."""
        monkeypatch.setenv("LOG_DIR", str(log_dir))
        if log_request_bodies:
            monkeypatch.setenv("LOG_REQUEST_BODIES", "true")
        app = FastAPI()

        @app.post("/echo")
        async def echo(request: Request):
            return await request.json()

        init_logging(app)
        return app

    return _create_app
