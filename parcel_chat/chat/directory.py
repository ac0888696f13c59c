"""Read-only lookups of shipments, pools and user profiles."""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import (
    AgentProfileRecord,
    CustomerProfileRecord,
    PoolRecord,
    ShipmentRecord,
)
from .models import Display, Pool, Shipment


class ShipmentDirectory(Protocol):
    """Lookup of shipments and pools owned by the logistics platform."""

    def get_shipment(self, shipment_id: int) -> Optional[Shipment]: ...

    def get_pool(self, pool_id: int) -> Optional[Pool]: ...

    def list_pool_shipments(self, pool_id: int) -> List[Shipment]: ...


class ProfileDirectory(Protocol):
    """Display-name and avatar lookup scoped by role."""

    def get_customer_profile(self, user_id: int) -> Optional[Display]: ...

    def get_agent_profile(self, user_id: int) -> Optional[Display]: ...


class SqlAlchemyDirectory:
    """SQLAlchemy implementation of both directory protocols."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_shipment(self, shipment_id: int) -> Optional[Shipment]:
        row = self._session.get(ShipmentRecord, shipment_id)
        if row is None:
            return None
        return _to_shipment(row)

    def get_pool(self, pool_id: int) -> Optional[Pool]:
        row = self._session.get(PoolRecord, pool_id)
        if row is None:
            return None
        return Pool(
            id=row.id,
            pool_code=row.pool_code,
            pickup_agent_id=row.pickup_agent_id,
            delivery_agent_id=row.delivery_agent_id,
        )

    def list_pool_shipments(self, pool_id: int) -> List[Shipment]:
        rows = self._session.scalars(
            select(ShipmentRecord)
            .where(ShipmentRecord.pool_id == pool_id)
            .order_by(ShipmentRecord.id)
        )
        return [_to_shipment(row) for row in rows]

    def get_customer_profile(self, user_id: int) -> Optional[Display]:
        row = self._session.get(CustomerProfileRecord, user_id)
        if row is None:
            return None
        return Display(row.full_name, row.profile_image_url)

    def get_agent_profile(self, user_id: int) -> Optional[Display]:
        row = self._session.get(AgentProfileRecord, user_id)
        if row is None:
            return None
        return Display(row.full_name, row.profile_photo_url)


def _to_shipment(row: ShipmentRecord) -> Shipment:
    return Shipment(
        id=row.id,
        tracking_number=row.tracking_number,
        customer_id=row.customer_id,
        agent_id=row.agent_id,
        pool_id=row.pool_id,
    )


class InMemoryDirectory:
    """Dictionary-backed directory used by tests and local tooling."""

    def __init__(self) -> None:
        self.shipments: Dict[int, Shipment] = {}
        self.pools: Dict[int, Pool] = {}
        self.customers: Dict[int, Display] = {}
        self.agents: Dict[int, Display] = {}

    def add_shipment(self, shipment: Shipment) -> Shipment:
        self.shipments[shipment.id] = shipment
        return shipment

    def add_pool(self, pool: Pool) -> Pool:
        self.pools[pool.id] = pool
        return pool

    def get_shipment(self, shipment_id: int) -> Optional[Shipment]:
        return self.shipments.get(shipment_id)

    def get_pool(self, pool_id: int) -> Optional[Pool]:
        return self.pools.get(pool_id)

    def list_pool_shipments(self, pool_id: int) -> List[Shipment]:
        members = [s for s in self.shipments.values() if s.pool_id == pool_id]
        members.sort(key=lambda s: s.id)
        return members

    def get_customer_profile(self, user_id: int) -> Optional[Display]:
        return self.customers.get(user_id)

    def get_agent_profile(self, user_id: int) -> Optional[Display]:
        return self.agents.get(user_id)


__all__ = [
    "InMemoryDirectory",
    "ProfileDirectory",
    "ShipmentDirectory",
    "SqlAlchemyDirectory",
]
