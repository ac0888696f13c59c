"""Authorization gate for chat conversations.

Two ownership graphs overlap here:

- a shipment has at most one customer and one directly assigned agent;
- a pool has a pickup agent and a delivery agent that jointly serve every
  member shipment, each member shipment having its own customer.

Pool agents therefore reach a member shipment's own thread even without a
direct assignment on the shipment, and reach every sub-thread of the pool.
Customers only ever reach threads about their own shipments.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from .directory import ShipmentDirectory
from .errors import AccessDeniedError, NotFoundError
from .models import (
    ConversationRef,
    Pool,
    PoolConversation,
    Principal,
    Role,
    Shipment,
    ShipmentConversation,
)

logger = logging.getLogger(__name__)


class AccessEvaluator:
    """Decides whether a principal may read or post to a conversation."""

    def __init__(self, directory: ShipmentDirectory) -> None:
        self._directory = directory
        self._shipment_checks: Dict[Role, Callable[[Shipment, Principal], bool]] = {
            Role.CUSTOMER: self._customer_owns_shipment,
            Role.AGENT: self._agent_serves_shipment,
        }
        self._pool_checks: Dict[Role, Callable[[Pool, Principal], bool]] = {
            Role.CUSTOMER: self._customer_in_pool,
            Role.AGENT: self._agent_serves_pool,
        }

    # ------------------------------------------------------------------
    # Lookups

    def get_shipment(self, shipment_id: int) -> Shipment:
        shipment = self._directory.get_shipment(shipment_id)
        if shipment is None:
            raise NotFoundError("Shipment", shipment_id)
        return shipment

    def get_pool(self, pool_id: int) -> Pool:
        pool = self._directory.get_pool(pool_id)
        if pool is None:
            raise NotFoundError("Pool", pool_id)
        return pool

    def get_member_shipment(self, pool: Pool, shipment_id: int) -> Shipment:
        """Return ``shipment_id`` if it is a member of ``pool``.

        A shipment that exists but belongs to another pool is reported as not
        found so callers cannot probe foreign pools.
        """

        shipment = self._directory.get_shipment(shipment_id)
        if shipment is None or shipment.pool_id != pool.id:
            raise NotFoundError("Shipment", shipment_id)
        return shipment

    # ------------------------------------------------------------------
    # Gates

    def authorize(self, ref: ConversationRef, principal: Principal) -> None:
        """Raise :class:`AccessDeniedError` unless ``principal`` may use ``ref``."""

        if isinstance(ref, PoolConversation):
            pool = self.get_pool(ref.pool_id)
            if ref.shipment_id is None:
                self.authorize_pool(pool, principal)
            else:
                member = self.get_member_shipment(pool, ref.shipment_id)
                self.authorize_sub_thread(pool, member, principal)
        else:
            self.authorize_shipment(self.get_shipment(ref.shipment_id), principal)

    def authorize_shipment(self, shipment: Shipment, principal: Principal) -> None:
        if not self.can_access_shipment(shipment, principal):
            self._deny(principal, f"shipment {shipment.id}")

    def authorize_pool(self, pool: Pool, principal: Principal) -> None:
        if not self.can_access_pool(pool, principal):
            self._deny(principal, f"pool {pool.id}")

    def authorize_sub_thread(
        self, pool: Pool, member: Shipment, principal: Principal
    ) -> None:
        if not self.can_access_sub_thread(pool, member, principal):
            self._deny(principal, f"pool {pool.id} shipment {member.id}")

    # ------------------------------------------------------------------
    # Predicates

    def can_access_shipment(self, shipment: Shipment, principal: Principal) -> bool:
        check = self._shipment_checks.get(principal.role)
        return bool(check and check(shipment, principal))

    def can_access_pool(self, pool: Pool, principal: Principal) -> bool:
        check = self._pool_checks.get(principal.role)
        return bool(check and check(pool, principal))

    def can_access_sub_thread(
        self, pool: Pool, member: Shipment, principal: Principal
    ) -> bool:
        if principal.role is Role.AGENT:
            return self._agent_serves_pool(pool, principal)
        return self._customer_owns_shipment(member, principal)

    # ------------------------------------------------------------------
    # Role checks

    def _customer_owns_shipment(self, shipment: Shipment, principal: Principal) -> bool:
        return shipment.customer_id is not None and shipment.customer_id == principal.user_id

    def _agent_serves_shipment(self, shipment: Shipment, principal: Principal) -> bool:
        if shipment.agent_id is not None and shipment.agent_id == principal.user_id:
            return True
        if shipment.pool_id is None:
            return False
        pool: Optional[Pool] = self._directory.get_pool(shipment.pool_id)
        return pool is not None and self._agent_serves_pool(pool, principal)

    def _agent_serves_pool(self, pool: Pool, principal: Principal) -> bool:
        return pool.is_agent(principal.user_id)

    def _customer_in_pool(self, pool: Pool, principal: Principal) -> bool:
        return any(
            self._customer_owns_shipment(member, principal)
            for member in self._directory.list_pool_shipments(pool.id)
        )

    def _deny(self, principal: Principal, target: str) -> None:
        logger.info(
            "Chat access denied for %s %s on %s",
            principal.role.value,
            principal.user_id,
            target,
        )
        raise AccessDeniedError()


__all__ = ["AccessEvaluator"]
