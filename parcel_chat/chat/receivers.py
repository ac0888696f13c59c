"""Resolve the counterparty of a new chat message.

Callers never name the receiver for the common case: the receiver follows
from the conversation and the sender's role. Agent fallbacks are ordered
chains of strategies; the first strategy yielding a user id wins, and the
delivery agent precedes the pickup agent once both are assigned.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Sequence

from .directory import ShipmentDirectory
from .errors import MissingTargetError, NoCounterpartyError, NotFoundError
from .models import (
    ConversationRef,
    Pool,
    PoolConversation,
    Principal,
    Role,
    Shipment,
)


@dataclass(frozen=True)
class RoutingContext:
    shipment: Optional[Shipment] = None
    pool: Optional[Pool] = None


Strategy = Callable[[RoutingContext], Optional[int]]


def shipment_agent(ctx: RoutingContext) -> Optional[int]:
    return ctx.shipment.agent_id if ctx.shipment else None


def shipment_customer(ctx: RoutingContext) -> Optional[int]:
    return ctx.shipment.customer_id if ctx.shipment else None


def pool_delivery_agent(ctx: RoutingContext) -> Optional[int]:
    return ctx.pool.delivery_agent_id if ctx.pool else None


def pool_pickup_agent(ctx: RoutingContext) -> Optional[int]:
    return ctx.pool.pickup_agent_id if ctx.pool else None


SHIPMENT_AGENT_CHAIN: Sequence[Strategy] = (
    shipment_agent,
    pool_delivery_agent,
    pool_pickup_agent,
)
POOL_AGENT_CHAIN: Sequence[Strategy] = (pool_delivery_agent, pool_pickup_agent)
CUSTOMER_CHAIN: Sequence[Strategy] = (shipment_customer,)


def first_resolved(strategies: Iterable[Strategy], ctx: RoutingContext) -> Optional[int]:
    """Evaluate ``strategies`` in order and return the first defined value."""

    for strategy in strategies:
        value = strategy(ctx)
        if value is not None:
            return value
    return None


@dataclass(frozen=True)
class Route:
    """Outcome of receiver resolution.

    ``conversation`` is the thread the message is stored in; for pools it
    always carries the member shipment of the sub-thread. ``reference`` is the
    human-facing tracking number or pool code used in notifications.
    """

    receiver: Principal
    conversation: ConversationRef
    reference: str


class ReceiverResolver:
    """Computes the unique legitimate counterparty for a send.

    Resolution only reads the directory, so calling it twice on unchanged
    state yields the same route.
    """

    def __init__(self, directory: ShipmentDirectory) -> None:
        self._directory = directory
        self._shipment_routes: Dict[Role, Callable[[Shipment, Optional[Pool]], Principal]] = {
            Role.CUSTOMER: self._customer_to_shipment_agent,
            Role.AGENT: self._agent_to_shipment_customer,
        }
        self._pool_routes: Dict[Role, Callable[[Pool, Principal, Optional[int]], Route]] = {
            Role.CUSTOMER: self._customer_to_pool_agent,
            Role.AGENT: self._agent_to_pool_customer,
        }

    def resolve(self, ref: ConversationRef, sender: Principal) -> Route:
        if isinstance(ref, PoolConversation):
            pool = self._require_pool(ref.pool_id)
            return self._pool_routes[sender.role](pool, sender, ref.shipment_id)
        shipment = self._directory.get_shipment(ref.shipment_id)
        if shipment is None:
            raise NotFoundError("Shipment", ref.shipment_id)
        pool = None
        if shipment.pool_id is not None:
            pool = self._directory.get_pool(shipment.pool_id)
        receiver = self._shipment_routes[sender.role](shipment, pool)
        return Route(receiver, ref, shipment.tracking_number)

    # ------------------------------------------------------------------
    # Single shipment

    def _customer_to_shipment_agent(
        self, shipment: Shipment, pool: Optional[Pool]
    ) -> Principal:
        agent_id = first_resolved(SHIPMENT_AGENT_CHAIN, RoutingContext(shipment, pool))
        if agent_id is None:
            raise NoCounterpartyError("No agent assigned to this shipment yet")
        return Principal.agent(agent_id)

    def _agent_to_shipment_customer(
        self, shipment: Shipment, pool: Optional[Pool]
    ) -> Principal:
        customer_id = first_resolved(CUSTOMER_CHAIN, RoutingContext(shipment, pool))
        if customer_id is None:
            raise NoCounterpartyError("No customer associated with this shipment")
        return Principal.customer(customer_id)

    # ------------------------------------------------------------------
    # Pools

    def _agent_to_pool_customer(
        self, pool: Pool, sender: Principal, target_shipment_id: Optional[int]
    ) -> Route:
        if target_shipment_id is None:
            raise MissingTargetError()
        member = self._require_member(pool, target_shipment_id)
        customer_id = first_resolved(CUSTOMER_CHAIN, RoutingContext(member, pool))
        if customer_id is None:
            raise NoCounterpartyError("No customer associated with this shipment")
        return Route(
            Principal.customer(customer_id),
            PoolConversation(pool.id, member.id),
            pool.pool_code,
        )

    def _customer_to_pool_agent(
        self, pool: Pool, sender: Principal, target_shipment_id: Optional[int]
    ) -> Route:
        if target_shipment_id is not None:
            member = self._require_member(pool, target_shipment_id)
        else:
            member = self._own_member_shipment(pool, sender)
        agent_id = first_resolved(POOL_AGENT_CHAIN, RoutingContext(member, pool))
        if agent_id is None:
            raise NoCounterpartyError("No agent assigned to this pool yet")
        return Route(
            Principal.agent(agent_id),
            PoolConversation(pool.id, member.id),
            pool.pool_code,
        )

    # ------------------------------------------------------------------
    # Helpers

    def _require_pool(self, pool_id: int) -> Pool:
        pool = self._directory.get_pool(pool_id)
        if pool is None:
            raise NotFoundError("Pool", pool_id)
        return pool

    def _require_member(self, pool: Pool, shipment_id: int) -> Shipment:
        shipment = self._directory.get_shipment(shipment_id)
        if shipment is None or shipment.pool_id != pool.id:
            raise NotFoundError("Shipment", shipment_id)
        return shipment

    def _own_member_shipment(self, pool: Pool, sender: Principal) -> Shipment:
        for member in self._directory.list_pool_shipments(pool.id):
            if member.customer_id == sender.user_id:
                return member
        raise MissingTargetError("Please specify which shipment this message is about")


__all__ = [
    "CUSTOMER_CHAIN",
    "POOL_AGENT_CHAIN",
    "ReceiverResolver",
    "Route",
    "RoutingContext",
    "SHIPMENT_AGENT_CHAIN",
    "first_resolved",
    "pool_delivery_agent",
    "pool_pickup_agent",
    "shipment_agent",
    "shipment_customer",
]
