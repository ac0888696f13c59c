"""Tests for :mod:`parcel_chat.chat.receivers`."""

import pytest

from conftest import (
    AGENT,
    CUSTOMER,
    DELIVERY_AGENT,
    OTHER_CUSTOMER,
    OTHER_POOL,
    OTHER_POOL_SHIPMENT,
    PICKUP_AGENT,
    POOL,
    POOL_SHIPMENT_1,
    POOL_SHIPMENT_2,
    SOLO_SHIPMENT,
    STRANGER_AGENT,
    UNASSIGNED_SHIPMENT,
)
from parcel_chat.chat.errors import MissingTargetError, NoCounterpartyError, NotFoundError
from parcel_chat.chat.models import (
    Pool,
    PoolConversation,
    Principal,
    Shipment,
    ShipmentConversation,
)
from parcel_chat.chat.receivers import (
    POOL_AGENT_CHAIN,
    SHIPMENT_AGENT_CHAIN,
    ReceiverResolver,
    RoutingContext,
    first_resolved,
)


@pytest.fixture
def resolver(directory):
    return ReceiverResolver(directory)


def test_first_resolved_returns_first_defined_value():
    pool = Pool(1, "GRP", pickup_agent_id=7, delivery_agent_id=8)
    shipment = Shipment(1, "TRK", agent_id=None, pool_id=1)

    assert first_resolved(SHIPMENT_AGENT_CHAIN, RoutingContext(shipment, pool)) == 8
    assert first_resolved(POOL_AGENT_CHAIN, RoutingContext(None, Pool(2, "G", pickup_agent_id=7))) == 7
    assert first_resolved(POOL_AGENT_CHAIN, RoutingContext(None, Pool(3, "G"))) is None
    assert first_resolved([], RoutingContext()) is None


def test_customer_message_goes_to_assigned_agent(resolver):
    route = resolver.resolve(ShipmentConversation(SOLO_SHIPMENT), Principal.customer(CUSTOMER))

    assert route.receiver == Principal.agent(AGENT)
    assert route.conversation == ShipmentConversation(SOLO_SHIPMENT)
    assert route.reference == "TRK0001"


def test_agent_message_goes_to_customer(resolver):
    route = resolver.resolve(ShipmentConversation(SOLO_SHIPMENT), Principal.agent(AGENT))

    assert route.receiver == Principal.customer(CUSTOMER)


def test_customer_without_agent_has_no_counterparty(resolver):
    with pytest.raises(NoCounterpartyError, match="No agent assigned"):
        resolver.resolve(ShipmentConversation(UNASSIGNED_SHIPMENT), Principal.customer(CUSTOMER))


def test_agent_without_customer_has_no_counterparty(directory, resolver):
    directory.add_shipment(Shipment(60, "TRK0060", agent_id=AGENT))

    with pytest.raises(NoCounterpartyError, match="No customer"):
        resolver.resolve(ShipmentConversation(60), Principal.agent(AGENT))


def test_pooled_shipment_without_agent_prefers_delivery_agent(resolver):
    route = resolver.resolve(ShipmentConversation(POOL_SHIPMENT_1), Principal.customer(CUSTOMER))

    assert route.receiver == Principal.agent(DELIVERY_AGENT)


def test_pooled_shipment_falls_back_to_pickup_agent(directory, resolver):
    directory.add_pool(Pool(POOL, "GRP1001", pickup_agent_id=PICKUP_AGENT))

    route = resolver.resolve(ShipmentConversation(POOL_SHIPMENT_1), Principal.customer(CUSTOMER))

    assert route.receiver == Principal.agent(PICKUP_AGENT)


def test_direct_assignment_beats_pool_agents(directory, resolver):
    directory.add_shipment(
        Shipment(POOL_SHIPMENT_1, "TRK0011", customer_id=CUSTOMER, agent_id=AGENT, pool_id=POOL)
    )

    route = resolver.resolve(ShipmentConversation(POOL_SHIPMENT_1), Principal.customer(CUSTOMER))

    assert route.receiver == Principal.agent(AGENT)


def test_agent_in_pool_must_pick_a_customer(resolver):
    with pytest.raises(MissingTargetError, match="specify which customer"):
        resolver.resolve(PoolConversation(POOL), Principal.agent(DELIVERY_AGENT))


def test_agent_in_pool_targets_member_customer(resolver):
    route = resolver.resolve(
        PoolConversation(POOL, POOL_SHIPMENT_2), Principal.agent(DELIVERY_AGENT)
    )

    assert route.receiver == Principal.customer(OTHER_CUSTOMER)
    assert route.conversation == PoolConversation(POOL, POOL_SHIPMENT_2)
    assert route.reference == "GRP1001"


@pytest.mark.parametrize("target", [OTHER_POOL_SHIPMENT, SOLO_SHIPMENT, 999])
def test_agent_target_outside_pool_is_not_found(resolver, target):
    with pytest.raises(NotFoundError):
        resolver.resolve(PoolConversation(POOL, target), Principal.agent(DELIVERY_AGENT))


def test_customer_in_pool_reaches_delivery_agent_on_own_sub_thread(resolver):
    route = resolver.resolve(PoolConversation(POOL), Principal.customer(OTHER_CUSTOMER))

    assert route.receiver == Principal.agent(DELIVERY_AGENT)
    assert route.conversation == PoolConversation(POOL, POOL_SHIPMENT_2)


def test_customer_in_pool_falls_back_to_pickup_agent(directory, resolver):
    directory.add_pool(Pool(POOL, "GRP1001", pickup_agent_id=PICKUP_AGENT))

    route = resolver.resolve(PoolConversation(POOL, POOL_SHIPMENT_1), Principal.customer(CUSTOMER))

    assert route.receiver == Principal.agent(PICKUP_AGENT)


def test_customer_in_pool_without_agents_has_no_counterparty(directory, resolver):
    directory.add_pool(Pool(POOL, "GRP1001"))

    with pytest.raises(NoCounterpartyError, match="No agent assigned to this pool"):
        resolver.resolve(PoolConversation(POOL, POOL_SHIPMENT_1), Principal.customer(CUSTOMER))


def test_unknown_pool_is_not_found(resolver):
    with pytest.raises(NotFoundError):
        resolver.resolve(PoolConversation(404), Principal.customer(CUSTOMER))


def test_resolution_is_deterministic(resolver, directory):
    before = dict(directory.shipments), dict(directory.pools)
    ref = ShipmentConversation(POOL_SHIPMENT_1)
    sender = Principal.customer(CUSTOMER)

    assert resolver.resolve(ref, sender) == resolver.resolve(ref, sender)
    assert (dict(directory.shipments), dict(directory.pools)) == before


def test_other_pool_customer_only_has_pickup_agent(resolver):
    route = resolver.resolve(PoolConversation(OTHER_POOL), Principal.customer(103))

    assert route.receiver == Principal.agent(STRANGER_AGENT)
