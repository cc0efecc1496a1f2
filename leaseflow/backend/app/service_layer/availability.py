# app/service_layer/availability.py
from __future__ import annotations

from ..adapters.entity_store import SqlAlchemyEntityStore, Where
from ..domain.policies import HOLDING_APPLICATION_STATUSES, OCCUPYING_LEASE_STATUSES, is_available as _rule
from .unit_of_work import UowFactory


async def occupying_leases(store: SqlAlchemyEntityStore, property_id: str) -> list:
    return await store.query(
        "leases",
        Where("property_id", "==", property_id),
        Where("status", "in", OCCUPYING_LEASE_STATUSES),
    )


async def property_availability(store: SqlAlchemyEntityStore, property_id: str) -> bool:
    """
    Derived on every call from applications + leases; the property's own
    `status` tag is never consulted.

    Raises NotFound for unknown properties.
    """
    await store.get("properties", property_id)

    approved = await store.count(
        "applications",
        Where("property_id", "==", property_id),
        Where("status", "in", HOLDING_APPLICATION_STATUSES),
    )
    occupying = await store.count(
        "leases",
        Where("property_id", "==", property_id),
        Where("status", "in", OCCUPYING_LEASE_STATUSES),
    )
    return _rule(approved, occupying)


async def is_available(uow_factory: UowFactory, property_id: str) -> bool:
    """Point-in-time snapshot; re-check right before acting on it."""
    async with uow_factory() as uow:
        return await property_availability(uow.store, property_id)
