# tests/test_availability.py
import pytest

from app.adapters.entity_store import SqlAlchemyEntityStore
from app.domain.errors import NotFound
from app.service_layer import applications, leases
from app.service_layer.availability import is_available


async def test_fresh_property_is_available(uow_factory, property_p101):
    assert await is_available(uow_factory, property_p101.id) is True


async def test_unknown_property_raises(uow_factory):
    with pytest.raises(NotFound):
        await is_available(uow_factory, "P404")


async def test_pending_application_does_not_hold(uow_factory, tenant, employment, property_p101):
    await applications.submit(uow_factory, tenant, property_p101.id, tenant.user_id, employment)
    assert await is_available(uow_factory, property_p101.id) is True


async def test_approved_application_holds(uow_factory, approved_application, property_p101):
    assert await is_available(uow_factory, property_p101.id) is False


async def test_rejected_application_releases(uow_factory, landlord, tenant, employment, property_p101):
    a = await applications.submit(uow_factory, tenant, property_p101.id, tenant.user_id, employment)
    await applications.resolve(uow_factory, landlord, a.id, "rejected")
    assert await is_available(uow_factory, property_p101.id) is True


async def test_pending_lease_does_not_occupy(uow_factory, pending_lease, property_p101):
    assert await is_available(uow_factory, property_p101.id) is True


async def test_signed_lease_occupies(uow_factory, landlord, tenant, pending_lease, property_p101):
    await leases.sign(uow_factory, tenant, pending_lease.id)
    await leases.sign(uow_factory, landlord, pending_lease.id)
    assert await is_available(uow_factory, property_p101.id) is False


async def test_stored_status_tag_is_ignored(uow_factory, session_factory, property_p101):
    async with session_factory() as session:
        await SqlAlchemyEntityStore(session).update("properties", property_p101.id, {"status": "occupied"})
        await session.commit()

    assert await is_available(uow_factory, property_p101.id) is True
