# tests/test_applications.py
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.config import settings
from app.domain.errors import InvalidState, NotFound, Unauthorized, ValidationFailed
from app.domain.types import ApplicationStatus, Caller, EmploymentInfo, Reference, Role
from app.models import OutboxEvent
from app.service_layer import applications
from app.service_layer.applications import references_of


async def test_submit_creates_pending_application(uow_factory, tenant, employment, property_p101, session_factory):
    a = await applications.submit(
        uow_factory,
        tenant,
        property_p101.id,
        tenant.user_id,
        employment,
        references=[Reference(name="Pat Doe", relationship="former landlord", phone="555-0100")],
        previous_address="9 Elm St",
    )
    assert a.status == ApplicationStatus.pending
    assert a.landlord_id == "L1"
    assert a.monthly_income == Decimal("5200")
    assert references_of(a)[0]["name"] == "Pat Doe"

    async with session_factory() as session:
        types = (await session.execute(select(OutboxEvent.event_type))).scalars().all()
    assert "application.submitted" in types


async def test_tenant_cannot_apply_for_someone_else(uow_factory, tenant, employment, property_p101):
    with pytest.raises(Unauthorized):
        await applications.submit(uow_factory, tenant, property_p101.id, "T9", employment)


async def test_landlord_cannot_submit(uow_factory, landlord, employment, property_p101):
    with pytest.raises(Unauthorized):
        await applications.submit(uow_factory, landlord, property_p101.id, landlord.user_id, employment)


async def test_unknown_property(uow_factory, tenant, employment):
    with pytest.raises(NotFound):
        await applications.submit(uow_factory, tenant, "P404", tenant.user_id, employment)


async def test_negative_income_rejected(uow_factory, tenant, property_p101):
    broke = EmploymentInfo(employment_status="unemployed", monthly_income=Decimal("-1"))
    with pytest.raises(ValidationFailed):
        await applications.submit(uow_factory, tenant, property_p101.id, tenant.user_id, broke)


async def test_duplicate_pending_application(uow_factory, tenant, employment, property_p101):
    await applications.submit(uow_factory, tenant, property_p101.id, tenant.user_id, employment)
    with pytest.raises(InvalidState):
        await applications.submit(uow_factory, tenant, property_p101.id, tenant.user_id, employment)


async def test_duplicates_allowed_by_setting(uow_factory, tenant, employment, property_p101, monkeypatch):
    monkeypatch.setattr(settings, "ALLOW_DUPLICATE_APPLICATIONS", True)
    await applications.submit(uow_factory, tenant, property_p101.id, tenant.user_id, employment)
    await applications.submit(uow_factory, tenant, property_p101.id, tenant.user_id, employment)
    assert len(await applications.list_applications(uow_factory, tenant)) == 2


async def test_cannot_apply_to_held_property(uow_factory, other_tenant, employment, approved_application, property_p101):
    with pytest.raises(InvalidState):
        await applications.submit(uow_factory, other_tenant, property_p101.id, other_tenant.user_id, employment)


async def test_resolve_requires_owning_landlord(uow_factory, tenant, employment, property_p101):
    a = await applications.submit(uow_factory, tenant, property_p101.id, tenant.user_id, employment)

    with pytest.raises(Unauthorized):
        await applications.resolve(uow_factory, Caller("L2", Role.landlord), a.id, "approved")
    with pytest.raises(Unauthorized):
        await applications.resolve(uow_factory, tenant, a.id, "approved")


async def test_resolve_only_once(uow_factory, landlord, approved_application):
    assert approved_application.status == ApplicationStatus.approved
    with pytest.raises(InvalidState):
        await applications.resolve(uow_factory, landlord, approved_application.id, "rejected")


async def test_resolve_rejects_unknown_decision(uow_factory, landlord, tenant, employment, property_p101):
    a = await applications.submit(uow_factory, tenant, property_p101.id, tenant.user_id, employment)
    for decision in ("pending", "maybe"):
        with pytest.raises(ValidationFailed):
            await applications.resolve(uow_factory, landlord, a.id, decision)


async def test_list_is_scoped_to_caller(uow_factory, landlord, tenant, other_tenant, employment, property_p101):
    await applications.submit(uow_factory, tenant, property_p101.id, tenant.user_id, employment)
    await applications.submit(uow_factory, other_tenant, property_p101.id, other_tenant.user_id, employment)

    assert len(await applications.list_applications(uow_factory, landlord)) == 2
    mine = await applications.list_applications(uow_factory, tenant)
    assert [a.tenant_id for a in mine] == ["T1"]
