# tests/test_payments.py
from datetime import date
from decimal import Decimal

import pytest

from app.domain.errors import InvalidState, Unauthorized
from app.domain.types import PaymentStatus
from app.service_layer import leases, payments
from app.service_layer.payments import rent_due_dates


def test_due_dates_anchor_on_start_day():
    assert rent_due_dates(date(2025, 1, 31), date(2025, 5, 1)) == [
        date(2025, 1, 31),
        date(2025, 2, 28),
        date(2025, 3, 31),
        date(2025, 4, 30),
    ]


def test_due_dates_exclude_end():
    assert rent_due_dates(date(2025, 1, 1), date(2025, 3, 1)) == [date(2025, 1, 1), date(2025, 2, 1)]
    assert rent_due_dates(date(2025, 1, 1), date(2025, 1, 2)) == [date(2025, 1, 1)]


@pytest.fixture
async def signed_lease(uow_factory, landlord, tenant, pending_lease):
    await leases.sign(uow_factory, tenant, pending_lease.id)
    return await leases.sign(uow_factory, landlord, pending_lease.id)


async def test_tenant_pays_once(uow_factory, tenant, signed_lease):
    due = await payments.list_payments(uow_factory, tenant, lease_id=signed_lease.id)
    first = min(due, key=lambda p: p.due_date)
    assert first.amount == Decimal("1450.00")

    paid = await payments.pay(uow_factory, tenant, first.id)
    assert paid.status == PaymentStatus.completed
    assert paid.paid_at is not None

    with pytest.raises(InvalidState):
        await payments.pay(uow_factory, tenant, first.id)


async def test_only_the_lease_tenant_pays(uow_factory, landlord, other_tenant, signed_lease):
    due = await payments.list_payments(uow_factory, landlord, lease_id=signed_lease.id)
    with pytest.raises(Unauthorized):
        await payments.pay(uow_factory, other_tenant, due[0].id)
    with pytest.raises(Unauthorized):
        await payments.pay(uow_factory, landlord, due[0].id)


async def test_schedule_is_idempotent(uow_factory, tenant, signed_lease):
    async with uow_factory() as uow:
        assert await payments.schedule_rent_payments(uow.store, signed_lease) == 0
    assert len(await payments.list_payments(uow_factory, tenant)) == 12
