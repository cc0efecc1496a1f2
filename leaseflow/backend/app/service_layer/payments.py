# app/service_layer/payments.py
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from ..adapters.entity_store import SqlAlchemyEntityStore, Where
from ..domain.errors import InvalidState
from ..domain.types import Caller, PaymentStatus, Role
from ..models import Lease, Payment
from .guards import party_filter_field, require_party, require_role
from .outbox import enqueue_event
from .unit_of_work import UowFactory

log = logging.getLogger(__name__)


def rent_due_dates(start: date, end: date) -> list[date]:
    """
    One due date per month, anchored on the lease start day and strictly
    before the end date. Offsets are taken from `start` each time so a
    31st start does not drift after a short month.
    """
    out: list[date] = []
    i = 0
    while True:
        due = start + relativedelta(months=i)
        if due >= end:
            return out
        out.append(due)
        i += 1


async def schedule_rent_payments(store: SqlAlchemyEntityStore, lease: Lease) -> int:
    """Create the pending rent schedule for a freshly signed lease. Idempotent."""
    existing = await store.count("payments", Where("lease_id", "==", lease.id))
    if existing:
        return 0

    amount = Decimal(lease.monthly_rent)
    rows = [
        {
            "lease_id": lease.id,
            "property_id": lease.property_id,
            "tenant_id": lease.tenant_id,
            "landlord_id": lease.landlord_id,
            "amount": amount,
            "due_date": due,
            "status": PaymentStatus.pending,
        }
        for due in rent_due_dates(lease.start_date, lease.end_date)
    ]
    await store.insert_many("payments", rows)
    log.info("lease %s: scheduled %d rent payments", lease.id, len(rows))
    return len(rows)


async def pay(uow_factory: UowFactory, caller: Caller, payment_id: str) -> Payment:
    require_role(caller, Role.tenant, "pay rent")
    async with uow_factory() as uow:
        payment = await uow.store.get("payments", payment_id)
        require_party(caller, payment.tenant_id, "pay this payment")
        if payment.status != PaymentStatus.pending:
            raise InvalidState(f"payment {payment_id} is already {payment.status.value}")

        now = datetime.utcnow()
        payment = await uow.store.update(
            "payments",
            payment_id,
            {"status": PaymentStatus.completed, "paid_at": now, "updated_at": now},
            expected_version=payment.version,
        )
        await enqueue_event(
            uow.session,
            "payment.completed",
            {
                "payment_id": payment_id,
                "lease_id": payment.lease_id,
                "tenant_id": payment.tenant_id,
                "amount": str(payment.amount),
                "due_date": payment.due_date.isoformat(),
            },
        )
    return payment


async def list_payments(uow_factory: UowFactory, caller: Caller, lease_id: str | None = None) -> list[Payment]:
    where = [Where(party_filter_field(caller), "==", caller.user_id)]
    if lease_id:
        where.append(Where("lease_id", "==", lease_id))
    async with uow_factory() as uow:
        return await uow.store.query("payments", *where, order_by="due_date", descending=True)
