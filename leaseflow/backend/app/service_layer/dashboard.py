# app/service_layer/dashboard.py
from __future__ import annotations

from collections import Counter
from datetime import date
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from ..adapters.entity_store import Where
from ..domain.policies import OCCUPYING_LEASE_STATUSES
from ..domain.types import Caller, LeaseStatus, MaintenanceStatus, PaymentStatus, Role
from .guards import require_role
from .unit_of_work import UowFactory


def _month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


async def landlord_summary(
    uow_factory: UowFactory,
    caller: Caller,
    months: int = 6,
    today: date | None = None,
) -> dict:
    """
    Portfolio snapshot for one landlord.

    Occupancy counts properties that have a signed/active lease (not the
    stored status tag). Revenue only counts completed payments, bucketed by
    the month they were paid, for the trailing `months` months.
    """
    require_role(caller, Role.landlord, "view the landlord dashboard")
    today = today or date.today()
    months = max(1, months)

    async with uow_factory() as uow:
        props = await uow.store.query("properties", Where("landlord_id", "==", caller.user_id))
        leases = await uow.store.query(
            "leases",
            Where("landlord_id", "==", caller.user_id),
            Where("status", "in", OCCUPYING_LEASE_STATUSES),
        )
        paid = await uow.store.query(
            "payments",
            Where("landlord_id", "==", caller.user_id),
            Where("status", "==", PaymentStatus.completed),
        )
        requests = await uow.store.query("maintenance", Where("landlord_id", "==", caller.user_id))

    occupied = len({lease.property_id for lease in leases})

    first = (today.replace(day=1)) - relativedelta(months=months - 1)
    window = [_month_key(first + relativedelta(months=i)) for i in range(months)]
    revenue = {k: Decimal("0") for k in window}
    for p in paid:
        when = (p.paid_at.date() if p.paid_at else p.due_date)
        key = _month_key(when)
        if key in revenue:
            revenue[key] += p.amount

    by_status = Counter(r.status for r in requests)

    return {
        "total_properties": len(props),
        "occupied": occupied,
        "vacant": max(0, len(props) - occupied),
        "total_revenue": sum((p.amount for p in paid), Decimal("0")),
        "revenue_by_month": [{"month": k, "amount": revenue[k]} for k in window],
        "maintenance": {s.value: by_status.get(s, 0) for s in MaintenanceStatus},
    }


async def tenant_summary(uow_factory: UowFactory, caller: Caller) -> dict:
    """Counts behind the tenant home screen."""
    require_role(caller, Role.tenant, "view the tenant dashboard")
    mine = Where("tenant_id", "==", caller.user_id)
    async with uow_factory() as uow:
        active_leases = await uow.store.count("leases", mine, Where("status", "in", OCCUPYING_LEASE_STATUSES))
        awaiting_signature = await uow.store.count(
            "leases", mine, Where("status", "==", LeaseStatus.pending_signature)
        )
        pending = await uow.store.query(
            "payments", mine, Where("status", "==", PaymentStatus.pending), order_by="due_date"
        )
        open_requests = await uow.store.count(
            "maintenance", mine, Where("status", "in", (MaintenanceStatus.open, MaintenanceStatus.in_progress))
        )

    return {
        "active_leases": active_leases,
        "leases_awaiting_signature": awaiting_signature,
        "pending_payments": len(pending),
        "amount_due": sum((p.amount for p in pending), Decimal("0")),
        "next_due_date": pending[0].due_date if pending else None,
        "open_maintenance": open_requests,
    }


async def list_tenants(uow_factory: UowFactory, caller: Caller) -> list[dict]:
    """A landlord's current tenants: one row per signed/active lease, with its property."""
    require_role(caller, Role.landlord, "list their tenants")
    async with uow_factory() as uow:
        leases = await uow.store.query(
            "leases",
            Where("landlord_id", "==", caller.user_id),
            Where("status", "in", OCCUPYING_LEASE_STATUSES),
            order_by="start_date",
        )
        props = {}
        if leases:
            rows = await uow.store.query("properties", Where("id", "in", tuple({lease.property_id for lease in leases})))
            props = {p.id: p for p in rows}

    out = []
    for lease in leases:
        prop = props.get(lease.property_id)
        out.append(
            {
                "tenant_id": lease.tenant_id,
                "lease_id": lease.id,
                "lease_status": lease.status.value,
                "property_id": lease.property_id,
                "property_name": prop.name if prop else None,
                "property_address": prop.address if prop else None,
                "start_date": lease.start_date,
                "end_date": lease.end_date,
                "monthly_rent": lease.monthly_rent,
            }
        )
    return out
