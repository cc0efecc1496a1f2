# app/entrypoints/api/routers/payments.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..deps import get_caller, get_uow_factory
from ....domain.types import Caller
from ....schemas import PaymentOut
from ....service_layer import payments
from ....service_layer.unit_of_work import UowFactory

router = APIRouter(tags=["payments"])


@router.get("/payments", response_model=list[PaymentOut])
async def list_payments(
    lease_id: str | None = Query(None),
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> list[PaymentOut]:
    rows = await payments.list_payments(uow_factory, caller, lease_id=lease_id)
    return [PaymentOut.from_record(p) for p in rows]


@router.post("/payments/{payment_id}/pay", response_model=PaymentOut)
async def pay(
    payment_id: str,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> PaymentOut:
    return PaymentOut.from_record(await payments.pay(uow_factory, caller, payment_id))
