# app/entrypoints/api/routers/dashboard.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..deps import get_caller, get_uow_factory
from ....domain.types import Caller
from ....schemas import LandlordSummary, TenantOut, TenantSummary
from ....service_layer import dashboard
from ....service_layer.unit_of_work import UowFactory

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard/landlord", response_model=LandlordSummary)
async def landlord_dashboard(
    months: int = Query(6, ge=1, le=24),
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> LandlordSummary:
    return LandlordSummary(**await dashboard.landlord_summary(uow_factory, caller, months=months))


@router.get("/dashboard/tenant", response_model=TenantSummary)
async def tenant_dashboard(
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> TenantSummary:
    return TenantSummary(**await dashboard.tenant_summary(uow_factory, caller))


@router.get("/tenants", response_model=list[TenantOut])
async def my_tenants(
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> list[TenantOut]:
    return [TenantOut(**row) for row in await dashboard.list_tenants(uow_factory, caller)]
