# app/entrypoints/api/routers/maintenance.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import get_blob_store, get_caller, get_uow_factory
from ....adapters.blob_store import BlobStore
from ....domain.types import Caller
from ....schemas import MaintenanceCreate, MaintenanceOut, MaintenanceStatusUpdate
from ....service_layer import maintenance
from ....service_layer.unit_of_work import UowFactory

router = APIRouter(tags=["maintenance"])


@router.post("/maintenance", response_model=MaintenanceOut, status_code=201)
async def submit_request(
    body: MaintenanceCreate,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
    blob_store: BlobStore = Depends(get_blob_store),
) -> MaintenanceOut:
    req = await maintenance.submit_request(
        uow_factory,
        blob_store,
        caller,
        property_id=body.property_id,
        title=body.title,
        description=body.description,
        priority=body.priority,
        category=body.category,
    )
    return MaintenanceOut.from_record(req)


@router.get("/maintenance", response_model=list[MaintenanceOut])
async def list_requests(
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> list[MaintenanceOut]:
    return [MaintenanceOut.from_record(r) for r in await maintenance.list_requests(uow_factory, caller)]


@router.post("/maintenance/{request_id}/status", response_model=MaintenanceOut)
async def update_status(
    request_id: str,
    body: MaintenanceStatusUpdate,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> MaintenanceOut:
    req = await maintenance.update_request_status(uow_factory, caller, request_id, body.status)
    return MaintenanceOut.from_record(req)
