# app/entrypoints/api/routers/leases.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from ..deps import get_blob_store, get_caller, get_uow_factory
from ....adapters.blob_store import BlobStore
from ....domain.types import Caller, LeaseOptions
from ....schemas import LeaseAction, LeaseCreate, LeaseDocumentAttach, LeaseOut, LeaseTenantAssign
from ....service_layer import leases
from ....service_layer.unit_of_work import UowFactory

router = APIRouter(tags=["leases"])


@router.post("/leases", response_model=LeaseOut, status_code=201)
async def create_lease(
    body: LeaseCreate,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> LeaseOut:
    options = LeaseOptions(
        terms=body.terms,
        monthly_rent=body.monthly_rent,
        security_deposit=body.security_deposit,
        start_date=body.start_date,
        end_date=body.end_date,
        tenant_id=body.tenant_id,
        application_id=body.application_id,
        document_url=body.document_url,
    )
    lease = await leases.create(uow_factory, caller, body.property_id, options)
    return LeaseOut.from_record(lease)


@router.get("/leases", response_model=list[LeaseOut])
async def list_leases(
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> list[LeaseOut]:
    return [LeaseOut.from_record(lease) for lease in await leases.list_leases(uow_factory, caller)]


@router.get("/leases/{lease_id}", response_model=LeaseOut)
async def get_lease(
    lease_id: str,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> LeaseOut:
    return LeaseOut.from_record(await leases.get_lease(uow_factory, caller, lease_id))


@router.post("/leases/{lease_id}/tenant", response_model=LeaseOut)
async def assign_tenant(
    lease_id: str,
    body: LeaseTenantAssign,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> LeaseOut:
    return LeaseOut.from_record(await leases.assign_tenant(uow_factory, caller, lease_id, body.tenant_id))


@router.post("/leases/{lease_id}/document", response_model=LeaseOut)
async def attach_document(
    lease_id: str,
    body: LeaseDocumentAttach,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> LeaseOut:
    return LeaseOut.from_record(await leases.attach_document(uow_factory, caller, lease_id, body.document_url))


@router.put("/leases/{lease_id}/document", response_model=LeaseOut)
async def upload_document(
    lease_id: str,
    request: Request,
    filename: str = Query("lease.pdf"),
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
    blob_store: BlobStore = Depends(get_blob_store),
) -> LeaseOut:
    """Raw upload: body is the document bytes, Content-Type must be application/pdf."""
    content_type = (request.headers.get("content-type") or "").split(";")[0].strip()
    data = await request.body()
    lease = await leases.upload_document(uow_factory, blob_store, caller, lease_id, filename, data, content_type)
    return LeaseOut.from_record(lease)


@router.post("/leases/{lease_id}/sign", response_model=LeaseOut)
async def sign_lease(
    lease_id: str,
    body: LeaseAction | None = None,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> LeaseOut:
    role = body.acting_role if body else None
    return LeaseOut.from_record(await leases.sign(uow_factory, caller, lease_id, role))


@router.post("/leases/{lease_id}/reject", response_model=LeaseOut)
async def reject_lease(
    lease_id: str,
    body: LeaseAction | None = None,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> LeaseOut:
    role = body.acting_role if body else None
    return LeaseOut.from_record(await leases.reject(uow_factory, caller, lease_id, role))
