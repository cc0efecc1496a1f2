# app/entrypoints/api/routers/applications.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import get_caller, get_uow_factory
from ....domain.types import Caller, EmploymentInfo, Reference
from ....schemas import ApplicationCreate, ApplicationOut, ApplicationResolve
from ....service_layer import applications
from ....service_layer.unit_of_work import UowFactory

router = APIRouter(tags=["applications"])


@router.post("/applications", response_model=ApplicationOut, status_code=201)
async def submit_application(
    body: ApplicationCreate,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> ApplicationOut:
    application = await applications.submit(
        uow_factory,
        caller,
        property_id=body.property_id,
        tenant_id=caller.user_id,
        employment=EmploymentInfo(
            employment_status=body.employment_status,
            employer=body.employer,
            monthly_income=body.monthly_income,
            employment_length=body.employment_length,
        ),
        references=[Reference(**r.model_dump()) for r in body.references],
        previous_address=body.previous_address,
        additional_info=body.additional_info,
    )
    return ApplicationOut.from_record(application)


@router.get("/applications", response_model=list[ApplicationOut])
async def list_applications(
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> list[ApplicationOut]:
    rows = await applications.list_applications(uow_factory, caller)
    return [ApplicationOut.from_record(a) for a in rows]


@router.post("/applications/{application_id}/resolve", response_model=ApplicationOut)
async def resolve_application(
    application_id: str,
    body: ApplicationResolve,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> ApplicationOut:
    application = await applications.resolve(uow_factory, caller, application_id, body.decision)
    return ApplicationOut.from_record(application)
