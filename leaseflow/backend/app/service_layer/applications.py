# app/service_layer/applications.py
from __future__ import annotations

import json
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Sequence

from ..adapters.entity_store import Where
from ..config import settings
from ..domain.errors import InvalidState, ValidationFailed
from ..domain.policies import RESOLUTIONS
from ..domain.types import ApplicationStatus, Caller, EmploymentInfo, Reference, Role
from ..models import Application
from .availability import property_availability
from .guards import party_filter_field, require_party, require_role
from .outbox import enqueue_event
from .unit_of_work import UowFactory

log = logging.getLogger(__name__)


async def submit(
    uow_factory: UowFactory,
    caller: Caller,
    property_id: str,
    tenant_id: str,
    employment: EmploymentInfo,
    references: Sequence[Reference] = (),
    previous_address: str | None = None,
    additional_info: str | None = None,
) -> Application:
    """
    A tenant applies to rent a property.

    - caller must be the applying tenant
    - the property must currently be available
    - one pending application per tenant per property (unless
      ALLOW_DUPLICATE_APPLICATIONS)
    """
    require_role(caller, Role.tenant, "submit a rental application")
    require_party(caller, tenant_id, "apply on behalf of another tenant")

    if employment.monthly_income is not None and employment.monthly_income < 0:
        raise ValidationFailed("monthly_income must not be negative")
    for ref in references:
        if not (ref.name or "").strip():
            raise ValidationFailed("every reference needs a name")

    async with uow_factory() as uow:
        prop = await uow.store.get("properties", property_id)
        if prop.landlord_id == tenant_id:
            raise ValidationFailed("landlords cannot apply to their own property")

        if not await property_availability(uow.store, property_id):
            raise InvalidState(f"property {property_id} is not available")

        if not settings.ALLOW_DUPLICATE_APPLICATIONS:
            dup = await uow.store.count(
                "applications",
                Where("property_id", "==", property_id),
                Where("tenant_id", "==", tenant_id),
                Where("status", "==", ApplicationStatus.pending),
            )
            if dup:
                raise InvalidState(f"tenant {tenant_id} already has a pending application for {property_id}")

        app_id = await uow.store.insert(
            "applications",
            {
                "property_id": property_id,
                "tenant_id": tenant_id,
                "landlord_id": prop.landlord_id,
                "employment_status": employment.employment_status,
                "employer": employment.employer,
                "monthly_income": employment.monthly_income,
                "employment_length": employment.employment_length,
                "previous_address": previous_address,
                "references_json": json.dumps([asdict(r) for r in references]),
                "additional_info": additional_info,
                "status": ApplicationStatus.pending,
            },
        )
        await enqueue_event(
            uow.session,
            "application.submitted",
            {"application_id": app_id, "property_id": property_id, "tenant_id": tenant_id},
        )
        application = await uow.store.get("applications", app_id)

    log.info("application %s submitted for property %s by %s", app_id, property_id, tenant_id)
    return application


async def resolve(
    uow_factory: UowFactory,
    caller: Caller,
    application_id: str,
    decision: ApplicationStatus | str,
) -> Application:
    """
    Landlord approves or rejects a pending application. No lease is created
    here; that is a separate landlord action.
    """
    try:
        decision = ApplicationStatus(decision)
    except ValueError:
        raise ValidationFailed(f"unknown decision {decision!r}") from None
    if decision not in RESOLUTIONS:
        raise ValidationFailed("decision must be approved or rejected")

    async with uow_factory() as uow:
        application = await uow.store.get("applications", application_id)
        require_party(caller, application.landlord_id, "resolve this application")
        if application.status != ApplicationStatus.pending:
            raise InvalidState(
                f"application {application_id} is already {application.status.value}"
            )

        application = await uow.store.update(
            "applications",
            application_id,
            {"status": decision, "updated_at": datetime.utcnow()},
            expected_version=application.version,
        )
        await enqueue_event(
            uow.session,
            "application.resolved",
            {
                "application_id": application_id,
                "property_id": application.property_id,
                "tenant_id": application.tenant_id,
                "status": decision.value,
            },
        )

    log.info("application %s %s", application_id, decision.value)
    return application


async def list_applications(uow_factory: UowFactory, caller: Caller) -> list[Application]:
    async with uow_factory() as uow:
        return await uow.store.query(
            "applications",
            Where(party_filter_field(caller), "==", caller.user_id),
            order_by="created_at",
            descending=True,
        )


def references_of(application: Application) -> list[dict]:
    return json.loads(application.references_json or "[]")
