# app/service_layer/maintenance.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from ..adapters.blob_store import BlobStore, safe_filename
from ..adapters.entity_store import Where
from ..domain.errors import InvalidState, Unauthorized, ValidationFailed
from ..domain.policies import OCCUPYING_LEASE_STATUSES, maintenance_transition_allowed
from ..domain.types import Caller, MaintenanceCategory, MaintenancePriority, MaintenanceStatus, Role
from ..models import MaintenanceRequest
from .guards import party_filter_field, require_party, require_role
from .outbox import enqueue_event
from .unit_of_work import UowFactory

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Photo:
    filename: str
    data: bytes
    content_type: str


def _enum(enum_cls, value, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationFailed(f"{field} must be one of: {allowed}") from None


async def submit_request(
    uow_factory: UowFactory,
    blob_store: BlobStore,
    caller: Caller,
    property_id: str,
    title: str,
    description: str,
    priority: MaintenancePriority | str = MaintenancePriority.normal,
    category: MaintenanceCategory | str = MaintenanceCategory.general,
    photos: Sequence[Photo] = (),
) -> MaintenanceRequest:
    require_role(caller, Role.tenant, "submit a maintenance request")
    if not (title or "").strip():
        raise ValidationFailed("title is required")
    if not (description or "").strip():
        raise ValidationFailed("description is required")
    priority = _enum(MaintenancePriority, priority, "priority")
    category = _enum(MaintenanceCategory, category, "category")
    for p in photos:
        if not p.content_type.startswith("image/"):
            raise ValidationFailed(f"{p.filename} is not an image")

    async with uow_factory() as uow:
        prop = await uow.store.get("properties", property_id)
        occupant = prop.tenant_id == caller.user_id or bool(
            await uow.store.count(
                "leases",
                Where("property_id", "==", property_id),
                Where("tenant_id", "==", caller.user_id),
                Where("status", "in", OCCUPYING_LEASE_STATUSES),
            )
        )
        if not occupant:
            raise Unauthorized(f"user {caller.user_id!r} does not occupy property {property_id}")
        landlord_id = prop.landlord_id

    # uploads happen outside the transaction; the record only stores locators
    stamp = datetime.utcnow().strftime("%Y%m%d%H%M%S%f")
    images = [
        await blob_store.store(
            f"maintenance/{caller.user_id}/{stamp}_{i}_{safe_filename(p.filename)}", p.data, p.content_type
        )
        for i, p in enumerate(photos)
    ]

    async with uow_factory() as uow:
        request_id = await uow.store.insert(
            "maintenance",
            {
                "property_id": property_id,
                "tenant_id": caller.user_id,
                "landlord_id": landlord_id,
                "title": title.strip(),
                "description": description.strip(),
                "priority": priority,
                "category": category,
                "images_json": json.dumps(images),
                "status": MaintenanceStatus.open,
            },
        )
        await enqueue_event(
            uow.session,
            "maintenance.submitted",
            {"request_id": request_id, "property_id": property_id, "priority": priority.value},
        )
        req = await uow.store.get("maintenance", request_id)

    log.info("maintenance request %s opened on %s (%s)", request_id, property_id, priority.value)
    return req


async def update_request_status(
    uow_factory: UowFactory,
    caller: Caller,
    request_id: str,
    status: MaintenanceStatus | str,
) -> MaintenanceRequest:
    require_role(caller, Role.landlord, "update a maintenance request")
    status = _enum(MaintenanceStatus, status, "status")

    async with uow_factory() as uow:
        req = await uow.store.get("maintenance", request_id)
        require_party(caller, req.landlord_id, "update this maintenance request")
        if not maintenance_transition_allowed(req.status, status):
            raise InvalidState(f"cannot move request from {req.status.value} to {status.value}")

        req = await uow.store.update(
            "maintenance",
            request_id,
            {"status": status},
            expected_version=req.version,
        )
        await enqueue_event(
            uow.session,
            "maintenance.status_changed",
            {"request_id": request_id, "status": status.value},
        )
    return req


async def list_requests(uow_factory: UowFactory, caller: Caller) -> list[MaintenanceRequest]:
    async with uow_factory() as uow:
        return await uow.store.query(
            "maintenance",
            Where(party_filter_field(caller), "==", caller.user_id),
            order_by="created_at",
            descending=True,
        )


def images_of(req: MaintenanceRequest) -> list[str]:
    return json.loads(req.images_json or "[]")
