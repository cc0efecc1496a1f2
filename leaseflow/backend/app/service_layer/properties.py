# app/service_layer/properties.py
from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from ..adapters.entity_store import Where
from ..domain.errors import InvalidState, ValidationFailed
from ..domain.types import ApplicationStatus, Caller, LeaseStatus, PropertyFilters, Role
from ..models import Property
from .availability import property_availability
from .guards import require_party, require_role
from .unit_of_work import UowFactory

log = logging.getLogger(__name__)

PROPERTY_TYPES = {"apartment", "house", "condo", "townhouse"}
PET_POLICIES = {"no-pets", "cats-only", "dogs-only", "both-allowed", "case-by-case"}

# never editable through create/update; owned by the lease lifecycle
_PROTECTED_FIELDS = {"id", "landlord_id", "tenant_id", "status", "version", "created_at", "updated_at"}

# a property with any of these cannot be deleted
_LIVE_LEASE_STATUSES = (LeaseStatus.draft, LeaseStatus.pending_signature, LeaseStatus.signed, LeaseStatus.active)
_LIVE_APPLICATION_STATUSES = (ApplicationStatus.pending, ApplicationStatus.approved)

_EDITABLE_FIELDS = {
    "name",
    "address",
    "city",
    "state",
    "zip_code",
    "monthly_rent",
    "security_deposit",
    "description",
    "property_type",
    "bedrooms",
    "bathrooms",
    "square_feet",
    "pet_policy",
    "amenities",
}


def _money(value: Any, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationFailed(f"{field} must be a number") from None


def _count(value: Any, field: str) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{field} must be a whole number") from None
    if n < 0:
        raise ValidationFailed(f"{field} must not be negative")
    return n


def _clean(data: dict[str, Any], *, partial: bool) -> dict[str, Any]:
    protected = _PROTECTED_FIELDS & set(data)
    if protected:
        raise ValidationFailed(f"fields cannot be set directly: {sorted(protected)}")
    unknown = set(data) - _EDITABLE_FIELDS
    if unknown:
        raise ValidationFailed(f"unknown property fields: {sorted(unknown)}")

    out = dict(data)
    for key in ("name", "address"):
        if key in out or not partial:
            if not (out.get(key) or "").strip():
                raise ValidationFailed(f"{key} is required")
            out[key] = out[key].strip()

    if "monthly_rent" in out or not partial:
        rent = out.get("monthly_rent")
        if rent is None or _money(rent, "monthly_rent") <= 0:
            raise ValidationFailed("monthly_rent must be greater than zero")
        out["monthly_rent"] = _money(rent, "monthly_rent")

    if out.get("security_deposit") is not None:
        out["security_deposit"] = _money(out["security_deposit"], "security_deposit")
        if out["security_deposit"] < 0:
            raise ValidationFailed("security_deposit must not be negative")

    if "property_type" in out and out["property_type"] not in PROPERTY_TYPES:
        raise ValidationFailed(f"property_type must be one of {sorted(PROPERTY_TYPES)}")
    if "pet_policy" in out and out["pet_policy"] not in PET_POLICIES:
        raise ValidationFailed(f"pet_policy must be one of {sorted(PET_POLICIES)}")

    for key in ("bedrooms", "square_feet"):
        if out.get(key) is not None:
            out[key] = _count(out[key], key)

    if "amenities" in out:
        out["amenities_json"] = json.dumps(sorted(set(out.pop("amenities") or [])))
    return out


async def create_property(
    uow_factory: UowFactory,
    caller: Caller,
    data: dict[str, Any],
    property_id: str | None = None,
) -> Property:
    require_role(caller, Role.landlord, "list a property")
    values = _clean(data, partial=False)

    async with uow_factory() as uow:
        record = {**values, "landlord_id": caller.user_id, "status": "available"}
        if property_id:
            record["id"] = property_id
        new_id = await uow.store.insert("properties", record)
        prop = await uow.store.get("properties", new_id)

    log.info("property %s listed by %s", prop.id, caller.user_id)
    return prop


async def update_property(
    uow_factory: UowFactory,
    caller: Caller,
    property_id: str,
    changes: dict[str, Any],
) -> Property:
    require_role(caller, Role.landlord, "edit a property")
    values = _clean(changes, partial=True)
    async with uow_factory() as uow:
        prop = await uow.store.get("properties", property_id)
        require_party(caller, prop.landlord_id, "edit this property")
        if not values:
            return prop
        return await uow.store.update("properties", property_id, values, expected_version=prop.version)


async def delete_property(uow_factory: UowFactory, caller: Caller, property_id: str) -> None:
    """
    Owner removes a listing. Refused while a lease is open or in force, or
    an application is still pending or approved; history rows (rejected
    leases, payments, maintenance) are kept.
    """
    require_role(caller, Role.landlord, "delete a property")
    async with uow_factory() as uow:
        prop = await uow.store.get("properties", property_id)
        require_party(caller, prop.landlord_id, "delete this property")

        leases = await uow.store.count(
            "leases", Where("property_id", "==", property_id), Where("status", "in", _LIVE_LEASE_STATUSES)
        )
        if leases:
            raise InvalidState(f"property {property_id} has {leases} open or signed lease(s)")
        apps = await uow.store.count(
            "applications",
            Where("property_id", "==", property_id),
            Where("status", "in", _LIVE_APPLICATION_STATUSES),
        )
        if apps:
            raise InvalidState(f"property {property_id} has {apps} pending or approved application(s)")

        await uow.store.delete("properties", property_id, expected_version=prop.version)

    log.info("property %s deleted by %s", property_id, caller.user_id)


async def get_property_view(uow_factory: UowFactory, property_id: str) -> tuple[Property, bool]:
    async with uow_factory() as uow:
        prop = await uow.store.get("properties", property_id)
        return prop, await property_availability(uow.store, property_id)


async def list_landlord_properties(uow_factory: UowFactory, caller: Caller) -> list[tuple[Property, bool]]:
    require_role(caller, Role.landlord, "list their properties")
    async with uow_factory() as uow:
        props = await uow.store.query(
            "properties", Where("landlord_id", "==", caller.user_id), order_by="created_at", descending=True
        )
        return [(p, await property_availability(uow.store, p.id)) for p in props]


def _matches_text(prop: Property, text: str) -> bool:
    needle = text.strip().lower()
    hay = " ".join(v for v in (prop.name, prop.address, prop.city, prop.state, prop.zip_code) if v).lower()
    return needle in hay


async def search_properties(uow_factory: UowFactory, filters: PropertyFilters) -> list[tuple[Property, bool]]:
    """
    Tenant-facing search. Structured filters go to the store; availability
    is derived per candidate, never taken from the stored status tag.
    """
    where: list[Where] = []
    if filters.city:
        where.append(Where("city", "==", filters.city))
    if filters.property_type:
        where.append(Where("property_type", "==", filters.property_type))
    if filters.min_rent is not None:
        where.append(Where("monthly_rent", ">=", filters.min_rent))
    if filters.max_rent is not None:
        where.append(Where("monthly_rent", "<=", filters.max_rent))
    if filters.min_bedrooms is not None:
        where.append(Where("bedrooms", ">=", filters.min_bedrooms))

    async with uow_factory() as uow:
        props = await uow.store.query("properties", *where, order_by="created_at", descending=True)
        out: list[tuple[Property, bool]] = []
        for p in props:
            if filters.text and not _matches_text(p, filters.text):
                continue
            available = await property_availability(uow.store, p.id)
            if available or filters.include_unavailable:
                out.append((p, available))
        return out


def amenities_of(prop: Property) -> list[str]:
    return json.loads(prop.amenities_json or "[]")
