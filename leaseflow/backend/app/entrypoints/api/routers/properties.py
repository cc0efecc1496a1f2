# app/entrypoints/api/routers/properties.py
from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response

from ..deps import get_caller, get_uow_factory
from ....domain.types import Caller, PropertyFilters
from ....schemas import AvailabilityOut, PropertyIn, PropertyOut, PropertyPatch
from ....service_layer import availability, properties
from ....service_layer.unit_of_work import UowFactory

router = APIRouter(tags=["properties"])


@router.post("/properties", response_model=PropertyOut, status_code=201)
async def create_property(
    body: PropertyIn,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> PropertyOut:
    data = body.model_dump(exclude={"id"})
    prop = await properties.create_property(uow_factory, caller, data, property_id=body.id)
    return PropertyOut.from_record(prop, available=True)


@router.get("/properties", response_model=list[PropertyOut])
async def my_properties(
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> list[PropertyOut]:
    rows = await properties.list_landlord_properties(uow_factory, caller)
    return [PropertyOut.from_record(p, available) for p, available in rows]


@router.get("/properties/search", response_model=list[PropertyOut])
async def search_properties(
    q: str | None = Query(None, description="Free text over name / address / city"),
    city: str | None = Query(None),
    min_rent: Decimal | None = Query(None, ge=0),
    max_rent: Decimal | None = Query(None, ge=0),
    property_type: str | None = Query(None),
    min_bedrooms: int | None = Query(None, ge=0),
    include_unavailable: bool = Query(False),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> list[PropertyOut]:
    filters = PropertyFilters(
        text=q,
        city=city,
        min_rent=min_rent,
        max_rent=max_rent,
        property_type=property_type,
        min_bedrooms=min_bedrooms,
        include_unavailable=include_unavailable,
    )
    rows = await properties.search_properties(uow_factory, filters)
    return [PropertyOut.from_record(p, available) for p, available in rows]


@router.get("/properties/{property_id}", response_model=PropertyOut)
async def get_property(
    property_id: str,
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> PropertyOut:
    prop, available = await properties.get_property_view(uow_factory, property_id)
    return PropertyOut.from_record(prop, available)


@router.get("/properties/{property_id}/availability", response_model=AvailabilityOut)
async def property_availability(
    property_id: str,
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> AvailabilityOut:
    return AvailabilityOut(
        property_id=property_id,
        available=await availability.is_available(uow_factory, property_id),
    )


@router.patch("/properties/{property_id}", response_model=PropertyOut)
async def update_property(
    property_id: str,
    body: PropertyPatch,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> PropertyOut:
    await properties.update_property(uow_factory, caller, property_id, body.model_dump(exclude_unset=True))
    prop, available = await properties.get_property_view(uow_factory, property_id)
    return PropertyOut.from_record(prop, available)


@router.delete("/properties/{property_id}", status_code=204)
async def delete_property(
    property_id: str,
    caller: Caller = Depends(get_caller),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> Response:
    await properties.delete_property(uow_factory, caller, property_id)
    return Response(status_code=204)
