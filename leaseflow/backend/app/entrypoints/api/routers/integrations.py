# app/entrypoints/api/routers/integrations.py
from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ....models import Integration, IntegrationType
from ....schemas import IntegrationCreate, IntegrationOut
from ..deps import get_session, require_api_key

router = APIRouter(tags=["integrations"], dependencies=[Depends(require_api_key)])


def _out(integ: Integration) -> IntegrationOut:
    return IntegrationOut(
        id=integ.id,
        name=integ.name,
        type=integ.type.value,
        enabled=integ.enabled,
        created_at=integ.created_at,
    )


@router.post("/integrations", response_model=IntegrationOut, status_code=201)
async def create_integration(
    body: IntegrationCreate,
    session: AsyncSession = Depends(get_session),
) -> IntegrationOut:
    clash = (await session.execute(select(Integration.id).where(Integration.name == body.name))).scalar()
    if clash is not None:
        raise HTTPException(status_code=409, detail=f"integration {body.name!r} already exists")

    integ = Integration(
        name=body.name,
        type=IntegrationType(body.type),
        enabled=body.enabled,
        config_json=json.dumps({"url": body.url, "secret": body.secret}),
    )
    session.add(integ)
    await session.commit()
    return _out(integ)


@router.patch("/integrations/{integration_id}", response_model=IntegrationOut)
async def update_integration(
    integration_id: int,
    enabled: bool | None = None,
    url: str | None = None,
    secret: str | None = None,
    session: AsyncSession = Depends(get_session),
) -> IntegrationOut:
    integ = await session.get(Integration, integration_id)
    if integ is None:
        raise HTTPException(status_code=404, detail="integration not found")

    if enabled is not None:
        integ.enabled = enabled
    if url is not None or secret is not None:
        cfg = json.loads(integ.config_json or "{}")
        if url is not None:
            cfg["url"] = url
        if secret is not None:
            cfg["secret"] = secret
        integ.config_json = json.dumps(cfg)

    await session.commit()
    return _out(integ)


@router.get("/integrations", response_model=list[IntegrationOut])
async def list_integrations(session: AsyncSession = Depends(get_session)) -> list[IntegrationOut]:
    rows = (await session.execute(select(Integration).order_by(Integration.id))).scalars().all()
    return [_out(i) for i in rows]
