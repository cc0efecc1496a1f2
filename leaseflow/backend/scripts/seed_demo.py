# scripts/seed_demo.py
from __future__ import annotations

import argparse
import asyncio
import json

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import AsyncSessionLocal, engine
from app.domain.types import Caller, Role
from app.models import Base, Integration, IntegrationType, Property
from app.service_layer.properties import create_property
from app.service_layer.unit_of_work import uow_factory_for

DEMO_LANDLORD = Caller(user_id="demo-landlord", role=Role.landlord)

DEMO_PROPERTIES = [
    {
        "id": "P101",
        "name": "Maple Court 1A",
        "address": "101 Maple Ct",
        "city": "Birmingham",
        "state": "MI",
        "zip_code": "48009",
        "monthly_rent": "1450.00",
        "security_deposit": "1450.00",
        "property_type": "apartment",
        "bedrooms": 2,
        "bathrooms": 1.0,
        "square_feet": 900,
        "pet_policy": "cats-only",
        "amenities": ["laundry", "parking"],
    },
    {
        "id": "P102",
        "name": "Oak Street House",
        "address": "22 Oak St",
        "city": "Royal Oak",
        "state": "MI",
        "zip_code": "48067",
        "monthly_rent": "2100.00",
        "security_deposit": "2500.00",
        "property_type": "house",
        "bedrooms": 3,
        "bathrooms": 2.0,
        "square_feet": 1500,
        "pet_policy": "case-by-case",
        "amenities": ["yard", "garage"],
    },
]


async def _ensure_schema() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def _upsert_integration(session: AsyncSession, name: str, url: str, enabled: bool) -> None:
    existing = (await session.execute(select(Integration).where(Integration.name == name))).scalars().first()
    cfg = {"url": url, "secret": None}

    if existing:
        existing.type = IntegrationType.webhook
        existing.enabled = enabled
        existing.config_json = json.dumps(cfg)
    else:
        session.add(
            Integration(
                name=name,
                type=IntegrationType.webhook,
                enabled=enabled,
                config_json=json.dumps(cfg),
            )
        )
    await session.flush()


async def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--enable", action="store_true", help="Enable the demo webhook (off by default)")
    parser.add_argument("--url", default="https://example.com", help="Demo webhook URL")
    args = parser.parse_args()

    await _ensure_schema()
    uow_factory = uow_factory_for(AsyncSessionLocal)

    created = 0
    for data in DEMO_PROPERTIES:
        async with AsyncSessionLocal() as session:
            exists = await session.get(Property, data["id"])
        if exists:
            continue
        fields = {k: v for k, v in data.items() if k != "id"}
        await create_property(uow_factory, DEMO_LANDLORD, fields, property_id=data["id"])
        created += 1

    async with AsyncSessionLocal() as session:
        await _upsert_integration(session, name="demo_webhook", url=args.url, enabled=args.enable)
        await session.commit()

    print(f"Seeded {created} demo properties for {DEMO_LANDLORD.user_id}; webhook enabled={args.enable}")


if __name__ == "__main__":
    asyncio.run(main())
