# scripts/init_db.py
from __future__ import annotations

import argparse
import asyncio

from app.config import settings
from app.db import engine
from app.models import Base


async def main(drop: bool) -> None:
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print(f"Schema ready at {settings.LEASEFLOW_DB_URL} (dropped first: {drop})")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the leaseflow tables (idempotent).")
    parser.add_argument("--drop", action="store_true", help="Drop every table first (destroys data)")
    asyncio.run(main(parser.parse_args().drop))
