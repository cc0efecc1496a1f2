# app/entrypoints/api/routers/health.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session, require_api_key
from ....config import settings

router = APIRouter(tags=["health"])

_SECRET_SETTINGS = {"API_KEY", "BLOB_HTTP_TOKEN"}


@router.get("/health")
async def health(session: AsyncSession = Depends(get_session)) -> dict[str, str]:
    await session.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV}


@router.get("/debug/settings", dependencies=[Depends(require_api_key)])
def debug_settings() -> dict[str, Any]:
    out = settings.model_dump()
    for key in _SECRET_SETTINGS:
        if out.get(key):
            out[key] = "***"
    return out


@router.get("/debug/routes", dependencies=[Depends(require_api_key)])
def debug_routes(request: Request) -> list[str]:
    return sorted(
        f"{','.join(sorted(getattr(r, 'methods', None) or []))} {r.path}".strip()
        for r in request.app.routes
        if getattr(r, "path", None)
    )
