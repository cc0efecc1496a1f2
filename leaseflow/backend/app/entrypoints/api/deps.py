# app/entrypoints/api/deps.py
from __future__ import annotations

from typing import AsyncIterator

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ...adapters.blob_store import BlobStore
from ...config import settings
from ...domain.types import Caller, Role
from ...service_layer.unit_of_work import UowFactory


def require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    if settings.API_KEY:
        if not x_api_key or x_api_key != settings.API_KEY:
            raise HTTPException(status_code=401, detail="Invalid API key")


def get_caller(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_user_role: str | None = Header(default=None, alias="X-User-Role"),
) -> Caller:
    """
    Identity is resolved upstream (auth gateway / BaaS token check) and
    forwarded as headers; here it only becomes an explicit Caller value.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id")
    try:
        role = Role((x_user_role or "").strip().lower())
    except ValueError:
        raise HTTPException(status_code=401, detail="X-User-Role must be landlord or tenant") from None
    return Caller(user_id=x_user_id.strip(), role=role)


def get_uow_factory(request: Request) -> UowFactory:
    return request.app.state.uow_factory


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.session_factory() as session:
        yield session
