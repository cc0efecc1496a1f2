# app/entrypoints/fastapi_app.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..adapters.blob_store import BlobStore, build_blob_store
from ..db import AsyncSessionLocal, engine as default_engine
from ..domain.errors import (
    InvalidState,
    LeaseflowError,
    NotFound,
    Unauthorized,
    ValidationFailed,
    VersionConflict,
)
from ..logging_config import configure_logging
from ..models import Base
from ..service_layer.unit_of_work import uow_factory_for
from .api.routers import (
    applications,
    dashboard,
    health,
    integrations,
    jobs,
    leases,
    maintenance,
    payments,
    properties,
)

log = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[LeaseflowError], int] = {
    NotFound: 404,
    Unauthorized: 403,
    InvalidState: 409,
    ValidationFailed: 422,
    VersionConflict: 409,
}


def status_for(exc: LeaseflowError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 400


def create_app(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    blob_store: BlobStore | None = None,
    engine: AsyncEngine | None = None,
) -> FastAPI:
    configure_logging()
    app = FastAPI(title="Leaseflow - rental rules engine")

    session_factory = session_factory or AsyncSessionLocal
    engine = engine or (default_engine if session_factory is AsyncSessionLocal else None)

    app.state.session_factory = session_factory
    app.state.uow_factory = uow_factory_for(session_factory)
    app.state.blob_store = blob_store or build_blob_store()

    @app.on_event("startup")
    async def _startup() -> None:
        # dev convenience; tests hand in an engine whose schema already exists
        if engine is not None:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    @app.exception_handler(LeaseflowError)
    async def _domain_error(request: Request, exc: LeaseflowError) -> JSONResponse:
        status = status_for(exc)
        if isinstance(exc, VersionConflict):
            log.warning("version conflict on %s %s: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(status_code=status, content=exc.as_dict())

    app.include_router(health.router)
    app.include_router(properties.router)
    app.include_router(applications.router)
    app.include_router(leases.router)
    app.include_router(payments.router)
    app.include_router(maintenance.router)
    app.include_router(dashboard.router)
    app.include_router(integrations.router)
    app.include_router(jobs.router)

    return app
