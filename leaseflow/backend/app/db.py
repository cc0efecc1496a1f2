# app/db.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import settings


def make_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    url = url or settings.LEASEFLOW_DB_URL
    if url.startswith("sqlite"):
        # concurrent lease writers wait on the file lock instead of failing fast
        kwargs.setdefault("connect_args", {"timeout": 15})
    return create_async_engine(url, echo=False, **kwargs)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine: AsyncEngine = make_engine()
AsyncSessionLocal = make_session_factory(engine)


@asynccontextmanager
async def async_session() -> AsyncIterator[AsyncSession]:
    """Session for scripts and the scheduler, outside any request."""
    async with AsyncSessionLocal() as session:
        yield session
