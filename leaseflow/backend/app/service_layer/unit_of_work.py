# app/service_layer/unit_of_work.py
from __future__ import annotations

from typing import Callable, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..adapters.entity_store import SqlAlchemyEntityStore
from ..db import AsyncSessionLocal


class UnitOfWork(Protocol):
    session: AsyncSession
    store: SqlAlchemyEntityStore

    async def __aenter__(self) -> "UnitOfWork": ...
    async def __aexit__(self, exc_type, exc, tb) -> None: ...
    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...


UowFactory = Callable[[], UnitOfWork]


class SqlAlchemyUnitOfWork:
    """One session, one transaction. Commits on clean exit, rolls back on error."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal) -> None:
        self.session_factory = session_factory
        self.session: AsyncSession | None = None
        self.store: SqlAlchemyEntityStore | None = None

    async def __aenter__(self) -> "SqlAlchemyUnitOfWork":
        self.session = self.session_factory()
        self.store = SqlAlchemyEntityStore(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc:
                await self.rollback()
            else:
                await self.commit()
        finally:
            if self.session:
                await self.session.close()

    async def commit(self) -> None:
        assert self.session is not None
        await self.session.commit()

    async def rollback(self) -> None:
        assert self.session is not None
        await self.session.rollback()


def uow_factory_for(session_factory: async_sessionmaker[AsyncSession]) -> UowFactory:
    return lambda: SqlAlchemyUnitOfWork(session_factory)
