# app/adapters/entity_store.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import NotFound, ValidationFailed, VersionConflict
from ..models import Application, Base, Lease, MaintenanceRequest, Payment, Property

COLLECTIONS: dict[str, type[Base]] = {
    "properties": Property,
    "applications": Application,
    "leases": Lease,
    "payments": Payment,
    "maintenance": MaintenanceRequest,
}

_OPS = {"==", "!=", "in", "<", "<=", ">", ">="}


@dataclass(frozen=True)
class Where:
    """One conjunctive predicate: Where("status", "in", [...])."""

    field: str
    op: str
    value: Any


def _model(collection: str) -> type[Base]:
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection!r}") from None


def _clause(model: type[Base], w: Where):
    col = getattr(model, w.field, None)
    if col is None:
        raise ValueError(f"{model.__tablename__} has no field {w.field!r}")
    if w.op not in _OPS:
        raise ValueError(f"Unsupported operator {w.op!r}")

    if w.op == "==":
        return col.is_(None) if w.value is None else col == w.value
    if w.op == "!=":
        return col.isnot(None) if w.value is None else col != w.value
    if w.op == "in":
        return col.in_(list(w.value))
    if w.op == "<":
        return col < w.value
    if w.op == "<=":
        return col <= w.value
    if w.op == ">":
        return col > w.value
    return col >= w.value


class SqlAlchemyEntityStore:
    """
    Document-style access to the domain tables.

    - get/query/insert/update/delete against named collections
    - update(..., expected_version=N) is a compare-and-set: one conditional
      UPDATE that bumps `version`; zero rows -> VersionConflict
    - never commits; the unit of work owns the transaction
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, collection: str, record_id: str, *, fresh: bool = False) -> Any:
        model = _model(collection)
        stmt = select(model).where(model.id == record_id)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        rec = (await self.session.execute(stmt)).scalars().first()
        if rec is None:
            raise NotFound(f"{collection} record {record_id!r} not found")
        return rec

    async def query(
        self,
        collection: str,
        *predicates: Where,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Any]:
        model = _model(collection)
        stmt = select(model)
        for w in predicates:
            stmt = stmt.where(_clause(model, w))
        if order_by:
            col = getattr(model, order_by)
            stmt = stmt.order_by(col.desc() if descending else col.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list((await self.session.execute(stmt)).scalars().all())

    async def count(self, collection: str, *predicates: Where) -> int:
        model = _model(collection)
        stmt = select(func.count()).select_from(model)
        for w in predicates:
            stmt = stmt.where(_clause(model, w))
        return int((await self.session.execute(stmt)).scalar_one())

    async def insert(self, collection: str, values: dict[str, Any]) -> str:
        model = _model(collection)
        rec = model(**values)
        self.session.add(rec)
        await self.session.flush()
        return rec.id

    async def insert_many(self, collection: str, rows: Iterable[dict[str, Any]]) -> list[str]:
        model = _model(collection)
        recs = [model(**values) for values in rows]
        self.session.add_all(recs)
        await self.session.flush()
        return [r.id for r in recs]

    async def update(
        self,
        collection: str,
        record_id: str,
        values: dict[str, Any],
        expected_version: int | None = None,
    ) -> Any:
        model = _model(collection)
        if "version" in values or "id" in values:
            raise ValidationFailed("id and version are managed by the store")

        payload = dict(values)
        payload.setdefault("updated_at", datetime.utcnow())
        payload["version"] = model.version + 1

        stmt = update(model).where(model.id == record_id)
        if expected_version is not None:
            stmt = stmt.where(model.version == expected_version)
        stmt = stmt.values(**payload).execution_options(synchronize_session=False)

        res = await self.session.execute(stmt)
        if res.rowcount == 0:
            await self._explain_miss(collection, model, record_id, expected_version)

        return await self.get(collection, record_id, fresh=True)

    async def delete(self, collection: str, record_id: str, expected_version: int | None = None) -> None:
        """Conditional DELETE; same NotFound / VersionConflict contract as update."""
        model = _model(collection)
        stmt = delete(model).where(model.id == record_id)
        if expected_version is not None:
            stmt = stmt.where(model.version == expected_version)
        res = await self.session.execute(stmt.execution_options(synchronize_session=False))
        if res.rowcount == 0:
            await self._explain_miss(collection, model, record_id, expected_version)

    async def _explain_miss(self, collection: str, model: type[Base], record_id: str, expected_version: int | None) -> None:
        exists = (await self.session.execute(select(model.id).where(model.id == record_id))).first()
        if exists is None:
            raise NotFound(f"{collection} record {record_id!r} not found")
        raise VersionConflict(f"{collection} record {record_id!r} changed since version {expected_version}")
