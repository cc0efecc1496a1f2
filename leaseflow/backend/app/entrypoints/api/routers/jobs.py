# app/entrypoints/api/routers/jobs.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session, require_api_key
from ....schemas import DispatchResult
from ....service_layer.jobruns import run_tracked
from ....service_layer.outbox import dispatch_pending_events

router = APIRouter(tags=["jobs"])


@router.post("/jobs/dispatch", response_model=DispatchResult, dependencies=[Depends(require_api_key)])
async def dispatch_outbox(
    batch_size: int = Query(50, ge=1, le=500),
    session: AsyncSession = Depends(get_session),
) -> DispatchResult:
    result = await run_tracked(session, "dispatch_api", dispatch_pending_events, batch_size=batch_size)
    return DispatchResult(**result)
