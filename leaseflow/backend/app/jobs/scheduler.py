# app/jobs/scheduler.py
from __future__ import annotations

import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import func, or_, select

from ..config import settings
from ..db import async_session
from ..models import Integration, OutboxEvent, OutboxStatus
from ..service_layer.jobruns import run_tracked
from ..service_layer.outbox import dispatch_pending_events

log = logging.getLogger(__name__)


async def _run_dispatch_quiet() -> None:
    """
    Nothing to do unless some sink is enabled and some event is due.
    """
    async with async_session() as session:
        enabled_sinks = (
            await session.execute(select(func.count()).select_from(Integration).where(Integration.enabled == True))  # noqa: E712
        ).scalar_one()
        if int(enabled_sinks) == 0:
            return

        due = (
            await session.execute(
                select(func.count())
                .select_from(OutboxEvent)
                .where(OutboxEvent.status == OutboxStatus.pending)
                .where(or_(OutboxEvent.next_attempt_at.is_(None), OutboxEvent.next_attempt_at <= datetime.utcnow()))
            )
        ).scalar_one()
        if int(due) == 0:
            return

    async with async_session() as session:
        res = await run_tracked(session, "dispatch_scheduled", dispatch_pending_events)
    log.info("scheduled dispatch: delivered=%s failed=%s", res.get("delivered"), res.get("failed"))


def build_scheduler() -> AsyncIOScheduler:
    sched = AsyncIOScheduler()
    sched.add_job(
        _run_dispatch_quiet,
        "interval",
        minutes=settings.SCHED_DISPATCH_INTERVAL_MINUTES,
        id="outbox_dispatch",
        max_instances=1,
        coalesce=True,
    )
    return sched
