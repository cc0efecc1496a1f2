# app/service_layer/jobruns.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import JobRun, JobRunStatus

log = logging.getLogger(__name__)

JobFn = Callable[..., Awaitable[dict[str, Any]]]


def _scalar_meta(kwargs: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in kwargs.items() if isinstance(v, (bool, int, float, str))}


def _close(run: JobRun, status: JobRunStatus, *, summary: dict[str, Any] | None = None, error: str | None = None) -> None:
    run.status = status
    run.finished_at = datetime.utcnow()
    run.summary_json = json.dumps(summary, default=str) if summary is not None else None
    run.error = error


async def run_tracked(session: AsyncSession, job_name: str, job: JobFn, **kwargs: Any) -> dict[str, Any]:
    """
    Await `job(session=session, **kwargs)` bracketed by a JobRun row.

    The row is committed whatever the outcome; a failing job is recorded
    as failed and its exception propagates.
    """
    run = JobRun(job_name=job_name, status=JobRunStatus.running, meta_json=json.dumps(_scalar_meta(kwargs)))
    session.add(run)
    await session.flush()

    try:
        summary = await job(session=session, **kwargs)
    except Exception as e:
        _close(run, JobRunStatus.failed, error=f"{type(e).__name__}: {e}")
        await session.commit()
        log.warning("job %s (run %s) failed: %s", job_name, run.id, e)
        raise

    _close(run, JobRunStatus.success, summary=summary)
    await session.commit()
    return summary
