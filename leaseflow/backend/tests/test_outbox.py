# tests/test_outbox.py
import hashlib
import hmac
import json

import httpx
import pytest
from sqlalchemy import select

from app.integrations.webhook import SIGNATURE_HEADER, WebhookSink
from app.models import Integration, IntegrationType, JobRun, JobRunStatus, OutboxEvent, OutboxStatus
from app.service_layer.jobruns import run_tracked
from app.service_layer.outbox import build_sinks, dispatch_pending_events, enqueue_event


async def _seed_events(session_factory, n=2):
    async with session_factory() as session:
        for i in range(n):
            await enqueue_event(session, "lease.signed", {"lease_id": f"L{i}"})
        await session.commit()


async def test_quiet_without_sinks(session_factory):
    await _seed_events(session_factory)
    async with session_factory() as session:
        res = await dispatch_pending_events(session)
    assert res["skipped_no_sinks"] == 1
    assert res["delivered"] == 0


async def test_delivers_signed_payloads(session_factory):
    await _seed_events(session_factory)
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    sink = WebhookSink("https://hooks.example.com/in", secret="s3cret", transport=httpx.MockTransport(handler))
    async with session_factory() as session:
        res = await dispatch_pending_events(session, rps=0, sinks=[sink])
        await session.commit()

    assert res["delivered"] == 2
    body = json.loads(seen[0].content)
    assert body["type"] == "lease.signed"
    assert body["data"]["lease_id"] == "L0"
    expected = hmac.new(b"s3cret", seen[0].content, hashlib.sha256).hexdigest()
    assert seen[0].headers[SIGNATURE_HEADER] == expected

    async with session_factory() as session:
        statuses = (await session.execute(select(OutboxEvent.status))).scalars().all()
    assert set(statuses) == {OutboxStatus.delivered}


async def test_failures_back_off_then_give_up(session_factory):
    await _seed_events(session_factory, n=1)
    sink = WebhookSink("https://hooks.example.com/in", transport=httpx.MockTransport(lambda r: httpx.Response(500)))

    async with session_factory() as session:
        res = await dispatch_pending_events(session, rps=0, max_attempts=2, sinks=[sink])
        await session.commit()
    assert res == {"delivered": 0, "failed": 0, "sinks": 1, "events": 1, "skipped_no_sinks": 0}

    async with session_factory() as session:
        ev = (await session.execute(select(OutboxEvent))).scalars().one()
        assert ev.status == OutboxStatus.pending
        assert ev.attempts == 1
        assert ev.next_attempt_at is not None
        assert "HTTP 500" in ev.last_error

        # make it due again
        ev.next_attempt_at = None
        await session.commit()

    async with session_factory() as session:
        res = await dispatch_pending_events(session, rps=0, max_attempts=2, sinks=[sink])
        await session.commit()
    assert res["failed"] == 1


async def test_build_sinks_uses_enabled_webhooks(session_factory):
    async with session_factory() as session:
        session.add_all(
            [
                Integration(
                    name="crm",
                    type=IntegrationType.webhook,
                    enabled=True,
                    config_json=json.dumps({"url": "https://crm.example.com/hook", "secret": "x"}),
                ),
                Integration(name="off", type=IntegrationType.webhook, enabled=False, config_json="{}"),
                Integration(name="no_url", type=IntegrationType.webhook, enabled=True, config_json="{}"),
            ]
        )
        await session.commit()

        sinks = await build_sinks(session)
    assert [s.url for s in sinks] == ["https://crm.example.com/hook"]


async def test_run_tracked_records_job(session_factory):
    async def job(session, answer):
        return {"answer": answer}

    async def broken(session):
        raise RuntimeError("boom")

    async with session_factory() as session:
        assert await run_tracked(session, "ok_job", job, answer=42) == {"answer": 42}
        with pytest.raises(RuntimeError):
            await run_tracked(session, "bad_job", broken)

    async with session_factory() as session:
        runs = {r.job_name: r for r in (await session.execute(select(JobRun))).scalars().all()}
    assert runs["ok_job"].status == JobRunStatus.success
    assert json.loads(runs["ok_job"].meta_json) == {"answer": 42}
    assert runs["bad_job"].status == JobRunStatus.failed
    assert "boom" in runs["bad_job"].error
