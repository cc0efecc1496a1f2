# app/adapters/clients/http_resilience.py
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from ...config import settings

log = logging.getLogger(__name__)

RETRY_ON_STATUS = frozenset({429, 500, 502, 503, 504})


class CircuitOpen(httpx.HTTPError):
    pass


class CircuitBreaker:
    """Opens after N consecutive failures; half-opens once `reset_s` has passed."""

    def __init__(self) -> None:
        self.failures = 0
        self.opened_at: float | None = None

    def allow(self) -> bool:
        if self.opened_at is None:
            return True
        return time.monotonic() - self.opened_at >= float(settings.HTTP_CIRCUIT_RESET_S)

    def record_success(self) -> None:
        self.failures = 0
        self.opened_at = None

    def record_failure(self) -> None:
        self.failures += 1
        if self.opened_at is None and self.failures >= int(settings.HTTP_CIRCUIT_FAIL_THRESHOLD):
            self.opened_at = time.monotonic()
            log.warning("outbound circuit opened after %d failures in a row", self.failures)


class Throttle:
    """Spaces outbound calls at least 1/HTTP_RATE_LIMIT_RPS seconds apart, per process."""

    def __init__(self) -> None:
        self._lock: asyncio.Lock | None = None
        self._next_slot = 0.0

    async def wait(self) -> None:
        rps = float(settings.HTTP_RATE_LIMIT_RPS)
        if rps <= 0:
            return
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            delay = self._next_slot - time.monotonic()
            if delay > 0:
                await asyncio.sleep(delay)
            self._next_slot = time.monotonic() + 1.0 / rps


breaker = CircuitBreaker()
throttle = Throttle()


def reset_circuit() -> None:
    breaker.record_success()


def _backoff(attempt: int) -> float:
    return min(5.0, float(settings.HTTP_BACKOFF_BASE_S) * (2**attempt))


async def resilient_request(
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    content: bytes | None = None,
    json: Any | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.Response:
    """
    Send one request, retrying transport errors, timeouts, 429 and 5xx up to
    HTTP_MAX_RETRIES times with exponential backoff. Any other error status
    is raised straight away.
    """
    if not breaker.allow():
        raise CircuitOpen(f"circuit open, not calling {url}")

    await throttle.wait()

    retries = int(settings.HTTP_MAX_RETRIES)
    error: Exception | None = None
    async with httpx.AsyncClient(timeout=float(settings.HTTP_TIMEOUT_S), transport=transport) as client:
        for attempt in range(retries + 1):
            if attempt:
                log.info("%s %s retry %d/%d after: %s", method, url, attempt, retries, error)
                await asyncio.sleep(_backoff(attempt - 1))
            try:
                resp = await client.request(method, url, headers=headers, params=params, content=content, json=json)
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                error = e
                breaker.record_failure()
                continue

            if resp.status_code in RETRY_ON_STATUS:
                error = httpx.HTTPStatusError(
                    f"{resp.status_code} from {url}", request=resp.request, response=resp
                )
                breaker.record_failure()
                continue

            breaker.record_success()
            resp.raise_for_status()
            return resp

    assert error is not None
    raise error
