# app/integrations/webhook.py
from __future__ import annotations

import hmac
import hashlib
import json
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

SIGNATURE_HEADER = "X-Leaseflow-Signature"


@dataclass(frozen=True)
class SinkDeliveryResult:
    ok: bool
    error: str | None = None


class EventSink(Protocol):
    async def deliver(self, event_type: str, payload: dict[str, Any]) -> SinkDeliveryResult:
        ...


class WebhookSink:
    """POSTs {"type": ..., "data": ...} JSON, HMAC-SHA256 signed when a secret is set."""

    def __init__(
        self,
        url: str,
        secret: str | None = None,
        timeout_s: float = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.secret = secret
        self.timeout_s = timeout_s
        self.transport = transport

    def sign(self, body: bytes) -> str | None:
        if not self.secret:
            return None
        return hmac.new(self.secret.encode("utf-8"), body, hashlib.sha256).hexdigest()

    async def deliver(self, event_type: str, payload: dict[str, Any]) -> SinkDeliveryResult:
        body = json.dumps({"type": event_type, "data": payload}, default=str).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        sig = self.sign(body)
        if sig:
            headers[SIGNATURE_HEADER] = sig

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                r = await client.post(self.url, content=body, headers=headers)
        except httpx.HTTPError as e:
            return SinkDeliveryResult(ok=False, error=str(e))

        if 200 <= r.status_code < 300:
            return SinkDeliveryResult(ok=True)
        return SinkDeliveryResult(ok=False, error=f"HTTP {r.status_code}: {r.text[:500]}")
