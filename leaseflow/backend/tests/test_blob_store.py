# tests/test_blob_store.py
import httpx
import pytest

from app.adapters.blob_store import HttpBlobStore, LocalBlobStore, safe_filename
from app.adapters.clients.http_resilience import reset_circuit
from app.config import settings


@pytest.fixture(autouse=True)
def _fast_http(monkeypatch):
    monkeypatch.setattr(settings, "HTTP_BACKOFF_BASE_S", 0.0)
    monkeypatch.setattr(settings, "HTTP_RATE_LIMIT_RPS", 0.0)
    reset_circuit()
    yield
    reset_circuit()


def test_safe_filename():
    assert safe_filename("My Lease (final).pdf") == "My_Lease__final_.pdf"
    assert safe_filename("../../etc/passwd") == "_.._etc_passwd"
    assert safe_filename("") == "upload"


async def test_local_store_writes_and_refuses_traversal(tmp_path):
    store = LocalBlobStore(tmp_path)
    uri = await store.store("leases/L1/lease.pdf", b"%PDF", "application/pdf")
    assert uri.startswith("file://")
    assert (tmp_path / "leases" / "L1" / "lease.pdf").read_bytes() == b"%PDF"

    with pytest.raises(ValueError):
        await store.store("leases/../../escape.pdf", b"x", "application/pdf")


async def test_http_store_puts_with_token_and_retries():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200)

    store = HttpBlobStore("https://blobs.example.com/bucket/", token="tok", transport=httpx.MockTransport(handler))
    url = await store.store("maintenance/T1/photo.jpg", b"jpeg", "image/jpeg")

    assert url == "https://blobs.example.com/bucket/maintenance/T1/photo.jpg"
    assert len(calls) == 2
    assert calls[-1].method == "PUT"
    assert calls[-1].headers["Authorization"] == "Bearer tok"
    assert calls[-1].content == b"jpeg"


async def test_http_store_does_not_retry_client_errors():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(403)

    store = HttpBlobStore("https://blobs.example.com", transport=httpx.MockTransport(handler))
    with pytest.raises(httpx.HTTPStatusError):
        await store.store("leases/L1/lease.pdf", b"%PDF", "application/pdf")
    assert len(calls) == 1
