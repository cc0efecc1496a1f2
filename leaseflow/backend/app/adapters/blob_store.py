# app/adapters/blob_store.py
from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Protocol

import httpx

from ..config import settings
from .clients.http_resilience import resilient_request

log = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^a-zA-Z0-9.]")


def safe_filename(name: str) -> str:
    cleaned = _UNSAFE.sub("_", (name or "").strip())
    cleaned = cleaned.lstrip(".")
    return cleaned or "upload"


def _check_path(path: str) -> str:
    parts = [p for p in path.split("/") if p]
    if not parts or any(p in (".", "..") for p in parts):
        raise ValueError(f"Invalid blob path: {path!r}")
    return "/".join(parts)


class BlobStore(Protocol):
    async def store(self, path: str, data: bytes, content_type: str) -> str:
        """Persist bytes and return a resolvable locator."""
        ...


class LocalBlobStore:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _write(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    async def store(self, path: str, data: bytes, content_type: str) -> str:
        target = self.root / _check_path(path)
        await asyncio.to_thread(self._write, target, data)
        log.info("stored %d bytes (%s) at %s", len(data), content_type, target)
        return target.resolve().as_uri()


class HttpBlobStore:
    """
    PUTs objects to `<base_url>/<path>` (S3-style presigned bucket, GCS
    proxy, ...). The object URL is the locator.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.transport = transport

    async def store(self, path: str, data: bytes, content_type: str) -> str:
        url = f"{self.base_url}/{_check_path(path)}"
        headers = {"Content-Type": content_type}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        await resilient_request("PUT", url, headers=headers, content=data, transport=self.transport)
        return url


def build_blob_store() -> BlobStore:
    backend = (settings.BLOB_BACKEND or "local").strip().lower()
    if backend == "local":
        return LocalBlobStore(settings.BLOB_LOCAL_DIR)
    if backend == "http":
        if not settings.BLOB_HTTP_BASE_URL:
            raise ValueError("BLOB_BACKEND=http requires BLOB_HTTP_BASE_URL")
        return HttpBlobStore(settings.BLOB_HTTP_BASE_URL, token=settings.BLOB_HTTP_TOKEN)
    raise ValueError(f"Unknown BLOB_BACKEND={backend!r}. Use local or http.")
