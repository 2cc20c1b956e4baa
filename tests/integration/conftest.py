import base64
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
import pytest

from blob_guardian.config import ClientConfig, RequestConfig


class FakeBlobStore:
    """In-memory stand-in for the remote blob store's HTTP API."""

    def __init__(self, *, binary_downloads: bool = False) -> None:
        self.blobs: Dict[str, Dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.binary_downloads = binary_downloads
        self.fail_next: list[int] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_next:
            return httpx.Response(self.fail_next.pop(0), text="transient failure")
        path = request.url.path
        if request.method == "POST" and path == "/upload":
            return self._upload(json.loads(request.content))
        if request.method == "GET" and path.startswith("/download/"):
            return self._download(path.removeprefix("/download/"))
        if request.method == "GET" and path == "/list":
            return self._list(request.url.params.get("prefix"), request.url.params.get("limit"))
        if request.method == "DELETE" and path.startswith("/blobs/"):
            return self._delete(path.removeprefix("/blobs/"))
        if request.method == "GET" and path == "/status":
            return httpx.Response(200, json={"status": "ok", "blobs": len(self.blobs)})
        return httpx.Response(404, json={"success": False, "error": "no route"})

    def _upload(self, body: Dict[str, Any]) -> httpx.Response:
        uploaded_at = datetime.now(timezone.utc).isoformat()
        self.blobs[body["blobKey"]] = {"data": body["data"], "metadata": body["metadata"]}
        size = body["metadata"].get("size", 0)
        return httpx.Response(
            200,
            json={"success": True, "blobKey": body["blobKey"], "uploadedAt": uploaded_at, "size": size},
        )

    def _download(self, key: str) -> httpx.Response:
        blob = self.blobs.get(key)
        if blob is None:
            return httpx.Response(404, json={"success": False, "error": "Blob not found"})
        if self.binary_downloads:
            return httpx.Response(
                200,
                content=base64.b64decode(blob["data"]),
                headers={"X-Metadata": json.dumps(blob["metadata"])},
            )
        return httpx.Response(200, json={"success": True, "data": blob["data"], "metadata": blob["metadata"]})

    def _list(self, prefix: Optional[str], limit: Optional[str]) -> httpx.Response:
        keys = sorted(k for k in self.blobs if not prefix or k.startswith(prefix))
        if limit:
            keys = keys[: int(limit)]
        entries = [{"blobKey": k, "metadata": self.blobs[k]["metadata"]} for k in keys]
        return httpx.Response(200, json={"success": True, "blobs": entries})

    def _delete(self, key: str) -> httpx.Response:
        if self.blobs.pop(key, None) is None:
            return httpx.Response(404, json={"success": False, "error": "Blob not found"})
        return httpx.Response(200, json={"success": True})


@pytest.fixture
def store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def fast_config() -> ClientConfig:
    return ClientConfig(
        base_url="https://store.test",
        request=RequestConfig(max_retries=2, base_retry_delay_ms=0, timeout_ms=2_000),
    )


@pytest.fixture
def http_client(store: FakeBlobStore) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(store.handler))
