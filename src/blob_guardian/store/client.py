"""Encrypting client for the remote blob store."""
from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError as SchemaError

from ..config import ClientConfig
from ..crypto.aead import CipherEngine
from ..crypto.keys import Key, KeyManager
from ..exceptions import (
    AuthorizationError,
    HttpStatusError,
    NetworkError,
    NotFoundError,
    ProtocolError,
    RequestExhausted,
    ValidationError,
)
from ..models import BlobRecord, DownloadResult, EncryptedPayload, ExecutionResult, TextEncryptionResult
from ..transport.cancellation import CancellationToken
from ..transport.executor import ResilientRequestExecutor
from ..utils.encoding import TransportEncoder
from ..utils.validation import ensure_blob_key, ensure_limit, ensure_payload, ensure_prefix
from .wire import (
    BlobMetadata,
    DecryptRequest,
    DecryptResponse,
    DeleteResponse,
    DownloadEnvelope,
    ListResponse,
    UploadRequest,
    UploadResponse,
)

METADATA_HEADER = "X-Metadata"
AAD_BLOB_KEY = "blobKey"
_RESERVED_METADATA = frozenset({"encrypted", "nonce", "iv", "size", "uploadedAt", "aad"})

logger = structlog.get_logger(__name__)


class BlobStoreClient:
    """Upload, download, list and delete AES-256-GCM protected blobs.

    The client owns its :class:`Key`. Pass one in (for instance from
    :meth:`KeyManager.import_key`) or let the client generate a fresh one.
    :meth:`aclose` disposes the key and closes the HTTP client if the client
    created it.
    """

    def __init__(
        self,
        base_url: str | None = None,
        key: Key | None = None,
        *,
        config: ClientConfig | None = None,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        executor: ResilientRequestExecutor | None = None,
        cipher: CipherEngine | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.base_url = (base_url if base_url is not None else self.config.base_url).rstrip("/")
        if not self.base_url and http_client is None:
            logger.warning("client.no_base_url")
        self._key = key or KeyManager.generate_key()
        self._cipher = cipher or CipherEngine()
        self._encoder = TransportEncoder()

        headers = {"Content-Type": "application/json"}
        token = api_key or self.config.api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._owns_http = http_client is None
        # the executor's per-attempt bound is the only timeout on owned clients
        self._http = http_client or httpx.AsyncClient(timeout=None)
        self._headers = headers
        self.executor = executor or ResilientRequestExecutor(self._http, self.config.request)
        self._closed = False

    async def __aenter__(self) -> "BlobStoreClient":
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._key.dispose()
        if self._owns_http:
            await self._http.aclose()

    @property
    def key(self) -> Key:
        return self._key

    def export_key(self) -> bytes:
        return KeyManager.export_key(self._key)

    # -- Text helpers ------------------------------------------------------

    async def encrypt_text(self, text: str) -> TextEncryptionResult:
        return await asyncio.to_thread(self._cipher.encrypt_text, self._key, text)

    async def decrypt_text(self, ciphertext_b64: str, nonce_b64: str) -> str:
        return await asyncio.to_thread(self._cipher.decrypt_text, self._key, ciphertext_b64, nonce_b64)

    # -- Blob operations ---------------------------------------------------

    async def upload_blob(
        self,
        blob_key: str,
        plaintext: bytes,
        metadata: Optional[Mapping[str, Any]] = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> BlobRecord:
        blob_key = ensure_blob_key(blob_key)
        payload = ensure_payload(plaintext)
        user_metadata = dict(metadata or {})
        clashes = _RESERVED_METADATA.intersection(user_metadata)
        if clashes:
            raise ValidationError(f"Reserved metadata fields: {', '.join(sorted(clashes))}")

        aad = self._associated_data(blob_key) if self.config.bind_blob_key else None
        encrypted = await asyncio.to_thread(
            self._cipher.encrypt, self._key, payload, associated_data=aad
        )
        nonce_b64 = self._encoder.encode(encrypted.nonce)
        sent_at = _utcnow()
        wire_metadata: Dict[str, Any] = {
            **user_metadata,
            "uploadedAt": sent_at.isoformat(),
            "size": len(encrypted.ciphertext),
            "encrypted": True,
            "nonce": nonce_b64,
        }
        if aad is not None:
            wire_metadata["aad"] = AAD_BLOB_KEY
        body = UploadRequest(
            blob_key=blob_key,
            data=self._encoder.encode(encrypted.ciphertext),
            metadata=wire_metadata,
        )

        result = await self._send(
            "upload", "POST", "/upload", cancel=cancel, json=body.model_dump(mode="json", by_alias=True)
        )
        reply = self._parse(UploadResponse, result, "upload")
        if not reply.success:
            raise ProtocolError(f"upload rejected: {reply.error or 'unknown error'}")

        record = BlobRecord(
            blob_key=blob_key,
            metadata=user_metadata,
            size=reply.size if reply.size is not None else len(encrypted.ciphertext),
            uploaded_at=reply.uploaded_at or sent_at,
            encrypted=True,
            nonce=encrypted.nonce,
        )
        logger.info("blob.uploaded", blob_key=blob_key, size=record.size, attempts=result.attempt_count)
        return record

    async def download_blob(
        self, blob_key: str, *, cancel: CancellationToken | None = None
    ) -> DownloadResult:
        blob_key = ensure_blob_key(blob_key)
        data, metadata = await self._fetch(blob_key, cancel)
        parsed = self._metadata(metadata)
        if not parsed.encrypted:
            logger.info("blob.downloaded", blob_key=blob_key, encrypted=False)
            return DownloadResult(plaintext=data, metadata=metadata)

        nonce = self._nonce(parsed)
        aad = self._associated_data(blob_key) if parsed.aad == AAD_BLOB_KEY else None
        plaintext = await asyncio.to_thread(
            self._cipher.decrypt, self._key, data, nonce, associated_data=aad
        )
        logger.info("blob.downloaded", blob_key=blob_key, encrypted=True)
        return DownloadResult(plaintext=plaintext, metadata={**metadata, "encrypted": False})

    async def download_encrypted(
        self, blob_key: str, *, cancel: CancellationToken | None = None
    ) -> EncryptedPayload:
        blob_key = ensure_blob_key(blob_key)
        data, metadata = await self._fetch(blob_key, cancel)
        parsed = self._metadata(metadata)
        if not parsed.encrypted:
            raise ProtocolError(f"blob {blob_key!r} is not marked as encrypted")
        return EncryptedPayload(ciphertext=data, nonce=self._nonce(parsed))

    async def list_blobs(
        self,
        prefix: str | None = None,
        limit: int | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> List[BlobRecord]:
        params: Dict[str, Any] = {}
        limit = ensure_limit(limit)
        prefix = ensure_prefix(prefix)
        if limit is not None:
            params["limit"] = str(limit)
        if prefix is not None:
            params["prefix"] = prefix

        result = await self._send("list", "GET", "/list", cancel=cancel, params=params)
        reply = self._parse(ListResponse, result, "list")
        if not reply.success:
            raise ProtocolError(f"list rejected: {reply.error or 'unknown error'}")

        records = []
        for entry in reply.blobs:
            parsed = self._metadata(entry.metadata)
            size = parsed.size if parsed.size is not None else entry.size
            nonce = self._nonce(parsed) if parsed.encrypted and parsed.nonce else None
            records.append(
                BlobRecord(
                    blob_key=entry.blob_key,
                    metadata=entry.metadata,
                    size=size or 0,
                    uploaded_at=parsed.uploaded_at,
                    encrypted=parsed.encrypted,
                    nonce=nonce,
                )
            )
        return records

    async def delete_blob(
        self, blob_key: str, *, cancel: CancellationToken | None = None
    ) -> bool:
        blob_key = ensure_blob_key(blob_key)
        result = await self._send("delete", "DELETE", f"/blobs/{quote(blob_key, safe='')}", cancel=cancel)
        reply = self._parse(DeleteResponse, result, "delete")
        if not reply.success:
            raise ProtocolError(f"delete rejected: {reply.error or 'unknown error'}")
        logger.info("blob.deleted", blob_key=blob_key)
        return True

    async def get_status(self, *, cancel: CancellationToken | None = None) -> Dict[str, Any]:
        result = await self._send("status", "GET", "/status", cancel=cancel)
        body = self._json(result, "status")
        if not isinstance(body, dict):
            raise ProtocolError("status response is not a JSON object")
        return body

    async def decrypt_remote(
        self, blob_key: str, *, cancel: CancellationToken | None = None
    ) -> str:
        """Ask a server-mediated deployment to decrypt ``blob_key`` with its own key."""
        blob_key = ensure_blob_key(blob_key)
        body = DecryptRequest(blob_key=blob_key).model_dump(by_alias=True)
        result = await self._send("decrypt", "POST", "/decrypt", cancel=cancel, json=body)
        reply = self._parse(DecryptResponse, result, "decrypt")
        if reply.status != "success" or reply.plaintext is None:
            raise ProtocolError(f"decrypt rejected: {reply.error or 'unknown error'}")
        return reply.plaintext

    # -- Helpers -----------------------------------------------------------

    async def _send(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        cancel: CancellationToken | None,
        **kwargs: Any,
    ) -> ExecutionResult:
        try:
            return await self.executor.send(
                method,
                f"{self.base_url}{path}",
                operation=operation,
                cancel=cancel,
                headers=self._headers,
                **kwargs,
            )
        except NetworkError as exc:
            surfaced = _surface(exc, operation)
            if surfaced is exc:
                raise
            raise surfaced from exc

    async def _fetch(
        self, blob_key: str, cancel: CancellationToken | None
    ) -> tuple[bytes, Dict[str, Any]]:
        result = await self._send(
            "download", "GET", f"/download/{quote(blob_key, safe='')}", cancel=cancel
        )
        response = result.response
        content_type = response.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            envelope = self._parse(DownloadEnvelope, result, "download")
            if not envelope.success:
                raise ProtocolError(f"download rejected: {envelope.error or 'unknown error'}")
            try:
                data = self._encoder.decode(envelope.data)
            except ValidationError as exc:
                raise ProtocolError("download body is not valid base64") from exc
            return data, dict(envelope.metadata)

        raw_metadata = response.headers.get(METADATA_HEADER)
        metadata: Dict[str, Any] = {}
        if raw_metadata:
            try:
                metadata = json.loads(raw_metadata)
            except json.JSONDecodeError as exc:
                raise ProtocolError(f"{METADATA_HEADER} header is not valid JSON") from exc
            if not isinstance(metadata, dict):
                raise ProtocolError(f"{METADATA_HEADER} header is not a JSON object")
        return response.content, metadata

    def _metadata(self, metadata: Mapping[str, Any]) -> BlobMetadata:
        try:
            return BlobMetadata.model_validate(metadata)
        except SchemaError as exc:
            raise ProtocolError(f"unreadable blob metadata: {exc}") from exc

    def _nonce(self, parsed: BlobMetadata) -> bytes:
        if not parsed.nonce:
            raise ProtocolError("encrypted blob has no nonce in its metadata")
        try:
            return self._encoder.decode(parsed.nonce)
        except ValidationError as exc:
            raise ProtocolError("blob nonce is not valid base64") from exc

    @staticmethod
    def _associated_data(blob_key: str) -> bytes:
        return blob_key.encode("utf-8")

    @staticmethod
    def _json(result: ExecutionResult, operation: str) -> Any:
        try:
            return result.response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ProtocolError(f"{operation} response is not valid JSON") from exc

    def _parse(self, model: Any, result: ExecutionResult, operation: str) -> Any:
        body = self._json(result, operation)
        try:
            return model.model_validate(body)
        except SchemaError as exc:
            raise ProtocolError(f"unexpected {operation} response: {exc}") from exc


def _surface(exc: NetworkError, operation: str) -> Exception:
    """Map a network failure to the most specific error for ``operation``."""
    exc.operation = operation
    status_error: HttpStatusError | None = None
    if isinstance(exc, HttpStatusError):
        status_error = exc
    elif isinstance(exc, RequestExhausted) and isinstance(exc.last_error, HttpStatusError):
        status_error = exc.last_error
    if status_error is not None:
        if status_error.status_code == 404:
            return NotFoundError(f"{operation} failed: not found")
        if status_error.status_code in (401, 403):
            return AuthorizationError(f"{operation} failed: HTTP {status_error.status_code}")
    return exc


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["AAD_BLOB_KEY", "BlobStoreClient", "METADATA_HEADER"]
