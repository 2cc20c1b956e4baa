import json
import time
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from blob_guardian.exceptions import AuthorizationError, NotFoundError
from blob_guardian.service.providers import KeyManagementService, ObjectStorage
from blob_guardian.utils.validation import is_valid_blob_key
from blob_guardian.version import __version__

logger = structlog.get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization,X-Api-Key",
    "Access-Control-Allow-Methods": "POST,OPTIONS",
}


# ---- Metrics ----
REQS = Counter("bg_decrypt_requests_total", "Total decryption requests", ["status"])
LAT = Histogram("bg_decrypt_request_seconds", "Decryption request latency")


def _respond(status_code: int, body: Dict[str, Any]) -> JSONResponse:
    REQS.labels(str(status_code)).inc()
    return JSONResponse(status_code=status_code, content=body, headers=CORS_HEADERS)


def _error(status_code: int, message: str) -> JSONResponse:
    return _respond(status_code, {"error": message, "status": "error"})


def create_app(
    storage: Optional[ObjectStorage] = None,
    kms: Optional[KeyManagementService] = None,
    key_alias: Optional[str] = None,
) -> FastAPI:
    """Build the server-mediated decryption service.

    The caller never holds the key: ``POST /decrypt`` takes ``{blobKey}``,
    fetches the ciphertext from ``storage`` and asks ``kms`` to open it with
    ``key_alias``. Missing collaborators are reported per request as 500 so
    the app can still start and answer health checks.
    """

    app = FastAPI(title="Blob Guardian Decryption Service", version=__version__)

    @app.options("/decrypt")
    async def decrypt_preflight() -> Response:
        return Response(status_code=204, headers=CORS_HEADERS)

    @app.post("/decrypt")
    async def decrypt_api(request: Request) -> JSONResponse:
        with LAT.time():
            try:
                body = await request.json()
            except (json.JSONDecodeError, UnicodeDecodeError):
                return _error(400, "Request body must be JSON")
            blob_key = body.get("blobKey") if isinstance(body, dict) else None
            if not blob_key:
                return _error(400, "blobKey is required")
            if not is_valid_blob_key(blob_key):
                return _error(400, "blobKey is invalid")

            if storage is None or kms is None or not key_alias:
                logger.error("decrypt.misconfigured")
                return _error(500, "Missing required server configuration: storage, kms or key alias")

            log = logger.bind(blob_key=blob_key)
            try:
                ciphertext = await storage.fetch(blob_key)
                plaintext = await kms.decrypt(ciphertext, key_alias)
                text = plaintext.decode("utf-8")
            except NotFoundError:
                log.info("decrypt.not_found")
                return _error(404, "Blob not found")
            except AuthorizationError:
                log.warning("decrypt.denied")
                return _error(403, "Access denied - check KMS permissions")
            except Exception as exc:
                log.exception("decrypt.failed")
                return _error(500, str(exc) or "Internal server error")

            log.info("decrypt.ok")
            return _respond(200, {"plaintext": text, "status": "success"})

    @app.get("/healthz")
    def healthz() -> Dict[str, Any]:
        return {"status": "ok", "ts": int(time.time())}

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app
