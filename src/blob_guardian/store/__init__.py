"""Remote blob store client."""
from __future__ import annotations

from .client import AAD_BLOB_KEY, METADATA_HEADER, BlobStoreClient

__all__ = ["AAD_BLOB_KEY", "BlobStoreClient", "METADATA_HEADER"]
