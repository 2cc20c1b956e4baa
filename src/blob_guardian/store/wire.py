"""Pydantic models for the remote blob store's JSON bodies."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class UploadRequest(_WireModel):
    blob_key: str = Field(serialization_alias="blobKey")
    data: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class UploadResponse(_WireModel):
    success: bool = True
    blob_key: Optional[str] = Field(default=None, alias="blobKey")
    uploaded_at: Optional[datetime] = Field(default=None, alias="uploadedAt")
    size: Optional[int] = None
    error: Optional[str] = None


class DownloadEnvelope(_WireModel):
    success: bool = True
    data: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None


class BlobMetadata(_WireModel):
    """The fields of a blob's metadata map that the client interprets."""

    encrypted: bool = False
    nonce: Optional[str] = Field(default=None, validation_alias=AliasChoices("nonce", "iv"))
    size: Optional[int] = None
    uploaded_at: Optional[datetime] = Field(default=None, alias="uploadedAt")
    aad: Optional[str] = None


class ListEntry(_WireModel):
    blob_key: str = Field(validation_alias=AliasChoices("blobKey", "key"))
    size: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ListResponse(_WireModel):
    success: bool = True
    blobs: list[ListEntry] = Field(default_factory=list)
    error: Optional[str] = None


class DeleteResponse(_WireModel):
    success: bool = False
    error: Optional[str] = None


class DecryptRequest(_WireModel):
    blob_key: str = Field(serialization_alias="blobKey")


class DecryptResponse(_WireModel):
    plaintext: Optional[str] = None
    status: str = "error"
    error: Optional[str] = None


__all__ = [
    "BlobMetadata",
    "DecryptRequest",
    "DecryptResponse",
    "DeleteResponse",
    "DownloadEnvelope",
    "ListEntry",
    "ListResponse",
    "UploadRequest",
    "UploadResponse",
]
