"""Configuration loading utilities for Blob Guardian."""
from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Iterable, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as SchemaError

from .exceptions import ConfigurationError
from .paths import default_config_path, project_config_path

ENV_BASE_URL = "BLOB_GUARDIAN_BASE_URL"
ENV_API_KEY = "BLOB_GUARDIAN_API_KEY"
ENV_KEY = "BLOB_GUARDIAN_KEY"
ENV_STORAGE_DIR = "BLOB_GUARDIAN_STORAGE_DIR"
ENV_KEY_ALIAS = "BLOB_GUARDIAN_KEY_ALIAS"


class BackoffStrategy(str, Enum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


class RequestConfig(BaseModel):
    timeout_ms: int = Field(default=30_000, gt=0, description="Upper bound on each attempt")
    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    base_retry_delay_ms: int = Field(default=1_000, ge=0, description="Backoff base delay")
    backoff: BackoffStrategy = Field(
        default=BackoffStrategy.LINEAR,
        description="linear: base*(attempt+1); exponential: base*2**attempt",
    )
    max_retry_delay_ms: Optional[int] = Field(default=None, ge=0, description="Cap on a single delay")
    fatal_statuses: FrozenSet[int] = Field(
        default_factory=frozenset,
        description="HTTP statuses that end the call without retrying",
    )

    @field_validator("fatal_statuses")
    @classmethod
    def _validate_statuses(cls, value: FrozenSet[int]) -> FrozenSet[int]:
        for status in value:
            if not 100 <= status <= 599:
                raise ValueError(f"Not an HTTP status code: {status}")
        return value

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def retry_delay_ms(self, attempt: int) -> float:
        """Delay before the attempt that follows failed attempt ``attempt`` (0-based)."""
        if self.backoff is BackoffStrategy.EXPONENTIAL:
            delay = self.base_retry_delay_ms * (2**attempt)
        else:
            delay = self.base_retry_delay_ms * (attempt + 1)
        if self.max_retry_delay_ms is not None:
            delay = min(delay, self.max_retry_delay_ms)
        return float(delay)


class ClientConfig(BaseModel):
    base_url: str = Field(default="", description="Remote blob store base URL")
    api_key: Optional[str] = Field(default=None, description="Sent as a bearer token")
    bind_blob_key: bool = Field(
        default=False,
        description="Bind the blob key to the ciphertext as AES-GCM associated data",
    )
    request: RequestConfig = Field(default_factory=RequestConfig)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Logging verbosity level")

    def normalized_level(self) -> str:
        return self.level.upper()


class ServiceConfig(BaseModel):
    storage_dir: Optional[Path] = Field(default=None, description="Directory holding sealed blobs")
    key_alias: Optional[str] = Field(default=None, description="KMS key alias used for decryption")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8080, ge=1, le=65535)


class AppConfig(BaseModel):
    client: ClientConfig = Field(default_factory=ClientConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)


DEFAULT_CONFIG = AppConfig()


def config_search_paths(explicit: Optional[Path] = None) -> Iterable[Path]:
    if explicit:
        yield explicit
    yield project_config_path()
    yield default_config_path()


def load_config(path: Optional[Path] = None) -> AppConfig:
    if path is not None and not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}")
    for candidate in config_search_paths(path):
        if candidate.is_file():
            with candidate.open("r", encoding="utf-8") as handle:
                try:
                    data = yaml.safe_load(handle) or {}
                except yaml.YAMLError as exc:
                    raise ConfigurationError(f"Unreadable configuration in {candidate}: {exc}") from exc
            try:
                return apply_environment(AppConfig.model_validate(data))
            except SchemaError as exc:
                raise ConfigurationError(f"Invalid configuration in {candidate}: {exc}") from exc
    return apply_environment(DEFAULT_CONFIG.model_copy(deep=True))


def apply_environment(config: AppConfig) -> AppConfig:
    """Overlay ``BLOB_GUARDIAN_*`` environment variables onto ``config``."""
    base_url = os.getenv(ENV_BASE_URL)
    if base_url:
        config.client.base_url = base_url.rstrip("/")
    api_key = os.getenv(ENV_API_KEY)
    if api_key:
        config.client.api_key = api_key
    storage_dir = os.getenv(ENV_STORAGE_DIR)
    if storage_dir:
        config.service.storage_dir = Path(storage_dir).expanduser()
    key_alias = os.getenv(ENV_KEY_ALIAS)
    if key_alias:
        config.service.key_alias = key_alias
    return config


def dump_default_config(target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(DEFAULT_CONFIG.model_dump(mode="json"), handle, sort_keys=False)


__all__ = [
    "AppConfig",
    "BackoffStrategy",
    "ClientConfig",
    "DEFAULT_CONFIG",
    "LoggingConfig",
    "RequestConfig",
    "ServiceConfig",
    "apply_environment",
    "config_search_paths",
    "dump_default_config",
    "load_config",
]
