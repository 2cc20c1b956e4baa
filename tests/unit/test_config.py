from pathlib import Path

import pytest
import yaml

from blob_guardian.config import (
    ENV_API_KEY,
    ENV_BASE_URL,
    ENV_KEY_ALIAS,
    ENV_STORAGE_DIR,
    BackoffStrategy,
    RequestConfig,
    dump_default_config,
    load_config,
)
from blob_guardian.exceptions import ConfigurationError
from blob_guardian.paths import default_config_path, project_config_path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (ENV_API_KEY, ENV_BASE_URL, ENV_KEY_ALIAS, ENV_STORAGE_DIR):
        monkeypatch.delenv(name, raising=False)


def test_request_defaults() -> None:
    config = RequestConfig()
    assert config.timeout_ms == 30_000
    assert config.max_retries == 3
    assert config.base_retry_delay_ms == 1_000
    assert config.backoff is BackoffStrategy.LINEAR
    assert config.fatal_statuses == frozenset()
    assert [config.retry_delay_ms(i) for i in range(3)] == [1000.0, 2000.0, 3000.0]


def test_request_rejects_bad_values() -> None:
    with pytest.raises(ValueError):
        RequestConfig(timeout_ms=0)
    with pytest.raises(ValueError):
        RequestConfig(max_retries=-1)
    with pytest.raises(ValueError):
        RequestConfig(fatal_statuses={42})


def test_load_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "client": {
                    "base_url": "https://store.example/",
                    "bind_blob_key": True,
                    "request": {"max_retries": 5, "backoff": "exponential", "fatal_statuses": [400, 422]},
                },
                "logging": {"level": "debug"},
            }
        ),
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.client.base_url == "https://store.example"
    assert config.client.bind_blob_key is True
    assert config.client.request.max_retries == 5
    assert config.client.request.backoff is BackoffStrategy.EXPONENTIAL
    assert config.client.request.fatal_statuses == {400, 422}
    assert config.logging.normalized_level() == "DEBUG"


def test_environment_overrides_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("client:\n  base_url: https://file.example\n", encoding="utf-8")
    monkeypatch.setenv(ENV_BASE_URL, "https://env.example/")
    monkeypatch.setenv(ENV_API_KEY, "token-123")
    monkeypatch.setenv(ENV_STORAGE_DIR, str(tmp_path / "blobs"))
    monkeypatch.setenv(ENV_KEY_ALIAS, "alias/blobs")
    config = load_config(path)
    assert config.client.base_url == "https://env.example"
    assert config.client.api_key == "token-123"
    assert config.service.storage_dir == tmp_path / "blobs"
    assert config.service.key_alias == "alias/blobs"


def test_missing_explicit_path(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "absent.yaml")


def test_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("client: [unterminated\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_invalid_schema(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("client:\n  request:\n    timeout_ms: -5\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_dump_default_config_round_trips(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "config.yaml"
    dump_default_config(target)
    config = load_config(target)
    assert config.client.request.max_retries == 3
    assert config.service.port == 8080


def test_config_locations(tmp_path: Path) -> None:
    assert project_config_path(tmp_path) == tmp_path / ".blob_guardian" / "config.yaml"
    assert default_config_path().name == "config.yaml"
    assert default_config_path().parent.name in {"blob-guardian", "Blob Guardian"}
