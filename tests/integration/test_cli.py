from pathlib import Path

import pytest

pytest.importorskip("typer")

from typer.testing import CliRunner  # noqa: E402

from blob_guardian.cli.main import app  # noqa: E402
from blob_guardian.config import ENV_BASE_URL, ENV_KEY  # noqa: E402
from blob_guardian.utils import b64d  # noqa: E402
from blob_guardian.version import __version__  # noqa: E402

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.delenv(ENV_KEY, raising=False)
    monkeypatch.delenv(ENV_BASE_URL, raising=False)
    path = tmp_path / "config.yaml"
    path.write_text("logging:\n  level: warning\n", encoding="utf-8")
    return path


def test_cli_reports_version(config_file: Path) -> None:
    result = runner.invoke(app, ["--config", str(config_file), "version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == __version__


def test_keygen_prints_base64_key(config_file: Path) -> None:
    result = runner.invoke(app, ["--config", str(config_file), "keygen"])
    assert result.exit_code == 0
    assert len(b64d(result.stdout.strip())) == 32


def test_keygen_writes_file(config_file: Path, tmp_path: Path) -> None:
    target = tmp_path / "keys" / "blob.key"
    result = runner.invoke(app, ["--config", str(config_file), "keygen", "--out", str(target)])
    assert result.exit_code == 0
    assert len(b64d(target.read_text(encoding="utf-8").strip())) == 32


def test_config_init_refuses_to_overwrite(config_file: Path, tmp_path: Path) -> None:
    target = tmp_path / "generated.yaml"
    first = runner.invoke(app, ["--config", str(config_file), "config-init", "--target", str(target)])
    assert first.exit_code == 0
    assert "max_retries" in target.read_text(encoding="utf-8")
    second = runner.invoke(app, ["--config", str(config_file), "config-init", "--target", str(target)])
    assert second.exit_code == 1


def test_missing_config_file_exits(tmp_path: Path) -> None:
    result = runner.invoke(app, ["--config", str(tmp_path / "absent.yaml"), "version"])
    assert result.exit_code == 2


def test_upload_requires_a_key(config_file: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ENV_BASE_URL, "https://store.test")
    source = tmp_path / "payload.bin"
    source.write_bytes(b"data")
    result = runner.invoke(app, ["--config", str(config_file), "upload", "payload-1", str(source)])
    assert result.exit_code == 2


def test_bad_key_material_is_rejected(config_file: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ENV_BASE_URL, "https://store.test")
    monkeypatch.setenv(ENV_KEY, "c2hvcnQ=")
    result = runner.invoke(app, ["--config", str(config_file), "status"])
    assert result.exit_code == 2
