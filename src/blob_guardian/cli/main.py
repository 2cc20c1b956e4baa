"""Typer-based command line interface for Blob Guardian."""
from __future__ import annotations

import asyncio
import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

import click
import typer

from ..config import ENV_KEY, AppConfig, dump_default_config, load_config
from ..crypto.keys import Key, KeyManager
from ..exceptions import BlobGuardianError
from ..logging import configure_logging
from ..paths import default_config_path
from ..store.client import BlobStoreClient
from ..utils.encoding import TransportEncoder
from ..utils.validation import format_size

app = typer.Typer(help="Blob Guardian command line interface")

T = TypeVar("T")


@app.callback()
def main(ctx: typer.Context, config: Optional[Path] = typer.Option(None, "--config", metavar="PATH")) -> None:
    try:
        ctx.obj = load_config(config)
    except BlobGuardianError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    configure_logging(ctx.obj.logging.normalized_level())


def _config() -> AppConfig:
    return click.get_current_context().obj


def _load_key(key_file: Optional[Path]) -> Key:
    if key_file is not None:
        encoded = key_file.read_text(encoding="utf-8").strip()
    else:
        encoded = os.getenv(ENV_KEY, "").strip()
    if not encoded:
        typer.echo(f"No key supplied: pass --key-file or set {ENV_KEY}", err=True)
        raise typer.Exit(code=2)
    try:
        return KeyManager.import_key(TransportEncoder.decode(encoded))
    except BlobGuardianError as exc:
        typer.echo(f"Unusable key: {exc}", err=True)
        raise typer.Exit(code=2) from exc


def _run(factory: Callable[[], Awaitable[T]]) -> T:
    try:
        return asyncio.run(factory())
    except BlobGuardianError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _client(key_file: Optional[Path]) -> BlobStoreClient:
    config = _config()
    if not config.client.base_url:
        typer.echo("No base URL configured: set client.base_url or BLOB_GUARDIAN_BASE_URL", err=True)
        raise typer.Exit(code=2)
    return BlobStoreClient(key=_load_key(key_file), config=config.client)


def _record_json(record: Any) -> dict[str, Any]:
    data = asdict(record)
    data["nonce"] = TransportEncoder.encode(record.nonce) if record.nonce else None
    data["uploaded_at"] = record.uploaded_at.isoformat() if record.uploaded_at else None
    return data


KeyFileOption = typer.Option(None, "--key-file", exists=True, readable=True, help="File holding a base64 key")


@app.command()
def keygen(out: Optional[Path] = typer.Option(None, "--out", help="Write the key here instead of stdout")) -> None:
    """Generate a fresh AES-256 key, base64 encoded."""
    with KeyManager.generate_key() as key:
        encoded = TransportEncoder.encode(KeyManager.export_key(key))
    if out is None:
        typer.echo(encoded)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(encoded + "\n", encoding="utf-8")
    os.chmod(out, 0o600)
    typer.echo(f"Key written to {out}")


@app.command()
def upload(
    blob_key: str = typer.Argument(...),
    source: Path = typer.Argument(..., exists=True, readable=True, dir_okay=False),
    meta: List[str] = typer.Option([], "--meta", help="Extra metadata as name=value"),
    key_file: Optional[Path] = KeyFileOption,
) -> None:
    metadata = {}
    for item in meta:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"expected name=value, got {item!r}", param_hint="--meta")
        metadata[name] = value
    payload = source.read_bytes()

    async def _upload() -> Any:
        async with _client(key_file) as client:
            return await client.upload_blob(blob_key, payload, metadata)

    record = _run(_upload)
    typer.echo(f"Uploaded {record.blob_key} ({format_size(record.size)})")


@app.command()
def download(
    blob_key: str = typer.Argument(...),
    output: Path = typer.Option(..., "-o", "--output", help="Write decrypted bytes here"),
    key_file: Optional[Path] = KeyFileOption,
) -> None:
    async def _download() -> Any:
        async with _client(key_file) as client:
            return await client.download_blob(blob_key)

    result = _run(_download)
    output.write_bytes(result.plaintext)
    typer.echo(f"Downloaded {blob_key} to {output} ({format_size(len(result.plaintext))})")


@app.command("list")
def list_blobs(
    prefix: Optional[str] = typer.Option(None, "--prefix"),
    limit: Optional[int] = typer.Option(None, "--limit"),
    key_file: Optional[Path] = KeyFileOption,
) -> None:
    async def _list() -> Any:
        async with _client(key_file) as client:
            return await client.list_blobs(prefix, limit)

    records = _run(_list)
    typer.echo(json.dumps([_record_json(record) for record in records], indent=2))


@app.command()
def delete(blob_key: str = typer.Argument(...), key_file: Optional[Path] = KeyFileOption) -> None:
    async def _delete() -> bool:
        async with _client(key_file) as client:
            return await client.delete_blob(blob_key)

    _run(_delete)
    typer.echo(f"Deleted {blob_key}")


@app.command()
def status(key_file: Optional[Path] = KeyFileOption) -> None:
    async def _status() -> Any:
        async with _client(key_file) as client:
            return await client.get_status()

    typer.echo(json.dumps(_run(_status), indent=2))


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
    key_file: Optional[Path] = KeyFileOption,
) -> None:
    """Run the decryption service over a directory of sealed blobs."""
    import uvicorn

    from ..service import DirectoryObjectStorage, LocalKeyManagementService, create_app

    service = _config().service
    if service.storage_dir is None or not service.key_alias:
        typer.echo("service.storage_dir and service.key_alias must be configured", err=True)
        raise typer.Exit(code=2)
    kms = LocalKeyManagementService({service.key_alias: _load_key(key_file)})
    api = create_app(DirectoryObjectStorage(service.storage_dir), kms, service.key_alias)
    uvicorn.run(api, host=host or service.host, port=port or service.port)


@app.command("config-init")
def config_init(
    target: Path = typer.Option(default_config_path(), "--target", help="Where to write the config"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    if target.exists() and not force:
        typer.echo(f"{target} already exists; pass --force to overwrite", err=True)
        raise typer.Exit(code=1)
    dump_default_config(target)
    typer.echo(f"Default configuration written to {target}")


@app.command()
def version() -> None:
    from ..version import __version__

    typer.echo(__version__)


if __name__ == "__main__":  # pragma: no cover
    app()
