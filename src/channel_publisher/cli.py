"""Typer-based CLI entrypoint for the channel publisher."""

from __future__ import annotations

from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape

from channel_publisher import __version__
from channel_publisher.config import BuildConfig, StorageConfig, load_build_config
from channel_publisher.exceptions import OperationsFailedError, PublisherException
from channel_publisher.keys import build_key_scheme
from channel_publisher.logging import init_logging
from channel_publisher.storage import OperationResult, StorageClient
from channel_publisher.tasks import PromoteOptions, PromoteTask, UploadTask


console = Console()
app = typer.Typer(
    help="Publish CLI tarballs to object storage and promote builds to release channels",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)


@app.callback()
def main(
    ctx: typer.Context,
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Optional log file path."),
) -> None:
    """Initialize logging before executing any subcommand."""

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)

    target = log_file.expanduser().resolve() if log_file else None
    init_logging(target, log_level)


@app.command("version")
def version() -> None:
    """Print the CLI version."""

    console.print(f"channel-publisher {__version__}")


@app.command("upload")
def upload(
    root: Path = typer.Option(Path("."), "--root", "-r", help="Path to the CLI project root."),
    sha: Optional[str] = typer.Option(
        None, "--sha", help="7-digit short git commit SHA (defaults to current checked out commit)."
    ),
    targets: Optional[str] = typer.Option(
        None, "--targets", "-t", help="Comma-separated targets to upload (e.g.: linux-arm,win32-x64)."
    ),
    xz: Optional[bool] = typer.Option(None, "--xz/--no-xz", help="Also upload xz."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Run the command without uploading to S3."),
    config: Optional[Path] = typer.Option(None, "--config", help="Publish configuration (defaults to <root>/publish.yaml)."),
    max_workers: Optional[int] = typer.Option(None, "--max-workers", min=1, help="Cap on concurrent uploads."),
) -> None:
    """Upload packed tarballs and build manifests to their commit directory."""

    try:
        build_config = load_build_config(root, sha=sha, targets=_split(targets), xz=xz, config_path=config)
        keys = build_key_scheme(build_config.storage, build_config.bin, build_config.version, build_config.git_sha)
        task = UploadTask(build_config, keys, _storage_client(build_config.storage), dry_run, max_workers)
        results = task.run()
    except PublisherException as exc:
        _fail(exc)
    _print_results(results)


@app.command("promote")
def promote(
    version: str = typer.Option(..., "--version", help="Semantic version of the CLI to promote."),
    sha: str = typer.Option(..., "--sha", help="7-digit short git commit SHA of the CLI to promote."),
    channel: str = typer.Option("stable", "--channel", help="Channel to promote to."),
    root: Path = typer.Option(Path("."), "--root", "-r", help="Path to the CLI project root."),
    targets: Optional[str] = typer.Option(
        None, "--targets", "-t", help="Comma-separated targets to promote (e.g.: linux-arm,win32-x64)."
    ),
    xz: Optional[bool] = typer.Option(None, "--xz/--no-xz", help="Also promote xz."),
    macos: bool = typer.Option(False, "--macos", "-m", help="Promote macOS pkg."),
    win: bool = typer.Option(False, "--win", "-w", help="Promote Windows exe."),
    deb: bool = typer.Option(False, "--deb", "-d", help="Promote debian artifacts."),
    indexes: bool = typer.Option(False, "--indexes", help="Append the promoted urls into the index files."),
    max_age: int = typer.Option(86400, "--max-age", "-a", min=0, help="Cache control max-age in seconds."),
    ignore_missing: bool = typer.Option(
        False, "--ignore-missing", help="Ignore missing tarballs/installers and continue promoting the rest."
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Run the command without uploading to S3 or copying versioned tarballs/installers to channel.",
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="Publish configuration (defaults to <root>/publish.yaml)."),
    max_workers: Optional[int] = typer.Option(None, "--max-workers", min=1, help="Cap on concurrent copies."),
) -> None:
    """Promote CLI builds to a release channel."""

    if ignore_missing:
        logger.warning(
            "--ignore-missing flag is being used - This command will continue to run even if a promotion "
            "fails because it doesn't exist"
        )
    console.print(f"Promoting v{version} ({sha}) to {channel} channel")

    try:
        build_config = load_build_config(root, sha=sha, targets=_split(targets), xz=xz, config_path=config)
        keys = build_key_scheme(build_config.storage, build_config.bin, version, sha)
        options = PromoteOptions(
            channel=channel,
            version=version,
            sha=sha,
            xz=build_config.xz,
            macos=macos,
            win=win,
            deb=deb,
            indexes=indexes,
            max_age=max_age,
            ignore_missing=ignore_missing,
            dry_run=dry_run,
            max_workers=max_workers,
        )
        results = PromoteTask(build_config, keys, _storage_client(build_config.storage), options).run()
    except PublisherException as exc:
        _fail(exc)
    _print_results(results)


@app.command("keys")
def keys_command(
    version: Optional[str] = typer.Option(None, "--version", help="Version (defaults to the configured version)."),
    sha: Optional[str] = typer.Option(None, "--sha", help="Short commit SHA (defaults to current checked out commit)."),
    channel: str = typer.Option("stable", "--channel", help="Channel to show keys for."),
    root: Path = typer.Option(Path("."), "--root", "-r", help="Path to the CLI project root."),
    targets: Optional[str] = typer.Option(None, "--targets", "-t", help="Comma-separated targets."),
    config: Optional[Path] = typer.Option(None, "--config", help="Publish configuration (defaults to <root>/publish.yaml)."),
) -> None:
    """Print the storage keys a release uses, without contacting storage."""

    try:
        build_config = load_build_config(root, sha=sha, targets=_split(targets), config_path=config)
        release_version = version or build_config.version
        keys = build_key_scheme(build_config.storage, build_config.bin, release_version, build_config.git_sha)
        rows = []
        for target in build_config.targets:
            for ext in _extensions(build_config):
                rows.append((target, keys.cloud_key(keys.versioned(ext, target)), keys.channel_tarball(ext, target, channel)))
            rows.append((target, keys.cloud_key(keys.manifest(target)), keys.channel_manifest(target, channel)))
    except PublisherException as exc:
        _fail(exc)

    console.print(f"{build_config.bin} v{release_version} ({build_config.git_sha}) -> {channel}", markup=False)
    for target, commit, channel_key in rows:
        console.print(f"{target}\t{commit}\t{channel_key}", markup=False, soft_wrap=True)


def _split(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [item for item in value.split(",") if item.strip()]


def _extensions(build_config: BuildConfig) -> List[str]:
    return [".tar.gz", ".tar.xz"] if build_config.xz else [".tar.gz"]


def _storage_client(storage: StorageConfig) -> StorageClient:
    return StorageClient(region=storage.region, endpoint_url=storage.endpoint_url)


def _print_results(results: List[OperationResult]) -> None:
    for result in results:
        prefix = "[dry-run] " if result.dry_run else ""
        console.print(f"{prefix}{result.status.value:<8} {result.key}", markup=False, soft_wrap=True)


def _fail(exc: PublisherException) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(str(exc))}", soft_wrap=True)
    if isinstance(exc, OperationsFailedError):
        for failure in exc.failures:
            console.print(f"  [red]{escape(failure.namespace)}[/red]: {escape(str(failure.error))}", soft_wrap=True)
    for suggestion in exc.suggestions:
        console.print(f"  [yellow]Try this:[/yellow] {escape(suggestion)}", soft_wrap=True)
    raise typer.Exit(code=1)
