"""Command-line entry point for BrowserCustody."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from core.app_version import get_app_version
from core.config import load_app_config
from core.enums import AcquisitionMode
from core.exceptions import ConfigurationError, SealingError
from core.logging import configure_logging, get_logger
from core.orchestrator import run_acquisition
from core.run_context import resolve_run_context
from core.sealing import verify_integrity_record

LOGGER = get_logger("app.main")

EXIT_OK = 0
EXIT_SEALING_FAILED = 1
EXIT_VERIFY_FAILED = 1
EXIT_CONFIG_ERROR = 2

app = typer.Typer(
    name="browser-custody",
    help="Forensic acquisition of browser artifacts into a sealed evidence archive.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Show version information."""
    if value:
        typer.echo(f"BrowserCustody {get_app_version()}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Optional[bool] = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """BrowserCustody - browser artifact acquisition with chain of custody."""


@app.command()
def acquire(
    output: Path = typer.Option(..., "--output", "-o", help="Directory receiving archive, record, transcript and ledger."),
    live: bool = typer.Option(False, "--live", help="Acquire from the running system's users directory."),
    image: Optional[Path] = typer.Option(None, "--image", "-i", help="Root of a mounted disk image (contains Users/)."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML configuration file."),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Collect users in parallel."),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Directory for the rotating application log."),
) -> None:
    """Collect browser artifacts, seal them into an archive and write the integrity record."""
    if live == (image is not None):
        typer.echo("Choose exactly one of --live or --image PATH.", err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR)

    try:
        config = load_app_config(config_path)
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR)

    if workers:
        config.acquisition.max_workers = workers

    configure_logging(
        log_dir,
        level=getattr(logging, config.logging.level),
        max_bytes=config.logging.app_log_max_mb * 1024 * 1024,
        backup_count=config.logging.app_log_backup_count,
    )

    try:
        context = resolve_run_context(
            AcquisitionMode.OFFLINE if image is not None else AcquisitionMode.LIVE,
            output,
            image_root=image,
            live_users_root=config.acquisition.live_users_root,
            archive_prefix=config.acquisition.archive_prefix,
        )
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR)

    try:
        summary = run_acquisition(context, config)
    except SealingError as exc:
        typer.echo(f"Sealing failed: {exc}", err=True)
        typer.echo(f"Staging tree preserved for recovery: {context.staging_root}", err=True)
        raise typer.Exit(EXIT_SEALING_FAILED)

    for line in summary.report_lines():
        typer.echo(line)
    for failure in summary.failures:
        typer.echo(f"Not staged ({failure.status.value}): {failure.source} - {failure.error}", err=True)


@app.command()
def verify(
    record: Path = typer.Argument(..., exists=True, dir_okay=False, help="Integrity record (<archive>.sha256.txt)."),
    archive: Optional[Path] = typer.Option(None, "--archive", help="Archive to check (default: named in the record)."),
) -> None:
    """Re-hash an archive and compare it with its integrity record."""
    try:
        result = verify_integrity_record(record, archive)
    except ValueError as exc:
        typer.echo(f"Invalid integrity record: {exc}", err=True)
        raise typer.Exit(EXIT_VERIFY_FAILED)

    if result.error:
        typer.echo(result.error, err=True)
        raise typer.Exit(EXIT_VERIFY_FAILED)
    if not result.ok:
        typer.echo(f"MISMATCH {result.archive_path}", err=True)
        typer.echo(f"  expected {result.algorithm.label}: {result.expected}", err=True)
        typer.echo(f"  actual   {result.algorithm.label}: {result.actual}", err=True)
        raise typer.Exit(EXIT_VERIFY_FAILED)
    typer.echo(f"OK {result.archive_path} {result.algorithm.label}: {result.actual}")
    if result.ledger_ok is False:
        typer.echo("Audit ledger does not match the digest in the integrity record", err=True)
        raise typer.Exit(EXIT_VERIFY_FAILED)


def main() -> None:
    app()
