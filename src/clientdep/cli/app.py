# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point for composite map maintenance."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Final, NoReturn

import typer
from rich import box
from rich.table import Table

from ..errors import MapStoreError
from ..logging import get_console
from ..store import CompositeKey, CompositeMapStore, CompositeRecord
from .shared import CLIError, CLILogger, open_store

KEY_PREVIEW_LENGTH: Final[int] = 12

app = typer.Typer(help="Composite asset cache tooling.", no_args_is_help=True)
map_app = typer.Typer(help="Inspect and prune the per-host composite map.", no_args_is_help=True)
app.add_typer(map_app, name="map")

DirOption = Annotated[
    Path | None,
    typer.Option("--dir", help="Composite directory holding the map file.", file_okay=False),
]
HostOption = Annotated[str | None, typer.Option("--host", help="Host identifier used in the map file name.")]
EmojiOption = Annotated[bool, typer.Option("--emoji/--no-emoji", help="Toggle emoji in output.")]
VersionOption = Annotated[int, typer.Option("--version", min=0, help="Composite version.")]
CompressionOption = Annotated[str, typer.Option("--compression", help="Compression scheme, e.g. deflate.")]
KeyArgument = Annotated[str, typer.Argument(help="Content key of the composite.")]


def build_records_table(store: CompositeMapStore, records: tuple[CompositeRecord, ...]) -> Table:
    """Return a rich table summarising ``records``."""

    table = Table(title=str(store.map_file), box=box.SIMPLE)
    table.add_column("Key", style="bold", no_wrap=True)
    table.add_column("Version", justify="right", no_wrap=True)
    table.add_column("Compression", no_wrap=True)
    table.add_column("Files", justify="right", no_wrap=True)
    table.add_column("Artifact", overflow="fold")
    for record in records:
        table.add_row(
            record.key.content_key[:KEY_PREVIEW_LENGTH],
            str(record.key.version),
            record.key.compression,
            str(len(record.constituents)),
            record.artifact,
        )
    return table


@map_app.command("list")
def list_records(
    directory: DirOption = None,
    host: HostOption = None,
    use_emoji: EmojiOption = True,
) -> None:
    """List every composite recorded in the map."""

    logger = CLILogger(use_emoji=use_emoji)
    try:
        store = open_store(directory, host)
        records = store.records()
    except (CLIError, MapStoreError) as exc:
        _exit_with(logger, exc)
    if not records:
        logger.ok(f"No composite records in {store.map_file}")
        return
    get_console(color=False, emoji=use_emoji).print(build_records_table(store, records))


@map_app.command("show")
def show_record(
    key: KeyArgument,
    version: VersionOption,
    compression: CompressionOption,
    directory: DirOption = None,
    host: HostOption = None,
    use_emoji: EmojiOption = True,
) -> None:
    """Show one composite record and its constituent files."""

    logger = CLILogger(use_emoji=use_emoji)
    composite_key = CompositeKey(content_key=key, version=version, compression=compression)
    try:
        record = open_store(directory, host).lookup(composite_key)
    except (CLIError, MapStoreError) as exc:
        _exit_with(logger, exc)
    if record is None:
        logger.fail(f"No composite recorded for {key} (version {version}, {compression})")
        raise typer.Exit(code=1)
    typer.echo(f"key: {record.key.content_key}")
    typer.echo(f"version: {record.key.version}")
    typer.echo(f"compression: {record.key.compression}")
    typer.echo(f"artifact: {record.artifact}")
    typer.echo("files:")
    for name in record.constituents:
        typer.echo(f"  {name}")


@map_app.command("remove")
def remove_record(
    key: KeyArgument,
    version: VersionOption,
    compression: CompressionOption,
    delete_artifact: Annotated[
        bool,
        typer.Option("--delete-artifact", help="Also delete the composite file from disk."),
    ] = False,
    directory: DirOption = None,
    host: HostOption = None,
    use_emoji: EmojiOption = True,
) -> None:
    """Remove a composite record so it is regenerated on the next request."""

    logger = CLILogger(use_emoji=use_emoji)
    composite_key = CompositeKey(content_key=key, version=version, compression=compression)
    try:
        store = open_store(directory, host)
        record = store.lookup(composite_key)
        removed = store.remove(composite_key)
    except (CLIError, MapStoreError, OSError) as exc:
        _exit_with(logger, exc)
    if not removed:
        logger.fail(f"No composite recorded for {key} (version {version}, {compression})")
        raise typer.Exit(code=1)
    logger.ok(f"Removed composite {key[:KEY_PREVIEW_LENGTH]} (version {version}, {compression})")
    if delete_artifact and record is not None:
        artifact = Path(record.artifact)
        if artifact.exists():
            artifact.unlink()
            logger.ok(f"Deleted {artifact}")
        else:
            logger.warn(f"Artifact {artifact} was already missing")


@map_app.command("reset")
def reset_map(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt.")] = False,
    directory: DirOption = None,
    host: HostOption = None,
    use_emoji: EmojiOption = True,
) -> None:
    """Discard every record and write a fresh empty map."""

    logger = CLILogger(use_emoji=use_emoji)
    try:
        store = open_store(directory, host)
    except CLIError as exc:
        _exit_with(logger, exc)
    if not yes:
        typer.confirm(f"Discard all records in {store.map_file}?", abort=True)
    try:
        store.reset()
    except OSError as exc:
        _exit_with(logger, exc)
    logger.ok(f"Reset {store.map_file}")


def _exit_with(logger: CLILogger, exc: Exception) -> NoReturn:
    """Report ``exc`` and terminate with its exit status.

    Raises:
        typer.Exit: Always.
    """

    logger.fail(str(exc))
    exit_code = exc.exit_code if isinstance(exc, CLIError) else 1
    raise typer.Exit(code=exit_code) from exc


__all__ = ["app", "map_app"]
