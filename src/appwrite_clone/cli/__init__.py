"""CLI for cloning Appwrite databases.

Usage:
    appwrite-clone info
    appwrite-clone clone
    appwrite-clone clone --mode missing-only --yes
    appwrite-clone clone --mode data-only --resume
    appwrite-clone export --include-system-fields
    appwrite-clone snapshot
    appwrite-clone snapshot --delete

Commands:
    clone     - Clone structure and/or documents from source to destination
    export    - Export source collections to CSV files
    info      - Show configured databases and whether they exist
    snapshot  - Inspect or delete a snapshot left by an interrupted run

Connection settings come from appwrite-clone.toml, the environment or .env
(APPWRITE_ENDPOINT, APPWRITE_PROJECT_ID, APPWRITE_API_KEY,
SOURCE_DATABASE_ID, DEST_DATABASE_ID).
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Confirm, Prompt
from rich.table import Table

from appwrite_clone.cli.progress import RichCloneProgress
from appwrite_clone.config.loader import ConfigurationError, load_clone_config
from appwrite_clone.config.models import DEFAULT_SNAPSHOT_PATH, CloneConfig, CloneMode
from appwrite_clone.export.csv_export import ExportResult, export_database_to_csv
from appwrite_clone.factory import (
    DatabaseInfo,
    DatabaseNotFoundError,
    create_adapter,
    get_database_info,
    resolve_databases,
)
from appwrite_clone.orchestrator import CloneResult, clone_database
from appwrite_clone.snapshot.store import delete_snapshot, read_snapshot, validate_snapshot

console = Console()

CANCELLED_MESSAGE = "Migration cancelled by user."


class CancelledByUser(Exception):
    """Raised when a confirmation prompt is declined or interrupted."""


# ============================================================================
# Helpers
# ============================================================================


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


def _load_config(args: argparse.Namespace, **overrides) -> CloneConfig | None:
    """Load configuration, printing the error and returning None on failure."""
    config_path = Path(args.config) if getattr(args, "config", None) else None
    try:
        return load_clone_config(
            config_path=config_path,
            env_prefix=getattr(args, "env_prefix", ""),
            overrides=overrides,
        )
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        return None


def _ask_confirm(message: str) -> bool:
    try:
        return Confirm.ask(message, default=False, console=console)
    except (KeyboardInterrupt, EOFError):
        raise CancelledByUser() from None


def _select_mode() -> CloneMode:
    """Ask for a clone mode."""
    console.print()
    console.print("[bold]Select clone mode:[/bold]")
    for mode in CloneMode:
        console.print(f"  [cyan]{mode.value:<15}[/cyan] {mode.description}")

    try:
        choice = Prompt.ask(
            "Mode",
            choices=[m.value for m in CloneMode],
            default=CloneMode.FULL.value,
            console=console,
        )
    except (KeyboardInterrupt, EOFError):
        raise CancelledByUser() from None
    return CloneMode(choice)


def _confirm_clone(source: DatabaseInfo, dest: DatabaseInfo, mode: CloneMode) -> None:
    """Triple confirmation before writing to the destination.

    Raises:
        CancelledByUser: If any answer is "no".
    """
    console.print()
    table = Table(title="Database Migration Confirmation", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("Source (FROM)", f"[yellow]{source.id}[/yellow]  {source.name or ''}")
    table.add_row("Destination (TO)", f"[yellow]{dest.id}[/yellow]  {dest.name or ''}")
    table.add_row("Mode", f"{mode.value} - {mode.description}")
    console.print(table)

    if mode.is_destructive:
        console.print()
        console.print("[bold red]WARNING:[/bold red]")
        console.print("[red]  - ALL existing collections in the destination will be DELETED[/red]")
        console.print("[red]  - This action CANNOT be undone[/red]")

    console.print()
    if not _ask_confirm(f'Is "{source.id}" the correct SOURCE database?'):
        raise CancelledByUser()
    if not _ask_confirm(f'Is "{dest.id}" the correct DESTINATION database to write to?'):
        raise CancelledByUser()

    final = "Are you ABSOLUTELY SURE you want to proceed?"
    if mode.is_destructive:
        final += " This will DELETE all data in the destination."
    if not _ask_confirm(f"[red]{final}[/red]"):
        raise CancelledByUser()


def _print_clone_summary(result: CloneResult) -> None:
    console.print()
    title = "Clone Complete" if not result.has_failures else "Clone Finished With Errors"
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("", style="dim")
    table.add_column("Succeeded", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Skipped", justify="right", style="yellow")

    if result.dropped is not None:
        table.add_row(
            "Dropped collections",
            str(len(result.dropped.dropped)),
            str(len(result.dropped.errors)),
            "-",
        )
    if result.mode.replicate_structure:
        table.add_row(
            "Collections",
            str(result.collections.success),
            str(result.collections.failed),
            "-",
        )
    if result.mode.replicate_data or result.mode.incremental:
        table.add_row(
            "Documents",
            str(result.documents.success),
            str(result.documents.failed),
            str(result.documents.skipped) if result.mode.incremental else "-",
        )
    console.print(table)

    if not result.has_failures:
        return

    errors = Table(title="Errors", show_header=True, header_style="bold")
    errors.add_column("Kind", style="dim")
    errors.add_column("Collection")
    errors.add_column("Key / Document")
    errors.add_column("Error", style="red")

    if result.dropped is not None:
        for err in result.dropped.errors:
            errors.add_row("drop", err.key, "", err.error)
    for err in result.collections.errors:
        errors.add_row("collection", err.key, "", err.error)
    for collection_id, attr_errors in result.collections.attribute_errors.items():
        for err in attr_errors:
            errors.add_row("attribute", collection_id, err.key, err.error)
    for collection_id, index_errors in result.collections.index_errors.items():
        for err in index_errors:
            errors.add_row("index", collection_id, err.key, err.error)
    for collection_id, doc_errors in result.documents.errors.items():
        for err in doc_errors:
            errors.add_row("document", collection_id, err.document_id, err.error)

    console.print()
    console.print(errors)


def _print_export_summary(result: ExportResult) -> None:
    console.print()
    console.print("[bold green]v CSV export complete[/bold green]")
    console.print(f"  Export directory: [cyan]{result.export_dir}[/cyan]")
    console.print(f"  Total records:    [green]{result.total_records}[/green]")

    table = Table(title="Files", show_header=True, header_style="bold")
    table.add_column("Collection", style="dim")
    table.add_column("File")
    table.add_column("Records", justify="right")
    for exported in result.collections:
        if exported.path is not None:
            table.add_row(exported.collection_name, exported.filename, str(exported.record_count))
        else:
            table.add_row(exported.collection_name, "[yellow]-[/yellow]", "0")
    console.print(table)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_resolve(
    config: CloneConfig, mode: CloneMode | None
) -> tuple[DatabaseInfo, DatabaseInfo]:
    async with create_adapter(config) as adapter:
        return await resolve_databases(adapter, config, mode)


async def _async_clone(config: CloneConfig, mode: CloneMode, resume: bool) -> CloneResult:
    async with create_adapter(config) as adapter:
        with RichCloneProgress(console) as progress:
            return await clone_database(
                adapter, adapter, config, mode=mode, resume=resume, progress=progress
            )


async def _async_export(
    config: CloneConfig, include_system_fields: bool, output_dir: Path
) -> ExportResult:
    async with create_adapter(config) as adapter:
        with RichCloneProgress(console) as progress:
            return await export_database_to_csv(
                adapter,
                config.source_database_id,
                output_dir,
                include_system_fields=include_system_fields,
                page_size=config.batch_size,
                progress=progress,
            )


async def _async_info(config: CloneConfig) -> tuple[DatabaseInfo, DatabaseInfo]:
    async with create_adapter(config) as adapter:
        source = await get_database_info(adapter, config.source_database_id)
        dest = await get_database_info(adapter, config.dest_database_id)
        return source, dest


# ============================================================================
# Sync command wrappers (prompts run outside the event loop)
# ============================================================================


def _run_export(config: CloneConfig, include_system_fields: bool, output_dir: Path) -> int:
    try:
        source, _ = asyncio.run(_async_resolve(config, CloneMode.EXPORT_CSV))
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1

    console.print(f"Exporting [bold]{source.label}[/bold] to [cyan]{output_dir}[/cyan]...")
    try:
        result = asyncio.run(_async_export(config, include_system_fields, output_dir))
    except Exception as e:
        console.print(f"\n[bold red]Error during export:[/bold red] {e}")
        return 1

    _print_export_summary(result)
    return 0


def cmd_clone(args: argparse.Namespace) -> int:
    """Clone the source database into the destination.

    Args:
        args: Parsed CLI arguments (mode, yes, resume, snapshot, batch_size).

    Returns:
        0 on success or cancellation, 1 on errors or any failed entity.
    """
    config = _load_config(
        args,
        mode=args.mode,
        snapshot_path=args.snapshot,
        batch_size=args.batch_size,
    )
    if config is None:
        return 1

    try:
        mode = config.mode or _select_mode()

        if mode is CloneMode.EXPORT_CSV:
            include_system_fields = False
            if not args.yes:
                include_system_fields = _ask_confirm(
                    "Include system fields ($id, $createdAt, etc.) in CSV? "
                    "(Must be 'no' if re-importing into Appwrite)"
                )
            return _run_export(config, include_system_fields, config.export_dir)

        if mode.is_destructive and config.source_database_id == config.dest_database_id:
            console.print(
                f"[bold red]Error:[/bold red] {mode.value} would delete the source "
                f"database '{config.source_database_id}'"
            )
            return 1

        console.print("Fetching database information...", style="dim")
        try:
            source, dest = asyncio.run(_async_resolve(config, mode))
        except DatabaseNotFoundError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            return 1

        if not args.yes:
            _confirm_clone(source, dest, mode)
    except CancelledByUser:
        console.print(f"\n{CANCELLED_MESSAGE}")
        return 0
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1

    console.print()
    console.print(f"  Source:      [bold]{source.label}[/bold]")
    console.print(f"  Destination: [bold cyan]{dest.label}[/bold cyan]")
    console.print(f"  Mode:        {mode.value}")
    console.print(f"  Batch size:  {config.batch_size}")
    console.print()

    try:
        result = asyncio.run(_async_clone(config, mode, args.resume))
    except Exception as e:
        console.print(f"\n[bold red]Error during clone operation:[/bold red] {e}")
        if mode.replicate_data or mode.incremental:
            console.print(
                f"[dim]Snapshot (if written) kept at[/dim] [cyan]{config.snapshot_path}[/cyan]"
                "[dim]; rerun with[/dim] [cyan]--resume[/cyan][dim].[/dim]"
            )
        return 1

    _print_clone_summary(result)
    return 1 if result.has_failures else 0


def cmd_export(args: argparse.Namespace) -> int:
    """Export every source collection to CSV.

    Returns:
        0 on success, 1 on failure.
    """
    config = _load_config(args, export_dir=args.output_dir)
    if config is None:
        return 1
    return _run_export(config, args.include_system_fields, config.export_dir)


def cmd_info(args: argparse.Namespace) -> int:
    """Show configured databases and whether they exist.

    Returns:
        0 on success, 1 on configuration or connection errors.
    """
    config = _load_config(args)
    if config is None:
        return 1

    try:
        source, dest = asyncio.run(_async_info(config))
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1

    table = Table(title="Databases", show_header=True, header_style="bold")
    table.add_column("", style="dim")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Status")
    for role, info in (("Source", source), ("Destination", dest)):
        status = "[green]found[/green]" if info.exists else "[red]NOT FOUND[/red]"
        table.add_row(role, info.id, info.name or "", status)

    console.print(f"Endpoint: [cyan]{config.endpoint}[/cyan]  Project: [cyan]{config.project_id}[/cyan]")
    console.print(table)
    return 0


def cmd_snapshot(args: argparse.Namespace) -> int:
    """Inspect or delete a leftover snapshot file.

    Reads only the local file -- no remote calls.

    Returns:
        0 when there is no snapshot or it is valid, 1 when it is invalid.
    """
    path = Path(args.path)

    if args.delete:
        if delete_snapshot(path):
            console.print(f"[bold green]v[/bold green] Deleted {path}")
        else:
            console.print(f"[dim]No snapshot at {path}[/dim]")
        return 0

    if not path.exists():
        console.print(f"[dim]No snapshot at {path}[/dim]")
        return 0

    report = validate_snapshot(path)
    for warning in report["warnings"]:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    if not report["valid"]:
        console.print(f"[bold red]x Invalid snapshot {path}[/bold red]")
        for error in report["errors"]:
            console.print(f"  - {error}")
        return 1

    snapshot = read_snapshot(path)
    table = Table(title=f"Snapshot {path}", show_header=True, header_style="bold")
    table.add_column("Collection", style="dim")
    table.add_column("Name")
    table.add_column("Documents", justify="right")
    for collection in snapshot.collections:
        table.add_row(
            collection.collection_id,
            collection.collection_name,
            str(len(collection.documents)),
        )

    console.print(f"  Source:      [bold]{snapshot.source_id}[/bold]")
    console.print(f"  Destination: [bold cyan]{snapshot.dest_id}[/bold cyan]")
    console.print(f"  Fetched at:  {snapshot.fetched_at.isoformat()}")
    console.print(table)
    console.print(
        "[dim]Resume with[/dim] [cyan]appwrite-clone clone --mode data-only --resume[/cyan]"
    )
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="appwrite-clone",
        description="Clone Appwrite database structure and documents",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to a TOML config file (default: appwrite-clone.toml if present)",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix STAGING_ reads STAGING_APPWRITE_ENDPOINT)"
        ),
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # clone command
    p_clone = subparsers.add_parser(
        "clone",
        help="Clone structure and/or documents from source to destination",
    )
    p_clone.add_argument(
        "--mode",
        choices=[m.value for m in CloneMode],
        default=None,
        help="Clone mode (asked interactively when omitted)",
    )
    p_clone.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Skip confirmation prompts",
    )
    p_clone.add_argument(
        "--resume",
        action="store_true",
        help="Reuse a snapshot left by an interrupted run instead of fetching again",
    )
    p_clone.add_argument(
        "--snapshot",
        default=None,
        help=f"Snapshot file path (default: {DEFAULT_SNAPSHOT_PATH})",
    )
    p_clone.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help="Documents per listing request (default: 100)",
    )
    p_clone.set_defaults(func=cmd_clone)

    # export command
    p_export = subparsers.add_parser(
        "export",
        help="Export source collections to CSV files",
    )
    p_export.add_argument(
        "--include-system-fields",
        action="store_true",
        help="Include $id, $createdAt, etc. (leave off to re-import into Appwrite)",
    )
    p_export.add_argument(
        "--output-dir",
        default=None,
        help="Export directory (default: csv-export)",
    )
    p_export.set_defaults(func=cmd_export)

    # info command
    p_info = subparsers.add_parser(
        "info",
        help="Show configured databases and whether they exist",
    )
    p_info.set_defaults(func=cmd_info)

    # snapshot command
    p_snapshot = subparsers.add_parser(
        "snapshot",
        help="Inspect or delete a snapshot left by an interrupted run",
    )
    p_snapshot.add_argument(
        "--path",
        default=str(DEFAULT_SNAPSHOT_PATH),
        help=f"Snapshot file path (default: {DEFAULT_SNAPSHOT_PATH})",
    )
    p_snapshot.add_argument(
        "--delete",
        action="store_true",
        help="Delete the snapshot file",
    )
    p_snapshot.set_defaults(func=cmd_snapshot)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
