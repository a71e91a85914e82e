"""Command-line interface for photo-declutter."""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table

from photo_declutter import __version__
from photo_declutter.core.errors import DeletionError, ScanCancelledError
from photo_declutter.core.models import ScanReport
from photo_declutter.core.orchestrator import CancellationToken, ScanOrchestrator
from photo_declutter.core.staging import SafeAssetDeleter
from photo_declutter.core.store import LocalAssetStore
from photo_declutter.utils.config import Config
from photo_declutter.utils.logger import set_package_level, setup_logger

console = Console()
logger = setup_logger(__name__)

CATEGORY_NAMES = ["duplicates", "aged_screenshots", "low_resolution", "large_files"]


def _config(ctx: click.Context) -> Config:
    return Config(ctx.obj.get("config_file"))


@click.group()
@click.version_option(version=__version__, prog_name="photo-declutter")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: ~/.photo-declutter/config.json)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_file: Optional[Path]) -> None:
    """
    Photo Declutter - find duplicates, bursts and blurry shots in a photo library.

    Nothing is deleted without confirmation, and every deletion is staged
    first so it can be undone.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_file"] = config_file

    if verbose:
        set_package_level(logging.DEBUG)


@cli.command()
@click.option(
    "--path",
    "-p",
    "paths",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    required=True,
    help="Directory path(s) holding the photo library",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output file for the scan report (JSON)",
)
@click.option(
    "--threshold",
    "-t",
    type=int,
    help="Similarity threshold (Hamming distance, default: from config)",
)
@click.option(
    "--time-window",
    type=float,
    help="Maximum seconds between similar photos (default: from config)",
)
@click.option("--workers", "-w", type=int, help="Concurrent image decodes (default: from config)")
@click.option(
    "--recursive/--no-recursive",
    "-r/-R",
    default=True,
    help="Recursively scan subdirectories",
)
@click.option(
    "--show-progress/--no-progress",
    default=True,
    help="Show progress bars",
)
@click.pass_context
def scan(
    ctx: click.Context,
    paths: tuple,
    output: Optional[Path],
    threshold: Optional[int],
    time_window: Optional[float],
    workers: Optional[int],
    recursive: bool,
    show_progress: bool,
) -> None:
    """
    Scan a photo library and report what can be cleaned up.

    Example:
        photo-declutter scan --path ~/Pictures --output report.json
    """
    config = _config(ctx)

    if threshold is not None:
        config.set("similarity.distance_threshold", threshold)
    if time_window is not None:
        config.set("similarity.time_window_seconds", time_window)
    if workers is not None:
        config.set("analysis.max_workers", workers)

    console.print(f"\n[bold cyan]Photo Declutter v{__version__}[/bold cyan] - Library Scan\n")
    for path in paths:
        console.print(f"[yellow]Scanning:[/yellow] {path}")

    store = LocalAssetStore(paths, config, recursive=recursive, show_progress=show_progress)
    orchestrator = ScanOrchestrator.from_config(store, config, show_progress=show_progress)
    token = CancellationToken()

    try:
        report = orchestrator.run(token)
    except KeyboardInterrupt:
        token.cancel()
        console.print("[yellow]Scan cancelled.[/yellow]")
        sys.exit(130)
    except ScanCancelledError:
        console.print("[yellow]Scan cancelled.[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error during scan:[/red] {e}")
        sys.exit(1)

    _display_report(report)

    if output:
        _save_report_json(report, [Path(p).resolve() for p in paths], output)
        console.print(f"\n[green]✓ Report saved to:[/green] {output}")


@cli.command()
@click.option(
    "--input",
    "-i",
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="JSON report from the 'scan' command",
)
@click.option(
    "--category",
    "-c",
    "categories",
    multiple=True,
    type=click.Choice(CATEGORY_NAMES),
    help="Category to clean (repeatable; default: none)",
)
@click.option("--similar", is_flag=True, help="Include photos marked in similar groups")
@click.option("--blurry", is_flag=True, help="Include blurry photos")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def clean(
    ctx: click.Context,
    input_file: Path,
    categories: tuple,
    similar: bool,
    blurry: bool,
    yes: bool,
) -> None:
    """
    Stage photos from a saved scan report for deletion.

    Example:
        photo-declutter clean --input report.json --category duplicates --similar
    """
    try:
        with open(input_file, "r", encoding="utf-8") as f:
            report = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]✗ Error loading report:[/red] {e}")
        sys.exit(1)

    asset_ids = _select_ids(report, categories, similar, blurry)
    if not asset_ids:
        console.print("[yellow]Nothing selected for deletion.[/yellow]")
        return

    console.print(f"[bold]Selected {len(asset_ids)} photos for deletion[/bold]")
    if not yes and not click.confirm("Stage these photos for deletion?", default=False):
        console.print("[yellow]Cancelled. No files were staged.[/yellow]")
        return

    config = _config(ctx)
    store = LocalAssetStore([Path(root) for root in report.get("roots", [])], config)
    store.deleter.clean_old_operations(config.get("safety.max_undo_history_days", 30))
    orchestrator = ScanOrchestrator(store, scanners=[])

    try:
        operation_id = orchestrator.delete(asset_ids)
    except DeletionError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)

    console.print(f"\n[bold green]✓ {len(asset_ids)} files staged for deletion[/bold green]")
    console.print(f"[dim]Operation ID: {operation_id}[/dim]")
    console.print(f"\n[yellow]To undo this operation:[/yellow] photo-declutter undo {operation_id}")
    console.print(
        f"[yellow]To confirm deletion:[/yellow] photo-declutter confirm-delete {operation_id}"
    )


@cli.command(name="list-staging")
@click.pass_context
def list_staging(ctx: click.Context) -> None:
    """
    List all staged operations (files ready for deletion).

    Shows operations that have been staged but not yet confirmed for deletion.
    """
    deleter = SafeAssetDeleter(_config(ctx))

    staged_ops = [op for op in deleter.list_staged_operations() if op.get("status") == "staged"]

    if not staged_ops:
        console.print("[yellow]No staged operations found.[/yellow]")
        return

    console.print("\n[bold cyan]Staged Operations:[/bold cyan]\n")

    for op in staged_ops:
        table = Table(show_header=False, box=None)
        table.add_column("Key", style="cyan")
        table.add_column("Value")

        table.add_row("Operation ID", op["operation_id"])
        table.add_row("Timestamp", op["timestamp"])
        table.add_row("Reason", op["reason"])
        table.add_row("Files", str(op["files_staged"]))
        table.add_row("Status", op["status"])

        console.print(table)
        console.print()


@cli.command()
@click.argument("operation_id")
@click.pass_context
def undo(ctx: click.Context, operation_id: str) -> None:
    """
    Undo a staged operation by restoring files to original locations.

    OPERATION_ID: ID of the operation to undo (from list-staging)
    """
    deleter = SafeAssetDeleter(_config(ctx))

    console.print(f"\n[yellow]Undoing operation:[/yellow] {operation_id}\n")

    if deleter.undo_staging(operation_id):
        console.print(f"[green]✓ Operation {operation_id} undone successfully![/green]")
    else:
        console.print(f"[red]Failed to undo operation {operation_id}[/red]")
        sys.exit(1)


@cli.command(name="confirm-delete")
@click.argument("operation_id", type=str)
@click.option(
    "--recycle-bin/--permanent",
    default=None,
    help="Move to recycle bin or delete permanently (default: from config)",
)
@click.option(
    "--confirm",
    is_flag=True,
    help="Skip confirmation prompt (use with caution!)",
)
@click.pass_context
def confirm_delete(
    ctx: click.Context,
    operation_id: str,
    recycle_bin: Optional[bool],
    confirm: bool,
) -> None:
    """
    Confirm deletion of staged files.

    Example:
        photo-declutter confirm-delete 20240101_120000_ab12cd --recycle-bin
    """
    config = _config(ctx)
    deleter = SafeAssetDeleter(config)
    if recycle_bin is None:
        recycle_bin = config.get("safety.use_recycle_bin", True)

    operations = deleter.list_staged_operations()
    operation = next((op for op in operations if op["operation_id"] == operation_id), None)

    if not operation:
        console.print(f"[red]✗ Operation '{operation_id}' not found.[/red]")
        sys.exit(1)

    if operation["status"] != "staged":
        console.print(f"[red]✗ Operation '{operation_id}' is not in 'staged' status.[/red]")
        console.print(f"[dim]Current status: {operation['status']}[/dim]")
        sys.exit(1)

    file_count = operation["files_staged"]
    action = "moved to recycle bin" if recycle_bin else "permanently deleted"

    if not confirm:
        console.print("[bold yellow]⚠ Warning:[/bold yellow]")
        console.print(f"  About to {action}: {file_count} files")
        console.print(f"  Operation: {operation_id}")
        console.print(f"  Reason: {operation.get('reason', 'N/A')}")

        confirm_input = click.prompt("\nType 'DELETE' to confirm", type=str, default="")
        if confirm_input.upper() != "DELETE":
            console.print("[yellow]Deletion cancelled.[/yellow]")
            return

    if deleter.confirm_deletion(operation_id, use_recycle_bin=recycle_bin):
        console.print(f"[bold green]✓ {file_count} files {action}[/bold green]")
    else:
        console.print("[red]✗ Deletion failed.[/red]")
        sys.exit(1)


@cli.command()
@click.option("--folder", "-f", required=True, help="Folder name or pattern to protect")
@click.pass_context
def protect(ctx: click.Context, folder: str) -> None:
    """
    Add a folder to the protected folders list.

    Protected folders cannot have files deleted from them.
    """
    config = _config(ctx)
    config.add_protected_folder(folder)

    console.print(f"[green]✓ Protected folder added:[/green] {folder}")
    console.print("\n[cyan]Current protected folders:[/cyan]")
    for pf in config.get("protected_folders", []):
        console.print(f"  • {pf}")


@cli.command()
@click.option("--folder", "-f", required=True, help="Folder name or pattern to unprotect")
@click.pass_context
def unprotect(ctx: click.Context, folder: str) -> None:
    """Remove a folder from the protected folders list."""
    config = _config(ctx)
    config.remove_protected_folder(folder)

    console.print(f"[green]✓ Protected folder removed:[/green] {folder}")


def _select_ids(report: dict, categories: tuple, similar: bool, blurry: bool) -> List[str]:
    """Collect the ids to delete from a saved report, without repeats."""
    selected: List[str] = []

    def add(asset_id: str) -> None:
        if asset_id not in selected:
            selected.append(asset_id)

    for category in report.get("categories", []):
        if category["type"] in categories:
            for asset_id in category["asset_ids"]:
                add(asset_id)
    if similar:
        for group in report.get("similarity_groups", []):
            for asset_id in group["marked_for_removal"]:
                add(asset_id)
    if blurry:
        for record in report.get("blur_records", []):
            add(record["asset_id"])
    return selected


def _format_size(size: int) -> str:
    if size >= 1024 * 1024 * 1024:
        return f"{size / (1024 ** 3):.1f} GB"
    if size >= 1024 * 1024:
        return f"{size / (1024 ** 2):.1f} MB"
    return f"{size / 1024:.1f} KB"


def _display_report(report: ScanReport) -> None:
    """Display scan results in formatted tables."""
    if not report.categories and not report.similarity_groups and not report.blur_records:
        console.print("[green]✓ Nothing to clean up![/green]")
    else:
        console.print(
            f"[bold green]Reclaimable space:[/bold green] {_format_size(report.total_reclaimable)}\n"
        )

    if report.categories:
        table = Table(title="Smart Clean", show_header=True, header_style="bold cyan")
        table.add_column("Category")
        table.add_column("Photos", justify="right")
        table.add_column("Size", justify="right")
        for category in report.categories:
            table.add_row(
                category.type.label, str(len(category.assets)), _format_size(category.total_size)
            )
        console.print(table)
        console.print()

    if report.similarity_groups:
        table = Table(title="Similar Photos", show_header=True, header_style="bold cyan")
        table.add_column("Keep")
        table.add_column("Photos", justify="right")
        table.add_column("Marked", justify="right")
        for group in report.similarity_groups[:10]:
            table.add_row(
                Path(group.representative).name,
                str(len(group.asset_ids)),
                str(len(group.marked_for_removal)),
            )
        console.print(table)
        if len(report.similarity_groups) > 10:
            console.print(f"[dim]... and {len(report.similarity_groups) - 10} more groups[/dim]")
        console.print()

    if report.blur_records:
        table = Table(title="Blurry Photos", show_header=True, header_style="bold cyan")
        table.add_column("Photo")
        table.add_column("Severity")
        table.add_column("Score", justify="right")
        for record in report.blur_records[:10]:
            table.add_row(Path(record.asset_id).name, record.severity.value, f"{record.blur_score:.2f}")
        console.print(table)
        if len(report.blur_records) > 10:
            console.print(f"[dim]... and {len(report.blur_records) - 10} more photos[/dim]")
        console.print()

    if report.failed_asset_ids:
        console.print(f"[yellow]Could not analyse {len(report.failed_asset_ids)} photos[/yellow]")


def _save_report_json(report: ScanReport, roots: List[Path], output_path: Path) -> None:
    """Save the scan report to a JSON file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)

    data = report.to_dict()
    data["roots"] = [str(root) for root in roots]
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
