"""
Backup-related CLI commands.

Commands for creating, listing, inspecting and deleting snapshot files.
"""

from __future__ import annotations

import json
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from msgvault.config import Config
from msgvault.core.backup import BackupEngine
from msgvault.core.progress import overall_percent
from msgvault.core.snapshot import SnapshotCatalog
from msgvault.exceptions import SnapshotError


def get_console(ctx: click.Context) -> Console:
    """Get the Rich console from context."""
    return ctx.obj.get("console", Console())


def get_config(ctx: click.Context) -> Config:
    """Get the loaded configuration from context."""
    return ctx.obj["config"]


@click.group()
def backup() -> None:
    """Create and manage snapshot files."""
    pass


@backup.command("create")
@click.option(
    "--device-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding the device store databases.",
)
@click.option(
    "--output", "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to write the snapshot to.",
)
@click.pass_context
def create_cmd(
    ctx: click.Context,
    device_dir: Optional[Path],
    output: Optional[Path],
) -> None:
    """Capture messages, call logs and contacts into a new snapshot."""
    console = get_console(ctx)
    config = get_config(ctx)

    if device_dir is not None:
        config = replace(config, device_dir=device_dir)
    if output is not None:
        config = replace(config, backup_dir=output)

    engine = BackupEngine.from_config(config)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        console=console,
    ) as progress:
        task = progress.add_task("Creating snapshot...", total=100)

        def progress_callback(phase: str, percent: int, detail: str) -> None:
            progress.update(
                task, completed=overall_percent(phase, percent), description=detail
            )

        with ThreadPoolExecutor(max_workers=1) as executor:
            result = executor.submit(engine.backup, progress_callback).result()

        progress.update(task, completed=100)

    console.print()
    if not result.success:
        console.print(f"[red]✗ Backup failed: {result.error_message}[/red]")
        sys.exit(1)

    console.print("[green]✓ Snapshot created successfully[/green]")
    console.print(f"  Messages: {result.message_count}")
    console.print(f"  Call logs: {result.call_log_count}")
    console.print(f"  Contacts: {result.contact_count}")
    console.print(f"  Path: {result.file_path}")


@backup.command("list")
@click.option(
    "--dir", "-d",
    "backup_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory to search for snapshots.",
)
@click.option(
    "--json", "as_json",
    is_flag=True,
    help="Output as JSON.",
)
@click.pass_context
def list_cmd(
    ctx: click.Context,
    backup_dir: Optional[Path],
    as_json: bool,
) -> None:
    """List available snapshots, newest first."""
    console = get_console(ctx)

    catalog = SnapshotCatalog(backup_dir or get_config(ctx).backup_dir)
    snapshots = catalog.list_snapshots()

    if not snapshots:
        if as_json:
            click.echo("[]")
        else:
            console.print("[yellow]No snapshots found.[/yellow]")
            console.print(f"Backup directory: {catalog.backup_dir}")
        return

    if as_json:
        output = [s.to_dict() for s in snapshots]
        click.echo(json.dumps(output, indent=2))
        return

    table = Table(title="Snapshots")
    table.add_column("File", style="cyan", no_wrap=True)
    table.add_column("Date", style="blue")
    table.add_column("Messages", style="green", justify="right")
    table.add_column("Calls", style="green", justify="right")
    table.add_column("Contacts", style="green", justify="right")
    table.add_column("Size", style="magenta")

    for snapshot in snapshots:
        table.add_row(
            snapshot.file_name,
            snapshot.created_at.strftime("%Y-%m-%d %H:%M"),
            str(snapshot.sms_count),
            str(snapshot.call_log_count),
            str(snapshot.contact_count),
            snapshot.size_human,
        )

    console.print(table)
    console.print(f"\n[dim]Found {len(snapshots)} snapshot(s) in {catalog.backup_dir}[/dim]")


@backup.command("info")
@click.argument("snapshot_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--json", "as_json",
    is_flag=True,
    help="Output as JSON.",
)
@click.pass_context
def info_cmd(
    ctx: click.Context,
    snapshot_path: Path,
    as_json: bool,
) -> None:
    """Show detailed information about a snapshot."""
    console = get_console(ctx)

    try:
        catalog = SnapshotCatalog(snapshot_path.parent)
        entry = catalog.get(snapshot_path)
        snapshot = catalog.load(snapshot_path)
    except SnapshotError as e:
        console.print(f"[red]Failed to read snapshot: {e}[/red]")
        sys.exit(1)

    if as_json:
        data = entry.to_dict()
        data["timestamp"] = snapshot.timestamp
        data["format_version"] = snapshot.format_version
        click.echo(json.dumps(data, indent=2))
        return

    def category(count: int, captured: bool) -> str:
        return str(count) if captured else "[dim]not captured[/dim]"

    content = [
        f"[bold]Device:[/bold] {entry.device_label or 'Unknown'}",
        f"[bold]Captured:[/bold] {snapshot.captured_at.strftime('%Y-%m-%d %H:%M:%S')}",
        f"[bold]Format version:[/bold] {snapshot.format_version}",
        f"[bold]Messages:[/bold] {category(entry.sms_count, snapshot.messages is not None)}",
        f"[bold]Call logs:[/bold] {category(entry.call_log_count, snapshot.call_logs is not None)}",
        f"[bold]Contacts:[/bold] {category(entry.contact_count, snapshot.contacts is not None)}",
        f"[bold]Size:[/bold] {entry.size_human}",
        f"[bold]Path:[/bold] {entry.path}",
    ]

    panel = Panel(
        "\n".join(content),
        title=f"Snapshot: {entry.file_name}",
        border_style="cyan",
    )
    console.print(panel)


@backup.command("validate")
@click.argument("snapshot_path", type=click.Path(path_type=Path))
@click.pass_context
def validate_cmd(ctx: click.Context, snapshot_path: Path) -> None:
    """Check that a file is a readable snapshot."""
    console = get_console(ctx)

    catalog = SnapshotCatalog(snapshot_path.parent)
    if catalog.validate(snapshot_path):
        console.print(f"[green]✓ {snapshot_path.name} is a valid snapshot[/green]")
    else:
        console.print(f"[red]✗ {snapshot_path.name} is not a valid snapshot[/red]")
        sys.exit(1)


@backup.command("delete")
@click.argument("snapshot_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--yes", "-y",
    is_flag=True,
    help="Skip confirmation prompt.",
)
@click.pass_context
def delete_cmd(
    ctx: click.Context,
    snapshot_path: Path,
    yes: bool,
) -> None:
    """Delete a snapshot."""
    console = get_console(ctx)
    catalog = SnapshotCatalog(snapshot_path.parent)

    if not yes:
        console.print("[yellow]About to delete snapshot:[/yellow]")
        console.print(f"  File: {snapshot_path.name}")
        try:
            entry = catalog.get(snapshot_path)
            console.print(f"  Device: {entry.device_label}")
            console.print(f"  Records: {entry.sms_count} messages, "
                          f"{entry.call_log_count} call logs, {entry.contact_count} contacts")
        except SnapshotError:
            console.print("  [dim](not a valid snapshot)[/dim]")
        if not click.confirm("Delete this snapshot?"):
            console.print("Cancelled.")
            return

    if catalog.delete(snapshot_path):
        console.print("[green]✓ Snapshot deleted[/green]")
    else:
        console.print("[red]✗ Failed to delete snapshot[/red]")
        sys.exit(1)
