"""
Restore CLI command.

Replays a snapshot into the device stores with a progress bar.
"""

from __future__ import annotations

import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from msgvault.config import Config
from msgvault.core.progress import overall_percent
from msgvault.core.restore import RestoreEngine
from msgvault.core.snapshot import SnapshotCatalog
from msgvault.core.stores import DeviceStores
from msgvault.exceptions import MsgVaultError, SnapshotError


def get_console(ctx: click.Context) -> Console:
    """Get the Rich console from context."""
    return ctx.obj.get("console", Console())


@click.command("restore")
@click.argument("snapshot_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--device-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding the device store databases.",
)
@click.option(
    "--force-role/--check-role",
    default=False,
    help="Assume the message write role is held instead of checking the store.",
)
@click.option(
    "--take-role",
    is_flag=True,
    help="Make MsgVault the default message handler before restoring.",
)
@click.option(
    "--yes", "-y",
    is_flag=True,
    help="Skip confirmation prompt.",
)
@click.pass_context
def restore(
    ctx: click.Context,
    snapshot_path: Path,
    device_dir: Optional[Path],
    force_role: bool,
    take_role: bool,
    yes: bool,
) -> None:
    """Restore a snapshot into the device stores.

    SNAPSHOT_PATH is the snapshot file to restore. Records are added to
    the stores; existing records are left in place.
    """
    console = get_console(ctx)
    config: Config = ctx.obj["config"]
    if device_dir is not None:
        config = replace(config, device_dir=device_dir)

    try:
        entry = SnapshotCatalog(snapshot_path.parent).get(snapshot_path)
    except SnapshotError as e:
        console.print(f"[red]✗ Cannot restore: {e}[/red]")
        sys.exit(1)

    if not yes:
        console.print(f"[yellow]About to restore {entry.file_name} into {config.device_dir}[/yellow]")
        console.print(
            f"  {entry.sms_count} messages, {entry.call_log_count} call logs, "
            f"{entry.contact_count} contacts"
        )
        console.print("[yellow]Restored records are added next to existing ones.[/yellow]")
        if not click.confirm("Continue?"):
            console.print("Cancelled.")
            return

    stores = DeviceStores.open(config.device_dir)
    if take_role:
        try:
            stores.messages.set_default_handler(config.backup.app_id)
        except MsgVaultError as e:
            console.print(f"[red]✗ Could not take the message write role: {e}[/red]")
            sys.exit(1)

    engine = RestoreEngine.from_config(
        config, stores=stores, force_role=True if force_role else None
    )
    cancel = threading.Event()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        console=console,
    ) as progress:
        task = progress.add_task("Restoring snapshot...", total=100)

        def progress_callback(phase: str, percent: int, detail: str) -> None:
            progress.update(
                task, completed=overall_percent(phase, percent), description=detail
            )

        with ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(engine.restore, entry, progress_callback, cancel)
            try:
                result = future.result()
            except KeyboardInterrupt:
                cancel.set()
                progress.update(task, description="Cancelling...")
                result = future.result()

    console.print()
    if result.success:
        mark = "[yellow]![/yellow]" if result.cancelled else "[green]✓[/green]"
        console.print(f"{mark} {result.message}")
    else:
        console.print(f"[red]✗ Restore failed: {result.message}[/red]")
        if not force_role and "default message handler" in result.message:
            console.print("[dim]Run again with --take-role to become the default handler.[/dim]")
        sys.exit(1)
