"""
Command line entry point for MsgVault.

Usage:
    msgvault backup create
    msgvault backup list --json
    msgvault restore ~/.msgvault/backups/<snapshot>.json --take-role
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from msgvault import __version__
from msgvault.config import Config, get_config, reload_config
from msgvault.constants import APP_NAME, LOG_FILE_NAME
from msgvault.cli.commands import backup, restore
from msgvault.exceptions import MsgVaultError

console = Console()


def log_level(verbose: bool, debug: bool, configured: str = "WARNING") -> int:
    """Map the verbosity flags to a logging level, else use the configured one."""
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    level = logging.getLevelName(configured.upper())
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(level: int, log_file: Optional[Path] = None) -> None:
    """
    Route log records to the console and, optionally, a log file.

    The file always receives INFO and above, whatever the console level.
    """
    console_handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
    console_handler.setLevel(level)
    handlers: list[logging.Handler] = [console_handler]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(min(level, logging.INFO))
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=min(h.level for h in handlers),
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name=APP_NAME)
@click.option("-v", "--verbose", is_flag=True, help="Show progress details in the log.")
@click.option("--debug", is_flag=True, help="Show per-record debug logging.")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Read settings from this JSON file.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    debug: bool,
    config_path: Optional[Path],
) -> None:
    """
    MsgVault - Back up and restore messages, call history and contacts.

    A backup captures the device stores into one portable snapshot file;
    a restore replays a snapshot into the stores.

    Examples:

        $ msgvault backup create

        $ msgvault backup list

        $ msgvault restore ~/.msgvault/backups/MsgVault_phone_2024-01-01_10-00.json
    """
    config: Config = reload_config(config_path) if config_path else get_config()

    ctx.ensure_object(dict)
    ctx.obj.update(console=console, config=config, verbose=verbose, debug=debug)

    log_file = config.log_dir / LOG_FILE_NAME if config.log_to_file else None
    setup_logging(log_level(verbose, debug, config.log_level), log_file)


cli.add_command(backup.backup)
cli.add_command(restore.restore)


def main() -> None:
    """Run the CLI, turning uncaught failures into exit codes."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except MsgVaultError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if "--debug" in sys.argv:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
