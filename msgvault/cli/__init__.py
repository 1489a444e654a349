"""
MsgVault command-line interface.

This package provides the CLI for creating, inspecting and restoring
snapshots from the command line.
"""

from msgvault.cli.main import cli

__all__ = ["cli"]
