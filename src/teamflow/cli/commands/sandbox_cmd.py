"""Sandbox (git worktree) CLI commands."""

import click

from teamflow.cli.factory import build_sandbox_manager
from teamflow.config.manager import ConfigManager
from teamflow.errors import TeamflowError
from teamflow.output.formatter import get_formatter
from teamflow.workspace.git import GitClient


@click.group()
def sandbox() -> None:
    """Inspect task worktrees."""
    pass


@sandbox.command("list")
def sandbox_list() -> None:
    """List task worktrees registered with git."""
    formatter = get_formatter()
    try:
        manager = build_sandbox_manager(ConfigManager.get_config(), GitClient())
        sandboxes = manager.list()
    except TeamflowError as e:
        formatter.print_error(str(e))
        raise SystemExit(1)

    formatter.print_sandbox_list(sandboxes)
