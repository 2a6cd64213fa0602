"""Team-related CLI commands."""

import click

from teamflow.cli.factory import build_team_registry
from teamflow.config.manager import ConfigManager
from teamflow.errors import TeamflowError
from teamflow.output.formatter import get_formatter


@click.group()
def team() -> None:
    """Inspect coder/reviewer teams."""
    pass


@team.command("list")
def team_list() -> None:
    """List available teams."""
    formatter = get_formatter()
    try:
        registry = build_team_registry(ConfigManager.get_config())
    except TeamflowError as e:
        formatter.print_error(str(e))
        raise SystemExit(1)

    teams = registry.load_all()
    if not teams:
        formatter.print_warning("No teams found")
        return
    formatter.print_team_list([teams[name] for name in sorted(teams)])


@team.command("show")
@click.argument("name", required=False)
def team_show(name: str | None) -> None:
    """Show a team's prompt templates (default: the configured team)."""
    formatter = get_formatter()
    try:
        config = ConfigManager.get_config()
        found = build_team_registry(config).load(name or config.defaults.team)
    except TeamflowError as e:
        formatter.print_error(str(e))
        raise SystemExit(1)

    formatter.print_team(found)
