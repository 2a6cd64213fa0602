"""First-run setup command."""

import click

from teamflow.config.initialization import copy_builtin_teams, write_default_config
from teamflow.config.manager import ConfigManager
from teamflow.config.schema import get_config_file
from teamflow.errors import TeamflowError
from teamflow.output.formatter import get_formatter


@click.command()
@click.option("--force", is_flag=True, help="Overwrite existing config and team files")
@click.option("--teams-only", is_flag=True, help="Only copy the built-in teams")
@click.option("--config-only", is_flag=True, help="Only write the config file")
def init(force: bool, teams_only: bool, config_only: bool) -> None:
    """Create the user config and editable copies of the built-in teams."""
    formatter = get_formatter()
    if teams_only and config_only:
        formatter.print_error("--teams-only and --config-only are mutually exclusive")
        raise SystemExit(1)

    try:
        if not teams_only:
            config_file = get_config_file()
            if write_default_config(config_file, force=force):
                formatter.print_success(f"Created config: {config_file}")
            else:
                formatter.print_info(f"Config already exists: {config_file} (use --force to overwrite)")
            ConfigManager.reset()

        if not config_only:
            teams_dir = ConfigManager.get_config().get_teams_dir()
            written = copy_builtin_teams(teams_dir, force=force)
            for path in written:
                formatter.print_success(f"Created team: {path}")
            if not written:
                formatter.print_info(f"Teams already present in {teams_dir}")
    except TeamflowError as e:
        formatter.print_error(str(e))
        raise SystemExit(1)

    formatter.print_info("Edit the TOML files in the teams directory to customise prompts, then run:")
    formatter.print_info("  teamflow run standard SPEC.md")
