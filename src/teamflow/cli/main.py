"""Main CLI entry point for teamflow."""

import asyncio
import json

import click
from dotenv import load_dotenv

from teamflow.agents.registry import AgentRegistry
from teamflow.cli.factory import (
    build_agent,
    build_sandbox_manager,
    build_state_store,
    build_team_registry,
)
from teamflow.config.defaults import MAX_ITERATIONS_LIMIT
from teamflow.config.manager import ConfigManager
from teamflow.config.schema import GlobalConfig, get_config_file
from teamflow.errors import TeamflowError
from teamflow.integrations.github import GitHubCompletionDetector, GitHubConfig
from teamflow.logging_setup import configure_logging
from teamflow.orchestration.events import LoggingObserver
from teamflow.orchestration.workflow import TeamOrchestrator, WorkflowOptions
from teamflow.output.formatter import get_formatter
from teamflow.output.progress import ConsoleProgressObserver
from teamflow.preflight import validate_environment
from teamflow.workspace.git import GitClient


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.option("--no-color", is_flag=True, help="Disable colors")
@click.version_option(package_name="teamflow")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    no_color: bool,
) -> None:
    """Teamflow - Coder/Reviewer agent teams that finish with a pull request.

    A coder agent implements a specification in an isolated git worktree and
    a reviewer agent either opens a pull request or leaves feedback for the
    next iteration.

    \b
    Examples:
        teamflow run standard SPEC.md          # Run the standard team
        teamflow run tdd "#42" -n 5            # Work on an issue, 5 iterations
        teamflow team list                     # List available teams
        teamflow task list                     # Show persisted tasks
    """
    # Values already in the environment win over .env files
    load_dotenv(".env.local", override=False)
    load_dotenv(".env", override=False)

    try:
        settings = ConfigManager.get_config().global_
    except TeamflowError:
        # Commands that need the configuration report the error themselves
        settings = GlobalConfig()

    verbose = verbose or settings.verbose
    color = settings.color and not no_color

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["no_color"] = not color

    configure_logging(verbose=verbose)
    get_formatter(color=color, verbose=verbose)


@cli.command()
@click.argument("team_name", metavar="TEAM")
@click.argument("spec_or_issue")
@click.option(
    "-n", "--max-iterations",
    type=click.IntRange(1, MAX_ITERATIONS_LIMIT),
    help="Maximum coder/reviewer iterations",
)
@click.option("-b", "--branch", "branch_name", help="Branch name for the task worktree")
@click.option("--base", "base_branch", help="Branch to start from (default: current branch)")
@click.option("--cleanup/--no-cleanup", default=None, help="Remove worktree and state when done")
@click.option("--json", "output_json", is_flag=True, help="JSON output")
@click.option("--skip-preflight", is_flag=True, help="Skip environment checks")
def run(
    team_name: str,
    spec_or_issue: str,
    max_iterations: int | None,
    branch_name: str | None,
    base_branch: str | None,
    cleanup: bool | None,
    output_json: bool,
    skip_preflight: bool,
) -> None:
    """Run a team on a specification file or issue reference."""
    formatter = get_formatter()

    try:
        config = ConfigManager.get_config()
        git = GitClient()
        agent = build_agent(config)

        if not skip_preflight:
            report = validate_environment(git, config.github.token_env, agent)
            if not report.success:
                formatter.print_preflight(report)
                raise SystemExit(1)
            for warning in report.warnings:
                formatter.print_warning(warning)

        github_config = GitHubConfig.from_environment(
            git, config.github.token_env, config.github.base_url
        )
        detector = GitHubCompletionDetector(github_config)
    except TeamflowError as e:
        formatter.print_error(str(e))
        raise SystemExit(1)

    observers = [LoggingObserver()]
    if not output_json:
        observers.append(ConsoleProgressObserver(formatter))

    orchestrator = TeamOrchestrator(
        team_registry=build_team_registry(config),
        state_store=build_state_store(config),
        sandbox_manager=build_sandbox_manager(config, git),
        agent=agent,
        completion_detector=detector,
        observers=observers,
        mcp_config_resolver=config.get_mcp_config_for_team,
    )

    options = WorkflowOptions(
        team_type=team_name,
        spec_or_issue=spec_or_issue,
        max_iterations=max_iterations or config.defaults.max_iterations,
        branch_name=branch_name,
        base_branch=base_branch or config.defaults.base_branch,
        cleanup=config.defaults.cleanup if cleanup is None else cleanup,
    )
    result = asyncio.run(orchestrator.orchestrate(options))

    if output_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        formatter.print_result(result)

    if not result.success:
        raise SystemExit(1)


@cli.command()
def check() -> None:
    """Check that the environment is ready to run a team."""
    formatter = get_formatter()
    try:
        config = ConfigManager.get_config()
        agent = build_agent(config)
    except TeamflowError as e:
        formatter.print_error(str(e))
        raise SystemExit(1)

    report = validate_environment(GitClient(), config.github.token_env, agent)
    formatter.print_preflight(report)
    if not report.success:
        raise SystemExit(1)


@cli.group()
def agent() -> None:
    """Inspect agent backends."""
    pass


@agent.command("list")
def agent_list() -> None:
    """List registered agents."""
    formatter = get_formatter()

    agents = []
    for name in AgentRegistry.get_names():
        try:
            runner = AgentRegistry.create(name)
        except TypeError as e:
            formatter.print_warning(f"Agent '{name}' cannot be created without options: {e}")
            continue
        agents.append((name, runner.display_name, runner.is_available()))

    if not agents:
        formatter.print_warning("No agents registered")
        return

    formatter.print_agent_list(agents)


@cli.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Show current configuration."""
    formatter = get_formatter()
    try:
        config = ConfigManager.get_config()
    except TeamflowError as e:
        formatter.print_error(str(e))
        raise SystemExit(1)

    config_dict = config.model_dump(by_alias=True, mode="json")
    formatter.print_json_document(json.dumps(config_dict, indent=2))


@config.command("path")
def config_path() -> None:
    """Print the user configuration file path."""
    click.echo(str(get_config_file()))


# Register subcommand groups
from teamflow.cli.commands.init_cmd import init  # noqa: E402
from teamflow.cli.commands.sandbox_cmd import sandbox  # noqa: E402
from teamflow.cli.commands.task_cmd import task  # noqa: E402
from teamflow.cli.commands.team_cmd import team  # noqa: E402

cli.add_command(init)
cli.add_command(sandbox)
cli.add_command(task)
cli.add_command(team)


if __name__ == "__main__":
    cli()
