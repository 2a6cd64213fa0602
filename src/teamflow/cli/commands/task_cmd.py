"""Task state CLI commands."""

import click

from teamflow.cli.factory import build_sandbox_manager, build_state_store
from teamflow.config.manager import ConfigManager
from teamflow.errors import StateManagementError, TaskNotFoundError, TeamflowError
from teamflow.output.formatter import get_formatter
from teamflow.workspace.git import GitClient


@click.group()
def task() -> None:
    """Inspect and clean up persisted tasks."""
    pass


@task.command("list")
def task_list() -> None:
    """List persisted tasks, oldest first."""
    formatter = get_formatter()
    try:
        store = build_state_store(ConfigManager.get_config())
    except TeamflowError as e:
        formatter.print_error(str(e))
        raise SystemExit(1)

    formatter.print_task_list(store.list_tasks())


@task.command("show")
@click.argument("task_id")
@click.option("--json", "output_json", is_flag=True, help="Print the raw state record")
def task_show(task_id: str, output_json: bool) -> None:
    """Show one task's state."""
    formatter = get_formatter()
    try:
        state = build_state_store(ConfigManager.get_config()).get(task_id)
    except TeamflowError as e:
        formatter.print_error(str(e))
        raise SystemExit(1)

    if output_json:
        click.echo(state.to_json())
    else:
        formatter.print_task(state)


@task.command("clean")
@click.argument("task_id")
def task_clean(task_id: str) -> None:
    """Remove a task's worktree, branch and state."""
    formatter = get_formatter()
    try:
        config = ConfigManager.get_config()
        store = build_state_store(config)
    except TeamflowError as e:
        formatter.print_error(str(e))
        raise SystemExit(1)

    try:
        state = store.get(task_id)
    except TaskNotFoundError:
        formatter.print_warning(f"No state recorded for task {task_id}")
        state = None
    except StateManagementError as e:
        formatter.print_warning(f"Discarding unreadable state: {e}")
        state = None

    if state is not None and not state.worktree_info.is_empty():
        try:
            build_sandbox_manager(config, GitClient()).cleanup(state.worktree_info)
        except TeamflowError as e:
            formatter.print_error(str(e))
            formatter.print_warning(f"Keeping state for task {task_id} so cleanup can be retried")
            raise SystemExit(1)

    try:
        store.cleanup(task_id)
    except StateManagementError as e:
        formatter.print_error(str(e))
        raise SystemExit(1)

    formatter.print_success(f"Cleaned up task {task_id}")
