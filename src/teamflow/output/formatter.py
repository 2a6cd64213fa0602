"""Output formatting using Rich for terminal output."""

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.theme import Theme

from teamflow.orchestration.models import TaskState, TaskStatus, TeamResult, WorktreeInfo
from teamflow.preflight import PreflightResult
from teamflow.teams.registry import PromptTemplate, Team

# Custom theme for teamflow
TEAMFLOW_THEME = Theme(
    {
        "role.coder": "cyan",
        "role.reviewer": "magenta",
        "success": "green",
        "error": "red bold",
        "warning": "yellow",
        "info": "blue",
        "metadata": "dim",
    }
)

STATUS_STYLES = {
    TaskStatus.RUNNING: "info",
    TaskStatus.COMPLETED: "success",
    TaskStatus.FAILED: "error",
}


class OutputFormatter:
    """Handles all output formatting for teamflow."""

    def __init__(self, color: bool = True, verbose: bool = False) -> None:
        self.console = Console(theme=TEAMFLOW_THEME, no_color=not color, highlight=False)
        self.verbose = verbose

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[error]Error: {message}[/error]")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[success]{message}[/success]")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[info]{message}[/info]")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[warning]{message}[/warning]")

    def print_role_header(self, role: str, iteration: int) -> None:
        """Print a header for a role's turn."""
        style = f"role.{role}" if role in ("coder", "reviewer") else "info"
        self.console.print(f"[{style}]━━━ {role.capitalize()} (iteration {iteration}) ━━━[/{style}]")

    def print_result(self, result: TeamResult) -> None:
        """Print the final outcome of a workflow run."""
        if result.success:
            body = (
                f"[success]Pull request ready:[/success] {result.pr_url}\n"
                f"[metadata]task {result.task_id}, {result.iterations} iteration(s)[/metadata]"
            )
            self.console.print(Panel(body, title="Task completed", border_style="success"))
        else:
            body = (
                f"[error]{result.error or 'Unknown error'}[/error]\n"
                f"[metadata]task {result.task_id}, {result.iterations} iteration(s)[/metadata]"
            )
            self.console.print(Panel(body, title="Task failed", border_style="error"))

    def print_team_list(self, teams: list[Team]) -> None:
        table = Table(title="Available Teams")
        table.add_column("Name", style="cyan")
        table.add_column("Source", style="metadata")

        for team in teams:
            table.add_row(team.name, team.source or "registered")

        self.console.print(table)

    def print_team(self, team: Team) -> None:
        """Print a team's prompt templates."""
        self.console.print(f"[bold]{team.name}[/bold] [metadata]({team.source or 'registered'})[/metadata]")
        for role, builder in (("coder", team.coder), ("reviewer", team.reviewer)):
            text = builder.source if isinstance(builder, PromptTemplate) else repr(builder)
            self.console.print(Panel(
                text.strip(),
                title=f"[role.{role}]{role.upper()}[/role.{role}]",
                border_style=f"role.{role}",
            ))

    def print_task_list(self, tasks: list[TaskState]) -> None:
        if not tasks:
            self.print_info("No tasks found")
            return

        table = Table(title="Tasks")
        table.add_column("Task", style="cyan")
        table.add_column("Team")
        table.add_column("Status", justify="center")
        table.add_column("Iteration", justify="right")
        table.add_column("Branch")
        table.add_column("Updated", style="metadata")

        for task in tasks:
            style = STATUS_STYLES.get(task.status, "info")
            table.add_row(
                task.task_id,
                task.team_type,
                f"[{style}]{task.status.value}[/{style}]",
                f"{task.current_iteration}/{task.max_iterations}",
                task.branch_name,
                task.updated_at.strftime("%Y-%m-%d %H:%M:%S"),
            )

        self.console.print(table)

    def print_task(self, task: TaskState) -> None:
        """Print one task state in detail."""
        style = STATUS_STYLES.get(task.status, "info")
        table = Table(show_header=False, box=None)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Task", task.task_id)
        table.add_row("Team", task.team_type)
        table.add_row("Status", f"[{style}]{task.status.value}[/{style}]")
        table.add_row("Iteration", f"{task.current_iteration}/{task.max_iterations}")
        table.add_row("Spec", task.spec_or_issue)
        table.add_row("Branch", task.branch_name)
        table.add_row("Worktree", task.worktree_info.path or "-")
        table.add_row("Created", task.created_at.isoformat())
        table.add_row("Updated", task.updated_at.isoformat())
        if task.error:
            table.add_row("Error", f"[error]{task.error}[/error]")
        self.console.print(Panel(table, title=f"Task {task.task_id}"))

        if self.verbose:
            for i, (coder, reviewer) in enumerate(
                zip(task.coder_responses, task.reviewer_responses), start=1
            ):
                self.print_role_header("coder", i)
                self.console.print(coder)
                self.print_role_header("reviewer", i)
                self.console.print(reviewer)

    def print_sandbox_list(self, sandboxes: list[WorktreeInfo]) -> None:
        if not sandboxes:
            self.print_info("No sandboxes found")
            return

        table = Table(title="Sandboxes")
        table.add_column("Branch", style="cyan")
        table.add_column("Path")
        for sandbox in sandboxes:
            table.add_row(sandbox.branch_name, sandbox.path)
        self.console.print(table)

    def print_agent_list(self, agents: list[tuple[str, str, bool]]) -> None:
        """Print list of agents.

        Args:
            agents: List of (name, display_name, is_available) tuples.
        """
        table = Table(title="Registered Agents")
        table.add_column("Name", style="cyan")
        table.add_column("Display Name")
        table.add_column("Status", justify="center")

        for name, display_name, is_available in agents:
            status = "[success]available[/success]" if is_available else "[error]unavailable[/error]"
            table.add_row(name, display_name, status)

        self.console.print(table)

    def print_preflight(self, result: PreflightResult) -> None:
        for error in result.errors:
            self.console.print(f"[error]✗ {error}[/error]")
        for warning in result.warnings:
            self.console.print(f"[warning]! {warning}[/warning]")
        if result.success:
            self.print_success("✓ Environment ready")

    def print_json_document(self, text: str) -> None:
        self.console.print(Syntax(text, "json", background_color="default"))

    def print_metadata(self, metadata: dict[str, Any]) -> None:
        """Print metadata in a dimmed style."""
        parts = [f"{k}={v}" for k, v in metadata.items()]
        self.console.print(f"[metadata]({', '.join(parts)})[/metadata]")


# Global formatter instance
_formatter: OutputFormatter | None = None


def get_formatter(color: bool = True, verbose: bool = False) -> OutputFormatter:
    """Get or create the global formatter instance."""
    global _formatter
    if _formatter is None:
        _formatter = OutputFormatter(color=color, verbose=verbose)
    return _formatter


def reset_formatter() -> None:
    global _formatter
    _formatter = None
