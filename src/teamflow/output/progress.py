"""Workflow observer that reports progress on the terminal."""

from teamflow.agents.protocol import AgentCallResult
from teamflow.orchestration.events import WorkflowObserver
from teamflow.orchestration.models import PRInfo, TaskState, WorktreeInfo
from teamflow.output.formatter import OutputFormatter


class ConsoleProgressObserver(WorkflowObserver):
    """Prints one line per workflow step through an OutputFormatter."""

    def __init__(self, formatter: OutputFormatter):
        self.formatter = formatter

    def on_task_start(self, state: TaskState) -> None:
        self.formatter.print_info(
            f"Task {state.task_id}: team {state.team_type}, up to {state.max_iterations} iteration(s)"
        )

    def on_sandbox_created(self, worktree: WorktreeInfo) -> None:
        self.formatter.print_info(f"Worktree {worktree.path} on branch {worktree.branch_name}")

    def on_iteration_start(self, task_id: str, iteration: int, max_iterations: int) -> None:
        self.formatter.print_info(f"Iteration {iteration}/{max_iterations}")

    def on_agent_start(self, task_id: str, iteration: int, role: str) -> None:
        self.formatter.print_role_header(role, iteration)

    def on_agent_result(
        self, task_id: str, iteration: int, role: str, result: AgentCallResult
    ) -> None:
        if not result.success:
            self.formatter.print_error(f"{role} failed: {result.error}")
            return
        self.formatter.print_metadata(
            {"duration": f"{result.duration:.1f}s", "cost": f"${result.cost:.4f}"}
        )
        if self.formatter.verbose and result.final_response:
            self.formatter.console.print(result.final_response)

    def on_completion_check(self, task_id: str, iteration: int, pr: PRInfo | None) -> None:
        if pr is None:
            self.formatter.print_info("No pull request yet")
        else:
            self.formatter.print_success(f"Pull request #{pr.number}: {pr.url}")

    def on_cleanup(self, task_id: str, errors: list[Exception]) -> None:
        for error in errors:
            self.formatter.print_warning(f"Cleanup failed: {error}")
