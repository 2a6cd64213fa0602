"""Workflow events emitted by the orchestrator.

Callers subscribe by passing observers to :class:`TeamOrchestrator`. Every
hook has a no-op default, so observers only override what they need.
"""

import logging

from teamflow.agents.protocol import AgentCallResult
from teamflow.orchestration.models import PRInfo, TaskState, TeamResult, WorktreeInfo

logger = logging.getLogger(__name__)

CODER = "coder"
REVIEWER = "reviewer"


class WorkflowObserver:
    """Receives workflow progress events."""

    def on_task_start(self, state: TaskState) -> None:
        pass

    def on_sandbox_created(self, worktree: WorktreeInfo) -> None:
        pass

    def on_iteration_start(self, task_id: str, iteration: int, max_iterations: int) -> None:
        pass

    def on_agent_start(self, task_id: str, iteration: int, role: str) -> None:
        pass

    def on_agent_result(
        self, task_id: str, iteration: int, role: str, result: AgentCallResult
    ) -> None:
        pass

    def on_completion_check(self, task_id: str, iteration: int, pr: PRInfo | None) -> None:
        pass

    def on_cleanup(self, task_id: str, errors: list[Exception]) -> None:
        pass

    def on_task_end(self, result: TeamResult) -> None:
        pass


class LoggingObserver(WorkflowObserver):
    """Narrates the workflow through the standard logging module."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def on_task_start(self, state: TaskState) -> None:
        self.log.info(
            "Task %s started: team=%s max_iterations=%d",
            state.task_id, state.team_type, state.max_iterations,
        )

    def on_sandbox_created(self, worktree: WorktreeInfo) -> None:
        self.log.info("Sandbox ready at %s (branch %s)", worktree.path, worktree.branch_name)

    def on_iteration_start(self, task_id: str, iteration: int, max_iterations: int) -> None:
        self.log.info("Task %s: iteration %d/%d", task_id, iteration, max_iterations)

    def on_agent_result(
        self, task_id: str, iteration: int, role: str, result: AgentCallResult
    ) -> None:
        if result.success:
            self.log.info(
                "Task %s: %s finished in %.1fs (cost $%.4f)",
                task_id, role, result.duration, result.cost,
            )
        else:
            self.log.warning("Task %s: %s failed: %s", task_id, role, result.error)

    def on_completion_check(self, task_id: str, iteration: int, pr: PRInfo | None) -> None:
        if pr is None:
            self.log.info("Task %s: no pull request after iteration %d", task_id, iteration)
        else:
            self.log.info("Task %s: pull request #%d open at %s", task_id, pr.number, pr.url)

    def on_cleanup(self, task_id: str, errors: list[Exception]) -> None:
        for error in errors:
            self.log.warning("Task %s: cleanup failed: %s", task_id, error)

    def on_task_end(self, result: TeamResult) -> None:
        if result.success:
            self.log.info("Task %s completed after %d iteration(s)", result.task_id, result.iterations)
        else:
            self.log.info("Task %s failed: %s", result.task_id, result.error)
