"""Coder/Reviewer workflow orchestrator.

One task runs through a fixed state machine::

    Initializing -> (per iteration) RunningCoder -> RunningReviewer
                 -> CheckingCompletion -> NextIteration | Completed | Failed

Completion is only checked after both roles have run, so an iteration is
an atomic unit of work. Every exit path runs cleanup when requested, and
:meth:`TeamOrchestrator.orchestrate` returns a :class:`TeamResult` unless it
is cancelled, in which case the cancellation propagates after cleanup.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from teamflow.agents.protocol import AgentCallResult, AgentRunner
from teamflow.config.defaults import DEFAULT_MAX_ITERATIONS
from teamflow.errors import AgentExecutionError, StateManagementError, TeamflowError
from teamflow.integrations.github import CompletionDetector
from teamflow.orchestration.events import CODER, REVIEWER, WorkflowObserver
from teamflow.orchestration.models import TaskState, TeamResult, WorktreeInfo
from teamflow.orchestration.prompts import build_coder_prompt, build_reviewer_prompt
from teamflow.orchestration.state import TaskStateStore, generate_task_id
from teamflow.teams.registry import Team, TeamRegistry
from teamflow.workspace.sandbox import SandboxManager

logger = logging.getLogger(__name__)

MAX_ITERATIONS_ERROR = "max iterations reached ({max_iterations}) without an open pull request"
CANCELLED_ERROR = "task cancelled"

MCPConfigResolver = Callable[[str], dict[str, Any] | None]


@dataclass
class WorkflowOptions:
    """Inputs for a single orchestration run"""
    team_type: str
    spec_or_issue: str
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    branch_name: str | None = None
    base_branch: str | None = None
    cleanup: bool = True
    task_id: str | None = None


class TeamOrchestrator:
    """Drives a Coder and a Reviewer until a pull request appears.

    Args:
        team_registry: Resolves the team's prompt builders.
        state_store: Persists the task state.
        sandbox_manager: Provisions and tears down the task worktree.
        agent: Runner used for both roles.
        completion_detector: Reports the open pull request for a branch.
        observers: Receive progress events.
        mcp_config_resolver: Maps a team name to its MCP configuration.
    """

    def __init__(
        self,
        team_registry: TeamRegistry,
        state_store: TaskStateStore,
        sandbox_manager: SandboxManager,
        agent: AgentRunner,
        completion_detector: CompletionDetector,
        observers: Sequence[WorkflowObserver] = (),
        mcp_config_resolver: MCPConfigResolver | None = None,
    ):
        self.team_registry = team_registry
        self.state_store = state_store
        self.sandbox_manager = sandbox_manager
        self.agent = agent
        self.completion_detector = completion_detector
        self.observers = list(observers)
        self.mcp_config_resolver = mcp_config_resolver

    async def orchestrate(self, options: WorkflowOptions) -> TeamResult:
        """Run one task to completion, exhaustion or failure."""
        task_id = options.task_id or generate_task_id()
        state: TaskState | None = None
        worktree: WorktreeInfo | None = None
        result: TeamResult | None = None

        try:
            team = self.team_registry.load(options.team_type)
            mcp_config = self.mcp_config_resolver(team.name) if self.mcp_config_resolver else None

            state = self.state_store.initialize(
                options.spec_or_issue,
                team_type=team.name,
                max_iterations=options.max_iterations,
                task_id=task_id,
                branch_name=options.branch_name,
            )
            self._emit("on_task_start", state)

            worktree = self.sandbox_manager.create(
                task_id,
                branch_name=state.branch_name,
                base_branch=options.base_branch,
            )
            state.worktree_info = worktree
            state.branch_name = worktree.branch_name
            self.state_store.update(state)
            self._emit("on_sandbox_created", worktree)

            result = await self._run_iterations(team, state, worktree, mcp_config)

        except Exception as e:
            if isinstance(e, TeamflowError):
                error = str(e)
                logger.error("Task %s failed: %s", task_id, error)
            else:
                error = f"Unexpected error: {e}"
                logger.exception("Task %s failed with an unexpected error", task_id)
            self._record_failure(state, error)
            result = TeamResult(
                success=False,
                iterations=state.current_iteration if state is not None else 0,
                task_id=task_id,
                error=error,
            )
        except asyncio.CancelledError:
            logger.warning("Task %s cancelled", task_id)
            self._record_failure(state, CANCELLED_ERROR)
            result = TeamResult(
                success=False,
                iterations=state.current_iteration if state is not None else 0,
                task_id=task_id,
                error=CANCELLED_ERROR,
            )
            raise
        finally:
            if options.cleanup:
                self._cleanup(task_id, worktree, state)
            if result is not None:
                self._emit("on_task_end", result)

        return result

    async def _run_iterations(
        self,
        team: Team,
        state: TaskState,
        worktree: WorktreeInfo,
        mcp_config: dict[str, Any] | None,
    ) -> TeamResult:
        cwd = Path(worktree.path)
        feedback: str | None = None

        for iteration in range(1, state.max_iterations + 1):
            self._emit("on_iteration_start", state.task_id, iteration, state.max_iterations)

            coder_prompt = build_coder_prompt(team, state.spec_content, feedback)
            coder_result = await self._invoke(CODER, coder_prompt, cwd, mcp_config, state, iteration)
            state.coder_responses.append(coder_result.final_response)

            reviewer_prompt = build_reviewer_prompt(
                team, state.spec_content, coder_result.final_response
            )
            reviewer_result = await self._invoke(
                REVIEWER, reviewer_prompt, cwd, mcp_config, state, iteration
            )
            state.reviewer_responses.append(reviewer_result.final_response)

            pr = self.completion_detector.find_open_pr(worktree.branch_name)
            self._emit("on_completion_check", state.task_id, iteration, pr)

            state.current_iteration = iteration
            if pr is not None:
                state.mark_completed()
                self.state_store.update(state)
                return TeamResult(
                    success=True,
                    iterations=iteration,
                    task_id=state.task_id,
                    pr_url=pr.url,
                )

            self.state_store.update(state)
            feedback = reviewer_result.final_response

        error = MAX_ITERATIONS_ERROR.format(max_iterations=state.max_iterations)
        logger.warning("Task %s: %s", state.task_id, error)
        state.mark_failed(error)
        self.state_store.update(state)
        return TeamResult(
            success=False,
            iterations=state.max_iterations,
            task_id=state.task_id,
            error=error,
        )

    async def _invoke(
        self,
        role: str,
        prompt: str,
        cwd: Path,
        mcp_config: dict[str, Any] | None,
        state: TaskState,
        iteration: int,
    ) -> AgentCallResult:
        """Run one role. A failed call aborts the task."""
        self._emit("on_agent_start", state.task_id, iteration, role)
        try:
            result = await self.agent.run(prompt, cwd, mcp_config)
        except Exception as e:
            raise AgentExecutionError(f"{role} agent raised on iteration {iteration}: {e}") from e

        self._emit("on_agent_result", state.task_id, iteration, role, result)
        if not result.success:
            raise AgentExecutionError(
                f"{role} agent failed on iteration {iteration}: {result.error or 'no error reported'}"
            )
        return result

    def _record_failure(self, state: TaskState | None, error: str) -> None:
        if state is None or state.is_terminal:
            return
        state.mark_failed(error)
        try:
            self.state_store.update(state)
        except StateManagementError as e:
            logger.warning("Could not record failure for task %s: %s", state.task_id, e)

    def _cleanup(
        self,
        task_id: str,
        worktree: WorktreeInfo | None,
        state: TaskState | None,
    ) -> None:
        """Tear down the sandbox, then the state. Failures never escape.

        The state record is kept when the sandbox could not be removed, so
        ``teamflow task clean`` can still find the worktree later.
        """
        errors: list[Exception] = []

        if worktree is not None:
            try:
                self.sandbox_manager.cleanup(worktree)
            except Exception as e:
                errors.append(e)

        if state is not None and not errors:
            try:
                self.state_store.cleanup(task_id)
            except Exception as e:
                errors.append(e)

        for error in errors:
            logger.warning("Cleanup for task %s failed: %s", task_id, error)
        self._emit("on_cleanup", task_id, errors)

    def _emit(self, event: str, *args: Any) -> None:
        for observer in self.observers:
            try:
                getattr(observer, event)(*args)
            except Exception:
                logger.warning("Observer %r failed handling %s", observer, event, exc_info=True)
