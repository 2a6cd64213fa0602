"""Tests for the coder/reviewer workflow orchestrator"""
import asyncio
from pathlib import Path
from unittest.mock import Mock

import pytest

from teamflow.agents.protocol import AgentCallResult, AgentRunner
from teamflow.errors import GitHubAPIError, WorktreeCleanupError, WorktreeCreationError
from teamflow.orchestration.events import WorkflowObserver
from teamflow.orchestration.models import PRInfo, TaskStatus, WorktreeInfo
from teamflow.orchestration.state import TaskStateStore
from teamflow.orchestration.workflow import TeamOrchestrator, WorkflowOptions
from teamflow.teams.registry import Team, TeamRegistry

PR_URL = "https://github.com/acme/widgets/pull/42"


class FakeAgent(AgentRunner):
    """Agent whose results are scripted per call."""

    def __init__(self, results=None, default=None):
        self.results = list(results or [])
        self.default = default or AgentCallResult(success=True, final_response="ok")
        self.calls = []

    @property
    def name(self):
        return "fake"

    @property
    def display_name(self):
        return "Fake"

    def is_available(self):
        return True

    async def run(self, prompt, cwd, mcp_config=None):
        self.calls.append({"prompt": prompt, "cwd": cwd, "mcp_config": mcp_config})
        if self.results:
            return self.results.pop(0)
        return self.default


class HangingAgent(FakeAgent):
    """Blocks in run until cancelled."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()

    async def run(self, prompt, cwd, mcp_config=None):
        self.started.set()
        await asyncio.Event().wait()


class FakeDetector:
    """Reports a PR starting at a given check number."""

    def __init__(self, found_on=None, error=None):
        self.found_on = found_on
        self.error = error
        self.checks = []

    def find_open_pr(self, branch):
        self.checks.append(branch)
        if self.error is not None:
            raise self.error
        if self.found_on is not None and len(self.checks) >= self.found_on:
            return PRInfo(
                number=42,
                title="Add feature",
                url=PR_URL,
                state="open",
                head_branch=branch,
                base_branch="main",
            )
        return None


class RecordingObserver(WorkflowObserver):
    def __init__(self):
        self.events = []

    def on_task_start(self, state):
        self.events.append(("task_start", state.task_id))

    def on_sandbox_created(self, worktree):
        self.events.append(("sandbox_created", worktree.branch_name))

    def on_iteration_start(self, task_id, iteration, max_iterations):
        self.events.append(("iteration_start", iteration, max_iterations))

    def on_agent_result(self, task_id, iteration, role, result):
        self.events.append(("agent_result", iteration, role, result.success))

    def on_completion_check(self, task_id, iteration, pr):
        self.events.append(("completion_check", iteration, pr is not None))

    def on_cleanup(self, task_id, errors):
        self.events.append(("cleanup", len(errors)))

    def on_task_end(self, result):
        self.events.append(("task_end", result.success))


@pytest.fixture
def spec_file(tmp_path):
    path = tmp_path / "SPEC.md"
    path.write_text("Add a /health endpoint returning 200.")
    return path


@pytest.fixture
def state_store(tmp_path):
    return TaskStateStore(tmp_path / "state")


@pytest.fixture
def sandbox_manager(tmp_path):
    manager = Mock()

    def create(task_id, branch_name=None, base_branch=None):
        path = tmp_path / "worktrees" / task_id
        return WorktreeInfo(path=str(path), branch_name=branch_name, base_branch=base_branch or "main")

    manager.create.side_effect = create
    return manager


def make_orchestrator(state_store, sandbox_manager, agent, detector, **kwargs):
    return TeamOrchestrator(
        team_registry=TeamRegistry(),
        state_store=state_store,
        sandbox_manager=sandbox_manager,
        agent=agent,
        completion_detector=detector,
        **kwargs,
    )


def options_for(spec_file, **overrides):
    fields = {
        "team_type": "standard",
        "spec_or_issue": str(spec_file),
        "max_iterations": 3,
        "task_id": "task-1",
    }
    fields.update(overrides)
    return WorkflowOptions(**fields)


@pytest.mark.asyncio
async def test_pr_after_second_iteration(state_store, sandbox_manager, spec_file):
    """maxIterations=2 with a PR on the second check succeeds in two iterations"""
    agent = FakeAgent()
    detector = FakeDetector(found_on=2)
    orchestrator = make_orchestrator(state_store, sandbox_manager, agent, detector)

    result = await orchestrator.orchestrate(options_for(spec_file, max_iterations=2))

    assert result.success is True
    assert result.pr_url == PR_URL
    assert result.iterations == 2
    assert result.task_id == "task-1"
    assert len(agent.calls) == 4


@pytest.mark.asyncio
async def test_no_pr_exhausts_iterations(state_store, sandbox_manager, spec_file):
    """maxIterations=1 without a PR fails with the max iterations error"""
    agent = FakeAgent()
    orchestrator = make_orchestrator(state_store, sandbox_manager, agent, FakeDetector())

    result = await orchestrator.orchestrate(options_for(spec_file, max_iterations=1))

    assert result.success is False
    assert result.iterations == 1
    assert result.error.startswith("max iterations reached")
    assert result.pr_url is None


@pytest.mark.asyncio
@pytest.mark.parametrize("max_iterations", [1, 2, 5])
async def test_iteration_bound(state_store, sandbox_manager, spec_file, max_iterations):
    agent = FakeAgent()
    detector = FakeDetector()
    orchestrator = make_orchestrator(state_store, sandbox_manager, agent, detector)

    result = await orchestrator.orchestrate(
        options_for(spec_file, max_iterations=max_iterations, cleanup=False)
    )

    assert result.iterations == max_iterations
    assert len(agent.calls) == 2 * max_iterations
    assert len(detector.checks) == max_iterations

    state = state_store.get("task-1")
    assert state.status == TaskStatus.FAILED
    assert state.current_iteration == max_iterations
    assert "max iterations reached" in state.error


@pytest.mark.asyncio
async def test_early_success_stops_loop(state_store, sandbox_manager, spec_file):
    agent = FakeAgent()
    detector = FakeDetector(found_on=1)
    orchestrator = make_orchestrator(state_store, sandbox_manager, agent, detector)

    result = await orchestrator.orchestrate(
        options_for(spec_file, max_iterations=5, cleanup=False)
    )

    assert result.success is True
    assert result.iterations == 1
    assert len(agent.calls) == 2
    assert len(detector.checks) == 1
    assert state_store.get("task-1").status == TaskStatus.COMPLETED


@pytest.mark.asyncio
async def test_coder_failure_on_second_iteration(state_store, sandbox_manager, spec_file):
    """A failed coder call aborts the loop and cleanup still runs"""
    agent = FakeAgent(results=[
        AgentCallResult(success=True, final_response="coded"),
        AgentCallResult(success=True, final_response="needs work"),
        AgentCallResult(success=False, error="rate limited"),
    ])
    detector = FakeDetector()
    orchestrator = make_orchestrator(state_store, sandbox_manager, agent, detector)

    result = await orchestrator.orchestrate(options_for(spec_file, max_iterations=5))

    assert result.success is False
    assert result.iterations == 1
    assert "rate limited" in result.error
    assert len(agent.calls) == 3
    assert len(detector.checks) == 1
    sandbox_manager.cleanup.assert_called_once()
    assert not state_store.path_for("task-1").exists()


@pytest.mark.asyncio
async def test_reviewer_failure_marks_state_failed(state_store, sandbox_manager, spec_file):
    agent = FakeAgent(results=[
        AgentCallResult(success=True, final_response="coded"),
        AgentCallResult(success=False, error="reviewer crashed"),
    ])
    detector = FakeDetector(found_on=1)
    orchestrator = make_orchestrator(state_store, sandbox_manager, agent, detector)

    result = await orchestrator.orchestrate(options_for(spec_file, cleanup=False))

    assert result.success is False
    assert result.iterations == 0
    assert detector.checks == []

    state = state_store.get("task-1")
    assert state.status == TaskStatus.FAILED
    assert "reviewer crashed" in state.error


@pytest.mark.asyncio
async def test_agent_exception_becomes_failed_result(state_store, sandbox_manager, spec_file):
    agent = FakeAgent()

    async def explode(prompt, cwd, mcp_config=None):
        raise RuntimeError("process vanished")

    agent.run = explode
    orchestrator = make_orchestrator(state_store, sandbox_manager, agent, FakeDetector())

    result = await orchestrator.orchestrate(options_for(spec_file))

    assert result.success is False
    assert "process vanished" in result.error


@pytest.mark.asyncio
async def test_feedback_flows_into_next_coder_prompt(state_store, sandbox_manager, spec_file):
    agent = FakeAgent(results=[
        AgentCallResult(success=True, final_response="implemented v1"),
        AgentCallResult(success=True, final_response="Please add tests for the 404 path"),
        AgentCallResult(success=True, final_response="implemented v2"),
        AgentCallResult(success=True, final_response="PR created"),
    ])
    orchestrator = make_orchestrator(state_store, sandbox_manager, agent, FakeDetector(found_on=2))

    await orchestrator.orchestrate(options_for(spec_file))

    first_coder, first_reviewer, second_coder, _ = [c["prompt"] for c in agent.calls]
    assert "/health endpoint" in first_coder
    assert "Please add tests" not in first_coder
    assert "implemented v1" in first_reviewer
    assert "Please add tests for the 404 path" in second_coder


@pytest.mark.asyncio
async def test_agents_run_inside_sandbox(state_store, sandbox_manager, spec_file, tmp_path):
    agent = FakeAgent()
    orchestrator = make_orchestrator(state_store, sandbox_manager, agent, FakeDetector(found_on=1))

    await orchestrator.orchestrate(options_for(spec_file))

    expected = Path(tmp_path / "worktrees" / "task-1")
    assert all(call["cwd"] == expected for call in agent.calls)


@pytest.mark.asyncio
async def test_completion_checked_on_task_branch(state_store, sandbox_manager, spec_file):
    detector = FakeDetector(found_on=1)
    orchestrator = make_orchestrator(state_store, sandbox_manager, FakeAgent(), detector)

    await orchestrator.orchestrate(options_for(spec_file, branch_name="feature/health"))

    assert detector.checks == ["feature/health"]


@pytest.mark.asyncio
async def test_mcp_config_passed_to_agent(state_store, sandbox_manager, spec_file):
    agent = FakeAgent()
    mcp = {"mcpServers": {"docs": {"command": "docs-server", "args": [], "env": {}}}}
    orchestrator = make_orchestrator(
        state_store, sandbox_manager, agent, FakeDetector(found_on=1),
        mcp_config_resolver=lambda team: mcp if team == "standard" else None,
    )

    await orchestrator.orchestrate(options_for(spec_file))

    assert all(call["mcp_config"] == mcp for call in agent.calls)


@pytest.mark.asyncio
async def test_sandbox_info_persisted(state_store, sandbox_manager, spec_file):
    orchestrator = make_orchestrator(state_store, sandbox_manager, FakeAgent(), FakeDetector(found_on=1))

    await orchestrator.orchestrate(options_for(spec_file, cleanup=False, base_branch="develop"))

    state = state_store.get("task-1")
    assert state.branch_name == "teamflow/task-1"
    assert state.worktree_info.branch_name == "teamflow/task-1"
    assert state.worktree_info.base_branch == "develop"
    assert state.coder_responses == ["ok"]
    assert state.reviewer_responses == ["ok"]


@pytest.mark.asyncio
async def test_unknown_team_fails_before_sandbox(state_store, sandbox_manager, spec_file):
    agent = FakeAgent()
    orchestrator = make_orchestrator(state_store, sandbox_manager, agent, FakeDetector())

    result = await orchestrator.orchestrate(options_for(spec_file, team_type="no-such-team"))

    assert result.success is False
    assert "no-such-team" in result.error
    assert result.iterations == 0
    sandbox_manager.create.assert_not_called()
    sandbox_manager.cleanup.assert_not_called()
    assert agent.calls == []


@pytest.mark.asyncio
async def test_missing_spec_fails_without_resources(state_store, sandbox_manager, tmp_path):
    orchestrator = make_orchestrator(state_store, sandbox_manager, FakeAgent(), FakeDetector())

    result = await orchestrator.orchestrate(
        WorkflowOptions(team_type="standard", spec_or_issue=str(tmp_path / "missing.md"))
    )

    assert result.success is False
    assert "Specification file not found" in result.error
    sandbox_manager.create.assert_not_called()


@pytest.mark.asyncio
async def test_sandbox_creation_failure(state_store, sandbox_manager, spec_file):
    sandbox_manager.create.side_effect = WorktreeCreationError("branch already exists")
    agent = FakeAgent()
    orchestrator = make_orchestrator(state_store, sandbox_manager, agent, FakeDetector())

    result = await orchestrator.orchestrate(options_for(spec_file))

    assert result.success is False
    assert "branch already exists" in result.error
    assert agent.calls == []
    sandbox_manager.cleanup.assert_not_called()
    assert not state_store.path_for("task-1").exists()


@pytest.mark.asyncio
async def test_detector_error_is_fatal(state_store, sandbox_manager, spec_file):
    detector = FakeDetector(error=GitHubAPIError("Server Error", 502))
    orchestrator = make_orchestrator(state_store, sandbox_manager, FakeAgent(), detector)

    result = await orchestrator.orchestrate(options_for(spec_file))

    assert result.success is False
    assert "502" in result.error
    sandbox_manager.cleanup.assert_called_once()


@pytest.mark.asyncio
async def test_sandbox_cleanup_failure_keeps_state(state_store, sandbox_manager, spec_file):
    sandbox_manager.cleanup.side_effect = WorktreeCleanupError("worktree locked")
    observer = RecordingObserver()
    orchestrator = make_orchestrator(
        state_store, sandbox_manager, FakeAgent(), FakeDetector(found_on=1),
        observers=[observer],
    )

    result = await orchestrator.orchestrate(options_for(spec_file))

    assert result.success is True
    assert result.pr_url == PR_URL
    assert ("cleanup", 1) in observer.events
    assert state_store.path_for("task-1").exists()


@pytest.mark.asyncio
async def test_no_cleanup_keeps_resources(state_store, sandbox_manager, spec_file):
    orchestrator = make_orchestrator(state_store, sandbox_manager, FakeAgent(), FakeDetector(found_on=1))

    await orchestrator.orchestrate(options_for(spec_file, cleanup=False))

    sandbox_manager.cleanup.assert_not_called()
    assert state_store.path_for("task-1").exists()


@pytest.mark.asyncio
async def test_observer_event_sequence(state_store, sandbox_manager, spec_file):
    observer = RecordingObserver()
    orchestrator = make_orchestrator(
        state_store, sandbox_manager, FakeAgent(), FakeDetector(found_on=2),
        observers=[observer],
    )

    await orchestrator.orchestrate(options_for(spec_file, max_iterations=2))

    assert observer.events == [
        ("task_start", "task-1"),
        ("sandbox_created", "teamflow/task-1"),
        ("iteration_start", 1, 2),
        ("agent_result", 1, "coder", True),
        ("agent_result", 1, "reviewer", True),
        ("completion_check", 1, False),
        ("iteration_start", 2, 2),
        ("agent_result", 2, "coder", True),
        ("agent_result", 2, "reviewer", True),
        ("completion_check", 2, True),
        ("cleanup", 0),
        ("task_end", True),
    ]


@pytest.mark.asyncio
async def test_broken_observer_does_not_break_workflow(state_store, sandbox_manager, spec_file):
    broken = Mock(spec=WorkflowObserver)
    broken.on_iteration_start.side_effect = RuntimeError("observer bug")
    orchestrator = make_orchestrator(
        state_store, sandbox_manager, FakeAgent(), FakeDetector(found_on=1),
        observers=[broken],
    )

    result = await orchestrator.orchestrate(options_for(spec_file))

    assert result.success is True
    broken.on_task_end.assert_called_once_with(result)


@pytest.mark.asyncio
async def test_registered_team_prompts_are_used(state_store, sandbox_manager, spec_file):
    registry = TeamRegistry()
    registry.register(Team(
        name="custom",
        coder=lambda spec: f"CODE: {spec}",
        reviewer=lambda spec: f"REVIEW: {spec}",
    ))
    agent = FakeAgent()
    orchestrator = TeamOrchestrator(
        team_registry=registry,
        state_store=state_store,
        sandbox_manager=sandbox_manager,
        agent=agent,
        completion_detector=FakeDetector(found_on=1),
    )

    result = await orchestrator.orchestrate(options_for(spec_file, team_type="custom"))

    assert result.success is True
    assert agent.calls[0]["prompt"].startswith("CODE: Add a /health endpoint")
    assert agent.calls[1]["prompt"].startswith("REVIEW: Add a /health endpoint")


@pytest.mark.asyncio
async def test_distinct_tasks_get_distinct_sandboxes(state_store, sandbox_manager, spec_file):
    orchestrator = make_orchestrator(state_store, sandbox_manager, FakeAgent(), FakeDetector(found_on=1))

    first = await orchestrator.orchestrate(options_for(spec_file, task_id=None))
    second = await orchestrator.orchestrate(options_for(spec_file, task_id=None))

    assert first.task_id != second.task_id
    created = [call.args[0] for call in sandbox_manager.create.call_args_list]
    branches = [call.kwargs["branch_name"] for call in sandbox_manager.create.call_args_list]
    assert len(set(created)) == 2
    assert len(set(branches)) == 2


async def cancel_during_agent_call(orchestrator, agent, options):
    task = asyncio.create_task(orchestrator.orchestrate(options))
    await asyncio.wait_for(agent.started.wait(), timeout=5)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_cancellation_still_cleans_up(state_store, sandbox_manager, spec_file):
    agent = HangingAgent()
    observer = RecordingObserver()
    orchestrator = make_orchestrator(
        state_store, sandbox_manager, agent, FakeDetector(), observers=[observer],
    )

    await cancel_during_agent_call(orchestrator, agent, options_for(spec_file))

    sandbox_manager.cleanup.assert_called_once()
    assert not state_store.path_for("task-1").exists()
    assert observer.events[-2:] == [("cleanup", 0), ("task_end", False)]


@pytest.mark.asyncio
async def test_cancellation_marks_state_failed(state_store, sandbox_manager, spec_file):
    agent = HangingAgent()
    orchestrator = make_orchestrator(state_store, sandbox_manager, agent, FakeDetector())

    await cancel_during_agent_call(orchestrator, agent, options_for(spec_file, cleanup=False))

    state = state_store.get("task-1")
    assert state.status == TaskStatus.FAILED
    assert state.error == "task cancelled"
    sandbox_manager.cleanup.assert_not_called()
