"""Build runtime collaborators from configuration."""

from pathlib import Path

from teamflow.agents.protocol import AgentRunner
from teamflow.agents.registry import AgentRegistry
from teamflow.config.schema import TeamflowConfig
from teamflow.orchestration.state import TaskStateStore
from teamflow.teams.registry import TeamRegistry
from teamflow.workspace.git import GitClient
from teamflow.workspace.sandbox import SandboxManager


def build_agent(config: TeamflowConfig) -> AgentRunner:
    options = {
        "model": config.agent.model,
        "timeout": config.agent.timeout,
        "extra_args": dict(config.agent.extra_args),
    }
    if config.agent.backend == "claude":
        options["skip_permissions"] = config.agent.skip_permissions
    return AgentRegistry.create(config.agent.backend, **options)


def build_state_store(config: TeamflowConfig) -> TaskStateStore:
    state_dir = Path(config.paths.state_dir).expanduser()
    if not state_dir.is_absolute():
        state_dir = Path.cwd() / state_dir
    return TaskStateStore(state_dir)


def build_sandbox_manager(config: TeamflowConfig, git: GitClient) -> SandboxManager:
    return SandboxManager(git, Path(config.paths.worktrees_dir).expanduser())


def build_team_registry(config: TeamflowConfig) -> TeamRegistry:
    return TeamRegistry(search_dirs=[config.get_teams_dir()])
