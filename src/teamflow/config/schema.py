"""Configuration schema using Pydantic."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from teamflow.config.defaults import (
    DEFAULT_AGENT_BACKEND,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_STATE_DIR,
    DEFAULT_TEAM,
    DEFAULT_TOKEN_ENV,
    DEFAULT_WORKTREES_DIR,
    MAX_ITERATIONS_LIMIT,
)


class GlobalConfig(BaseModel):
    """Global teamflow configuration."""

    verbose: bool = False
    color: bool = True


class DefaultsConfig(BaseModel):
    """Defaults applied to `teamflow run` when options are omitted."""

    team: str = DEFAULT_TEAM
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=1, le=MAX_ITERATIONS_LIMIT)
    cleanup: bool = True
    base_branch: str | None = None


class PathsConfig(BaseModel):
    """Filesystem locations. Relative paths resolve against the working directory."""

    state_dir: Path = Path(DEFAULT_STATE_DIR)
    worktrees_dir: Path = Path(DEFAULT_WORKTREES_DIR)
    teams_dir: Path | None = None  # None means ~/.config/teamflow/teams


class AgentConfig(BaseModel):
    """Configuration for the agent backend running both roles."""

    backend: str = DEFAULT_AGENT_BACKEND
    model: str | None = None
    timeout: float | None = Field(default=None, gt=0)  # seconds per agent call
    skip_permissions: bool = True
    extra_args: dict[str, Any] = Field(default_factory=dict)


class GitHubSettings(BaseModel):
    """GitHub access used for completion detection."""

    token_env: str = DEFAULT_TOKEN_ENV
    base_url: str | None = None  # GitHub Enterprise API root


class MCPServerConfig(BaseModel):
    """A single MCP server, in the same shape the Claude CLI accepts."""

    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)


class TeamConfig(BaseModel):
    """Per-team settings."""

    mcps: list[str] = Field(default_factory=list)


class TeamflowConfig(BaseModel):
    """Root configuration model for teamflow."""

    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    mcp_servers: dict[str, MCPServerConfig] = Field(default_factory=dict)
    teams: dict[str, TeamConfig] = Field(default_factory=dict)

    @classmethod
    def default(cls) -> "TeamflowConfig":
        """Create default configuration."""
        return cls()

    def get_mcp_config_for_team(self, team_name: str) -> dict[str, Any] | None:
        """Build the MCP config for a team from the servers it enables.

        Returns None when the team enables no known servers.
        """
        team_config = self.teams.get(team_name)
        if team_config is None:
            return None

        servers = {
            name: self.mcp_servers[name].model_dump()
            for name in team_config.mcps
            if name in self.mcp_servers
        }
        if not servers:
            return None
        return {"mcpServers": servers}

    def get_teams_dir(self) -> Path:
        """Directory holding user team definitions."""
        if self.paths.teams_dir is not None:
            return self.paths.teams_dir.expanduser()
        return get_config_dir() / "teams"


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_dir = Path.home() / ".config" / "teamflow"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_file() -> Path:
    """Get the main configuration file path."""
    return get_config_dir() / "config.toml"
