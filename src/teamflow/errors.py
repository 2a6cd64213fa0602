"""Exception hierarchy for teamflow.

Every error raised by the library derives from :class:`TeamflowError`. The
orchestrator never lets these escape :meth:`TeamOrchestrator.orchestrate`;
they are converted into a failed ``TeamResult`` instead.
"""


class TeamflowError(Exception):
    """Base exception for all teamflow errors."""

    pass


# --- Configuration ---


class ConfigurationError(TeamflowError):
    """Invalid or missing configuration."""

    def __init__(self, message: str):
        super().__init__(f"Configuration error: {message}")


class GitHubAuthError(TeamflowError):
    """GitHub credentials are missing or rejected."""

    def __init__(self, message: str):
        super().__init__(f"GitHub authentication error: {message}")


class TeamNotFoundError(TeamflowError):
    """Requested team is not registered."""

    def __init__(self, team_name: str, available: list[str]):
        self.team_name = team_name
        self.available = available
        names = ", ".join(available) if available else "(none)"
        super().__init__(f'Team "{team_name}" not found. Available teams: {names}')


class TeamDefinitionError(TeamflowError):
    """A team definition file does not match the team contract."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid team definition {source}: {reason}")


# --- Preconditions ---


class SpecificationError(TeamflowError):
    """The specification source cannot be used."""

    pass


class SpecFileNotFoundError(SpecificationError):
    """Specification file does not exist."""

    def __init__(self, spec_path: str):
        self.spec_path = spec_path
        super().__init__(f"Specification file not found: {spec_path}")


class EmptySpecificationError(SpecificationError):
    """Specification exists but has no content."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"Specification is empty: {source}")


class PromptFormattingError(TeamflowError):
    """A prompt could not be built from its inputs."""

    pass


class GitRepositoryNotFoundError(TeamflowError):
    """Current directory is not inside a git repository."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Not in a git repository: {path}")


# --- Version control / sandbox ---


class GitCommandError(TeamflowError):
    """A git command exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int, stderr: str):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Git command failed: {command} (exit code: {exit_code})\n{stderr}")


class WorktreeCreationError(TeamflowError):
    """The task sandbox could not be provisioned."""

    def __init__(self, message: str):
        super().__init__(f"Worktree creation failed: {message}")


class WorktreeCleanupError(TeamflowError):
    """One or more sandbox teardown steps failed."""

    def __init__(self, message: str, failures: list[Exception] | None = None):
        self.failures = failures or []
        super().__init__(f"Worktree cleanup failed: {message}")


# --- State store ---


class StateManagementError(TeamflowError):
    """Task state could not be read or written."""

    def __init__(self, message: str):
        super().__init__(f"State management error: {message}")


class TaskNotFoundError(StateManagementError):
    """No persisted state exists for the task."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class StateParseError(StateManagementError):
    """Persisted state is not valid JSON."""

    def __init__(self, task_id: str, cause: Exception):
        self.task_id = task_id
        super().__init__(f"Failed to parse state for task {task_id}: {cause}")


class StateValidationError(StateManagementError):
    """Persisted state does not match the task state schema."""

    def __init__(self, message: str):
        super().__init__(f"Invalid task state: {message}")


class InvalidStatusTransitionError(StateManagementError):
    """Task status may only move from running to a terminal status."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change task status from {current} to {target}")


# --- Agents ---


class AgentExecutionError(TeamflowError):
    """An agent role failed to complete its step."""

    def __init__(self, message: str):
        super().__init__(f"Agent execution failed: {message}")


# --- GitHub ---


class GitHubAPIError(TeamflowError):
    """GitHub API request failed."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        suffix = f" (status: {status_code})" if status_code else ""
        super().__init__(f"GitHub API error: {message}{suffix}")


class RepositoryNotFoundError(TeamflowError):
    """Repository does not exist or is not accessible."""

    def __init__(self, repo: str):
        self.repo = repo
        super().__init__(f"Repository not found or not accessible: {repo}")
