"""Environment checks run before a task starts."""

import logging
import os
from dataclasses import dataclass, field

from teamflow.agents.protocol import AgentRunner
from teamflow.config.defaults import DEFAULT_TOKEN_ENV
from teamflow.errors import GitCommandError
from teamflow.integrations.github import is_github_host
from teamflow.workspace.git import GitClient

logger = logging.getLogger(__name__)

# Length of a classic personal access token
MIN_TOKEN_LENGTH = 40

PROTECTED_BRANCHES = ("main", "master")


@dataclass
class PreflightResult:
    """Outcome of the environment checks."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def validate_environment(
    git: GitClient,
    token_env: str = DEFAULT_TOKEN_ENV,
    agent: AgentRunner | None = None,
) -> PreflightResult:
    """Check that a task can run from the current repository.

    Errors block the run, warnings are only reported.
    """
    result = PreflightResult()

    if not git.is_repository():
        result.errors.append("Not inside a git repository")
        return result

    try:
        remote = git.remote_url("origin")
    except GitCommandError:
        result.errors.append("No 'origin' remote configured")
    else:
        if not is_github_host(remote):
            result.warnings.append(f"Origin does not look like a GitHub repository: {remote}")

    token = os.environ.get(token_env)
    if not token:
        result.errors.append(f"{token_env} environment variable not set")
    elif len(token) < MIN_TOKEN_LENGTH:
        result.warnings.append(f"{token_env} looks too short to be a valid token")

    if agent is not None and not agent.is_available():
        result.errors.append(f"{agent.display_name} CLI is not installed or not on PATH")

    try:
        if git.has_uncommitted_changes():
            result.warnings.append("Working tree has uncommitted changes; they will not be in the sandbox")
    except GitCommandError as e:
        logger.debug("Could not read git status: %s", e)

    try:
        branch = git.current_branch()
    except GitCommandError as e:
        logger.debug("Could not read current branch: %s", e)
    else:
        if not branch:
            result.warnings.append("Repository is on a detached HEAD")
        elif branch in PROTECTED_BRANCHES:
            result.warnings.append(f"Running from '{branch}'; pull requests will target it")

    return result
