"""Default configuration values."""

DEFAULT_TEAM = "standard"

# Accepted range for max_iterations is 1..MAX_ITERATIONS_LIMIT
DEFAULT_MAX_ITERATIONS = 3
MAX_ITERATIONS_LIMIT = 10

# Task state files live in the repository, sandboxes next to it
DEFAULT_STATE_DIR = ".teamflow"
DEFAULT_WORKTREES_DIR = "../.teamflow-worktrees"

DEFAULT_BRANCH_PREFIX = "teamflow"

DEFAULT_AGENT_BACKEND = "claude"

DEFAULT_TOKEN_ENV = "GITHUB_TOKEN"

PROJECT_CONFIG_FILENAME = ".teamflow.toml"
