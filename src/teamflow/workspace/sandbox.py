"""Per-task git worktree sandboxes.

Each task gets its own worktree at ``<worktrees_dir>/<task_id>`` on a fresh
branch, so agents can edit, commit and push without touching the caller's
working directory.
"""

import logging
from pathlib import Path

from teamflow.errors import (
    GitCommandError,
    GitRepositoryNotFoundError,
    WorktreeCleanupError,
    WorktreeCreationError,
)
from teamflow.orchestration.models import WorktreeInfo
from teamflow.orchestration.state import default_branch_name
from teamflow.workspace.git import GitClient

logger = logging.getLogger(__name__)

# Used when the repository is on a detached HEAD
DETACHED_BASE = "HEAD"


class SandboxManager:
    """Creates, lists and tears down task worktrees."""

    def __init__(self, git: GitClient, worktrees_dir: Path):
        self.git = git
        self.worktrees_dir = Path(worktrees_dir)

    @property
    def root(self) -> Path:
        """Absolute sandbox root, resolved against the repository directory."""
        base = self.git.cwd or Path.cwd()
        return (base / self.worktrees_dir).resolve()

    def path_for(self, task_id: str) -> Path:
        return self.root / task_id

    def create(
        self,
        task_id: str,
        branch_name: str | None = None,
        base_branch: str | None = None,
    ) -> WorktreeInfo:
        """Create a worktree on a new branch off the base branch.

        Raises:
            GitRepositoryNotFoundError: Not inside a git repository.
            WorktreeCreationError: git refused to create the worktree
                (for example the branch already exists).
        """
        if not self.git.is_repository():
            raise GitRepositoryNotFoundError(str(self.git.cwd or Path.cwd()))

        try:
            base = base_branch or self.git.current_branch() or DETACHED_BASE
            branch = branch_name or default_branch_name(task_id)
            path = self.path_for(task_id)
            path.parent.mkdir(parents=True, exist_ok=True)

            self.git.create_worktree(str(path), branch, base)
        except GitCommandError as e:
            raise WorktreeCreationError(str(e)) from e
        except OSError as e:
            raise WorktreeCreationError(f"Cannot prepare sandbox directory: {e}") from e

        logger.info("Created worktree %s on branch %s (base %s)", path, branch, base)
        return WorktreeInfo(path=str(path), branch_name=branch, base_branch=base)

    def cleanup(self, worktree: WorktreeInfo) -> None:
        """Remove the worktree, then force-delete its branch.

        Both steps are always attempted. A branch that no longer exists is
        not an error. Anything else is collected and raised together.

        Raises:
            WorktreeCleanupError: One or both steps failed.
        """
        failures: list[Exception] = []

        if worktree.path:
            try:
                self.git.remove_worktree(worktree.path)
            except GitCommandError:
                logger.debug("Plain worktree remove failed, retrying with --force")
                try:
                    self.git.remove_worktree(worktree.path, force=True)
                except GitCommandError as e:
                    failures.append(e)

        if worktree.branch_name:
            try:
                self.git.delete_branch(worktree.branch_name, force=True)
            except GitCommandError as e:
                if "not found" in e.stderr:
                    logger.debug("Branch %s already deleted", worktree.branch_name)
                else:
                    failures.append(e)

        if failures:
            raise WorktreeCleanupError(
                "; ".join(str(f).splitlines()[0] for f in failures),
                failures,
            )
        logger.info("Removed worktree %s", worktree.path or worktree.branch_name)

    def list(self) -> list[WorktreeInfo]:
        """Sandboxes currently registered with git under the sandbox root."""
        root = self.root
        sandboxes = []
        for entry in self.git.list_worktrees():
            path = Path(entry.path).resolve()
            if path.parent != root or entry.branch is None:
                continue
            sandboxes.append(WorktreeInfo(path=str(path), branch_name=entry.branch))
        return sandboxes
