"""Thin synchronous wrapper around the git CLI."""

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path

from teamflow.errors import GitCommandError

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT = 60


@dataclass
class WorktreeEntry:
    """One entry of `git worktree list --porcelain`."""

    path: str
    branch: str | None = None
    head: str | None = None
    detached: bool = False
    bare: bool = False


class GitClient:
    """Runs git commands in a fixed working directory.

    Every non-zero exit is raised as GitCommandError carrying the command,
    exit code and stderr.
    """

    def __init__(self, cwd: Path | None = None, timeout: int = DEFAULT_GIT_TIMEOUT):
        self.cwd = Path(cwd) if cwd is not None else None
        self.timeout = timeout

    def run(self, *args: str) -> str:
        """Run `git <args>` and return stripped stdout."""
        cmd = ["git", *args]
        command = shlex.join(cmd)
        logger.debug("Running %s", command)

        try:
            result = subprocess.run(
                cmd,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError:
            raise GitCommandError(command, 127, "git executable not found") from None
        except subprocess.TimeoutExpired:
            raise GitCommandError(command, -1, f"timed out after {self.timeout}s") from None

        if result.returncode != 0:
            raise GitCommandError(command, result.returncode, result.stderr.strip())
        return result.stdout.strip()

    def is_repository(self) -> bool:
        try:
            self.run("rev-parse", "--git-dir")
            return True
        except GitCommandError:
            return False

    def current_branch(self) -> str:
        """Current branch name, empty string on a detached HEAD."""
        return self.run("branch", "--show-current")

    def create_worktree(self, path: str, new_branch: str, base_branch: str) -> None:
        self.run("worktree", "add", path, "-b", new_branch, base_branch)

    def remove_worktree(self, path: str, force: bool = False) -> None:
        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        args.append(path)
        self.run(*args)

    def delete_branch(self, name: str, force: bool = True) -> None:
        self.run("branch", "-D" if force else "-d", name)

    def list_worktrees(self) -> list[WorktreeEntry]:
        output = self.run("worktree", "list", "--porcelain")
        return parse_worktree_porcelain(output)

    def remote_url(self, name: str = "origin") -> str:
        return self.run("remote", "get-url", name)

    def has_uncommitted_changes(self) -> bool:
        return bool(self.run("status", "--porcelain"))


def parse_worktree_porcelain(output: str) -> list[WorktreeEntry]:
    """Parse the blank-line separated records of `git worktree list --porcelain`."""
    entries: list[WorktreeEntry] = []
    for block in output.split("\n\n"):
        lines = [line for line in block.splitlines() if line.strip()]
        if not lines:
            continue

        entry: WorktreeEntry | None = None
        for line in lines:
            key, _, value = line.partition(" ")
            if key == "worktree":
                entry = WorktreeEntry(path=value)
            elif entry is None:
                continue
            elif key == "HEAD":
                entry.head = value
            elif key == "branch":
                entry.branch = value.removeprefix("refs/heads/")
            elif key == "detached":
                entry.detached = True
            elif key == "bare":
                entry.bare = True

        if entry is not None:
            entries.append(entry)
    return entries
