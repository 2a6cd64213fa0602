"""GitHub client used to detect task completion.

A task is complete once an open pull request exists whose head is the task
branch. Lookups are plain reads and safe to repeat every iteration.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Protocol

from github import Auth, BadCredentialsException, Github, GithubException, UnknownObjectException
from github.PullRequest import PullRequest
from github.Repository import Repository

from teamflow.config.defaults import DEFAULT_TOKEN_ENV
from teamflow.errors import (
    ConfigurationError,
    GitCommandError,
    GitHubAPIError,
    GitHubAuthError,
    RepositoryNotFoundError,
)
from teamflow.orchestration.models import PRInfo
from teamflow.workspace.git import GitClient

logger = logging.getLogger(__name__)

_HTTPS_URL = re.compile(r"^https://(?:[^@/]+@)?(?P<host>[^/]+)/(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")
_SSH_URL = re.compile(r"^(?:ssh://)?git@(?P<host>[^:/]+)[:/](?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")


class CompletionDetector(Protocol):
    """Anything that can report the open pull request for a branch."""

    def find_open_pr(self, branch: str) -> PRInfo | None: ...


@dataclass
class GitHubConfig:
    """Repository coordinates and credentials for the detector."""

    token: str
    owner: str
    repo: str
    base_url: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @classmethod
    def from_environment(
        cls,
        git: GitClient,
        token_env: str = DEFAULT_TOKEN_ENV,
        base_url: str | None = None,
    ) -> "GitHubConfig":
        """Read the token from the environment and the repository from `origin`.

        Raises:
            GitHubAuthError: The token variable is unset or empty.
            ConfigurationError: The repository has no `origin` remote.
            RepositoryNotFoundError: `origin` does not point at a GitHub repository.
        """
        token = os.environ.get(token_env)
        if not token:
            raise GitHubAuthError(f"{token_env} environment variable not set")

        try:
            remote = git.remote_url("origin")
        except GitCommandError as e:
            raise ConfigurationError(f"Failed to read the origin remote: {e.stderr.strip()}") from e

        owner, repo = parse_github_url(remote)
        return cls(token=token, owner=owner, repo=repo, base_url=base_url)


def parse_github_url(url: str) -> tuple[str, str]:
    """Extract (owner, repo) from an HTTPS or SSH remote URL.

    Raises:
        RepositoryNotFoundError: The URL is not a recognizable repository URL.
    """
    url = url.strip()
    match = _HTTPS_URL.match(url) or _SSH_URL.match(url)
    if match is None:
        raise RepositoryNotFoundError(f"Not a valid GitHub repository URL: {url}")
    return match.group("owner"), match.group("repo")


def is_github_host(url: str) -> bool:
    """Whether a remote URL points at github.com."""
    match = _HTTPS_URL.match(url.strip()) or _SSH_URL.match(url.strip())
    return match is not None and match.group("host").lower() == "github.com"


class GitHubCompletionDetector:
    """Looks up pull requests for task branches via the GitHub API."""

    def __init__(self, config: GitHubConfig, client: Github | None = None):
        self.config = config
        if client is None:
            kwargs = {"auth": Auth.Token(config.token)}
            if config.base_url:
                kwargs["base_url"] = config.base_url
            client = Github(**kwargs)
        self.gh = client
        self._repo: Repository | None = None

    @property
    def repo(self) -> Repository:
        if self._repo is None:
            self._repo = self._call(lambda: self.gh.get_repo(self.config.full_name))
        return self._repo

    def find_open_pr(self, branch: str) -> PRInfo | None:
        """Get the open PR whose head is `branch`, if any."""
        head = f"{self.config.owner}:{branch}"

        def first_open() -> PullRequest | None:
            for pr in self.repo.get_pulls(state="open", head=head):
                return pr
            return None

        pr = self._call(first_open)
        if pr is None:
            logger.debug("No open PR for %s", head)
            return None
        logger.info("Found PR #%d for %s: %s", pr.number, head, pr.html_url)
        return to_pr_info(pr)

    def _call(self, fn):
        try:
            return fn()
        except BadCredentialsException as e:
            raise GitHubAuthError("Invalid GitHub token") from e
        except UnknownObjectException as e:
            raise RepositoryNotFoundError(self.config.full_name) from e
        except GithubException as e:
            message = e.data.get("message") if isinstance(e.data, dict) else None
            raise GitHubAPIError(message or "GitHub API request failed", e.status) from e


def to_pr_info(pr: PullRequest) -> PRInfo:
    return PRInfo(
        number=pr.number,
        title=pr.title,
        url=pr.html_url,
        state=pr.state,
        head_branch=pr.head.ref,
        base_branch=pr.base.ref,
    )
