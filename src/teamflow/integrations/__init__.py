"""External service integrations."""

from teamflow.integrations.github import (
    CompletionDetector,
    GitHubCompletionDetector,
    GitHubConfig,
    parse_github_url,
)

__all__ = ["CompletionDetector", "GitHubCompletionDetector", "GitHubConfig", "parse_github_url"]
