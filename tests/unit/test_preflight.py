"""Tests for environment preflight checks"""
from unittest.mock import Mock

import pytest

from teamflow.errors import GitCommandError
from teamflow.preflight import validate_environment

VALID_TOKEN = "ghp_" + "a" * 36


@pytest.fixture
def git():
    client = Mock()
    client.is_repository.return_value = True
    client.remote_url.return_value = "git@github.com:acme/widgets.git"
    client.has_uncommitted_changes.return_value = False
    client.current_branch.return_value = "feature/base"
    return client


@pytest.fixture(autouse=True)
def token(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", VALID_TOKEN)


def test_clean_environment(git):
    agent = Mock()
    agent.is_available.return_value = True

    result = validate_environment(git, agent=agent)

    assert result.success
    assert result.errors == []
    assert result.warnings == []


def test_not_a_repository(git):
    git.is_repository.return_value = False

    result = validate_environment(git)

    assert not result.success
    assert result.errors == ["Not inside a git repository"]


def test_missing_origin(git):
    git.remote_url.side_effect = GitCommandError("git remote get-url origin", 2, "No such remote")

    result = validate_environment(git)

    assert "No 'origin' remote configured" in result.errors


def test_non_github_origin_is_warning(git):
    git.remote_url.return_value = "git@gitlab.com:acme/widgets.git"

    result = validate_environment(git)

    assert result.success
    assert any("GitHub" in w for w in result.warnings)


def test_missing_token(git, monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN")

    result = validate_environment(git)

    assert not result.success
    assert "GITHUB_TOKEN environment variable not set" in result.errors


def test_custom_token_variable(git, monkeypatch):
    monkeypatch.setenv("GH_PAT", VALID_TOKEN)
    monkeypatch.delenv("GITHUB_TOKEN")

    assert validate_environment(git, token_env="GH_PAT").success


def test_short_token_is_warning(git, monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "abc")

    result = validate_environment(git)

    assert result.success
    assert any("too short" in w for w in result.warnings)


def test_unavailable_agent(git):
    agent = Mock()
    agent.is_available.return_value = False
    agent.display_name = "Claude Code"

    result = validate_environment(git, agent=agent)

    assert "Claude Code CLI is not installed or not on PATH" in result.errors


def test_uncommitted_changes_warning(git):
    git.has_uncommitted_changes.return_value = True

    result = validate_environment(git)

    assert result.success
    assert any("uncommitted" in w for w in result.warnings)


@pytest.mark.parametrize("branch,expected", [
    ("", "detached HEAD"),
    ("main", "'main'"),
    ("master", "'master'"),
])
def test_branch_warnings(git, branch, expected):
    git.current_branch.return_value = branch

    result = validate_environment(git)

    assert result.success
    assert any(expected in w for w in result.warnings)
