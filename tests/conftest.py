"""Pytest configuration and fixtures."""

import pytest

from teamflow.agents.registry import AgentRegistry
from teamflow.config.manager import ConfigManager
from teamflow.output.formatter import reset_formatter


@pytest.fixture(autouse=True)
def reset_registry():
    """Reset the agent registry before each test."""
    AgentRegistry._initialized = False
    AgentRegistry._runner_classes.clear()
    yield


@pytest.fixture(autouse=True)
def reset_config():
    """Drop cached configuration and the global formatter between tests."""
    ConfigManager.reset()
    reset_formatter()
    yield
    ConfigManager.reset()
    reset_formatter()


@pytest.fixture
def mock_claude_available(monkeypatch):
    """Mock the claude CLI as available."""
    import shutil
    original = shutil.which

    def mock_which(name):
        if name == "claude":
            return "/usr/local/bin/claude"
        return original(name)

    monkeypatch.setattr(shutil, "which", mock_which)
