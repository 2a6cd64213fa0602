"""Agent registry for discovering agent runner backends."""

import logging
from importlib.metadata import entry_points
from typing import Any, Type

from teamflow.agents.protocol import AgentRunner
from teamflow.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "teamflow.agents"


class AgentRegistry:
    """Discovers and instantiates agent runners.

    Runners are discovered from:
    1. Built-in runners (claude)
    2. Entry points in the ``teamflow.agents`` group (third-party packages)
    """

    _runner_classes: dict[str, Type[AgentRunner]] = {}
    _initialized: bool = False

    @classmethod
    def initialize(cls) -> None:
        """Initialize the registry by discovering all runners."""
        if cls._initialized:
            return

        cls._runner_classes.clear()
        cls._load_builtin_agents()
        cls._load_entrypoint_agents()
        cls._initialized = True

    @classmethod
    def _load_builtin_agents(cls) -> None:
        from teamflow.agents.claude import ClaudeAgent

        cls._runner_classes["claude"] = ClaudeAgent

    @classmethod
    def _load_entrypoint_agents(cls) -> None:
        for ep in entry_points(group=ENTRY_POINT_GROUP):
            try:
                runner_class = ep.load()
            except Exception as e:
                # Log but don't fail on bad plugins
                logger.warning("Failed to load agent plugin %s: %s", ep.name, e)
                continue

            if not (isinstance(runner_class, type) and issubclass(runner_class, AgentRunner)):
                logger.warning("Agent plugin %s is not an AgentRunner subclass, skipping", ep.name)
                continue
            cls._runner_classes[ep.name] = runner_class

    @classmethod
    def create(cls, name: str, **options: Any) -> AgentRunner:
        """Instantiate the runner registered under `name`.

        Raises:
            ConfigurationError: No runner with that name.
        """
        cls._ensure_initialized()
        runner_class = cls._runner_classes.get(name)
        if runner_class is None:
            available = ", ".join(sorted(cls._runner_classes)) or "(none)"
            raise ConfigurationError(f"Unknown agent backend '{name}'. Available: {available}")
        return runner_class(**options)

    @classmethod
    def get_names(cls) -> list[str]:
        """Get names of all registered runners."""
        cls._ensure_initialized()
        return sorted(cls._runner_classes)

    @classmethod
    def _ensure_initialized(cls) -> None:
        if not cls._initialized:
            cls.initialize()

    @classmethod
    def register(cls, name: str, runner_class: Type[AgentRunner]) -> None:
        """Manually register a runner class.

        Useful for testing or programmatic registration.
        """
        cls._ensure_initialized()
        cls._runner_classes[name] = runner_class
