"""Agent runner protocol - interface for agent runtimes driving a role."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class AgentCallResult:
    """Normalized result of one agent invocation."""

    success: bool
    messages: list[dict[str, Any]] = field(default_factory=list)
    final_response: str = ""
    cost: float = 0.0
    duration: float = 0.0  # seconds
    error: str | None = None


class AgentRunner(ABC):
    """Abstract base class for agent runtimes.

    Implement this protocol to drive the coder and reviewer roles with a
    different agent. Runners hold no state between calls.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this agent (e.g., 'claude')."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable name (e.g., 'Claude Code')."""
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the agent runtime is installed and usable."""
        ...

    @abstractmethod
    async def run(
        self,
        prompt: str,
        cwd: Path,
        mcp_config: dict[str, Any] | None = None,
    ) -> AgentCallResult:
        """Run the agent on a prompt inside a working directory.

        Args:
            prompt: Full prompt for the role.
            cwd: Directory the agent works in; all side effects stay there.
            mcp_config: Optional MCP server configuration
                (``{"mcpServers": {...}}``).

        Returns:
            AgentCallResult. Failures are reported with ``success=False``
            rather than raised.
        """
        ...
