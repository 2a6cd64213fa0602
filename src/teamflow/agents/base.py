"""Base implementation for CLI-backed agent runners."""

import asyncio
import logging
import shutil
import time
from abc import abstractmethod
from pathlib import Path
from typing import Any

from teamflow.agents.protocol import AgentCallResult, AgentRunner

logger = logging.getLogger(__name__)


class BaseCLIAgent(AgentRunner):
    """Runs an agent CLI as a subprocess and parses its output.

    Args:
        model: Optional model override passed to the CLI.
        timeout: Per-call deadline in seconds. None waits indefinitely.
        extra_args: Backend-specific options.
    """

    def __init__(
        self,
        model: str | None = None,
        timeout: float | None = None,
        extra_args: dict[str, Any] | None = None,
    ):
        self.model = model
        self.timeout = timeout
        self.extra_args = extra_args or {}
        self._executable_cache: str | None = None

    @property
    def executable(self) -> str:
        """Get the executable path, caching the result."""
        if self._executable_cache is None:
            self._executable_cache = shutil.which(self.cli_name) or self.cli_name
        return self._executable_cache

    @property
    @abstractmethod
    def cli_name(self) -> str:
        """The CLI command name to look up (e.g., 'claude')."""
        ...

    @abstractmethod
    def build_command(self, mcp_config: dict[str, Any] | None = None) -> list[str]:
        """Build the CLI command to execute. The prompt is written to stdin."""
        ...

    @abstractmethod
    def parse_output(self, stdout: str, stderr: str, return_code: int) -> AgentCallResult:
        """Parse CLI output into a normalized result (duration is filled in later)."""
        ...

    def is_available(self) -> bool:
        """Check if the CLI is available on the system."""
        return shutil.which(self.cli_name) is not None

    async def run(
        self,
        prompt: str,
        cwd: Path,
        mcp_config: dict[str, Any] | None = None,
    ) -> AgentCallResult:
        """Execute the CLI in `cwd` using an asyncio subprocess."""
        cmd = self.build_command(mcp_config)
        logger.debug("Running %s agent in %s", self.name, cwd)
        started = time.monotonic()

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(cwd),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            return AgentCallResult(
                success=False,
                error=f"CLI '{self.cli_name}' not found. Is it installed?",
                duration=time.monotonic() - started,
            )

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(prompt.encode("utf-8")), timeout=self.timeout
            )
        except asyncio.CancelledError:
            proc.kill()
            await proc.wait()
            raise
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return AgentCallResult(
                success=False,
                error=f"{self.display_name} timed out after {self.timeout}s",
                duration=time.monotonic() - started,
            )

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        result = self.parse_output(stdout, stderr, proc.returncode or 0)
        result.duration = time.monotonic() - started
        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} available={self.is_available()}>"
