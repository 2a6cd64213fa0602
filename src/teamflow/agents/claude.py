"""Claude Code CLI agent runner."""

import json
from typing import Any

from teamflow.agents.base import BaseCLIAgent
from teamflow.agents.protocol import AgentCallResult


class ClaudeAgent(BaseCLIAgent):
    """Runner for the Anthropic Claude Code CLI.

    Claude CLI supports:
    - --print for non-interactive prompts (the prompt is read from stdin)
    - --output-format stream-json (requires --verbose) for one JSON message per line
    - --model for model selection
    - --mcp-config for MCP servers (accepts an inline JSON string)
    - --allowedTools and --dangerously-skip-permissions for tool permissions
    """

    def __init__(
        self,
        model: str | None = None,
        timeout: float | None = None,
        skip_permissions: bool = True,
        extra_args: dict[str, Any] | None = None,
    ):
        super().__init__(model=model, timeout=timeout, extra_args=extra_args)
        self.skip_permissions = skip_permissions

    @property
    def name(self) -> str:
        return "claude"

    @property
    def display_name(self) -> str:
        return "Claude Code"

    @property
    def cli_name(self) -> str:
        return "claude"

    def build_command(self, mcp_config: dict[str, Any] | None = None) -> list[str]:
        """Build the command line. The prompt is sent on stdin by the base runner."""
        cmd = [self.executable, "--print", "--output-format", "stream-json", "--verbose"]

        if self.model:
            cmd.extend(["--model", self.model])

        if mcp_config:
            cmd.extend(["--mcp-config", json.dumps(mcp_config)])

        max_turns = self.extra_args.get("max_turns")
        if max_turns:
            cmd.extend(["--max-turns", str(max_turns)])

        allowed_tools = self.extra_args.get("allowedTools")
        if allowed_tools is None:
            allowed_tools = self.extra_args.get("allowed_tools")
        if allowed_tools:
            if isinstance(allowed_tools, (list, tuple, set)):
                allowed_tools_value = ",".join(str(tool) for tool in allowed_tools)
            else:
                allowed_tools_value = str(allowed_tools)
            cmd.extend(["--allowedTools", allowed_tools_value])

        if self.skip_permissions:
            cmd.append("--dangerously-skip-permissions")

        return cmd

    def parse_output(self, stdout: str, stderr: str, return_code: int) -> AgentCallResult:
        messages: list[dict[str, Any]] = []
        final_response = ""
        cost = 0.0
        reported_error = False
        result_text: str | None = None

        for line in stdout.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                message = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(message, dict):
                continue

            messages.append(message)
            message_type = message.get("type")

            if message_type == "assistant":
                text = extract_message_text(message)
                if text:
                    final_response = text
            elif message_type == "result":
                cost = float(message.get("total_cost_usd") or 0.0)
                reported_error = bool(message.get("is_error"))
                result_text = message.get("result")

        if return_code != 0:
            return AgentCallResult(
                success=False,
                messages=messages,
                final_response=final_response,
                cost=cost,
                error=stderr.strip() or f"Command failed with code {return_code}",
            )

        if reported_error:
            return AgentCallResult(
                success=False,
                messages=messages,
                final_response=final_response,
                cost=cost,
                error=result_text or "Claude reported an error result",
            )

        if not final_response:
            # Plain-text output or a result message without assistant turns
            final_response = result_text or ("" if messages else stdout.strip())

        return AgentCallResult(
            success=True,
            messages=messages,
            final_response=final_response,
            cost=cost,
        )


def extract_message_text(message: dict[str, Any]) -> str:
    """Concatenate the text blocks of an assistant message."""
    content = (message.get("message") or {}).get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            block["text"]
            for block in content
            if isinstance(block, dict)
            and block.get("type") == "text"
            and isinstance(block.get("text"), str)
        )
    return ""
