"""Agent runners for the coder and reviewer roles."""

from teamflow.agents.protocol import AgentCallResult, AgentRunner
from teamflow.agents.registry import AgentRegistry

__all__ = ["AgentCallResult", "AgentRegistry", "AgentRunner"]
