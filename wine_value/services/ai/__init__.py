"""Language model services for Wine Value Finder."""

from wine_value.services.ai.client import AgentClient, AgentResult, AIProvider, get_agent_client

__all__ = [
    "AIProvider",
    "AgentClient",
    "AgentResult",
    "get_agent_client",
]
