"""AI provider implementations."""

from wine_value.services.ai.providers.anthropic import AnthropicAgentClient

__all__ = ["AnthropicAgentClient"]
