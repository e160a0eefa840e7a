"""Search agent interface, provider factory and JSON salvage helpers."""

import json
import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

PAUSE_TURN = "pause_turn"

_FENCE_START = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_FENCE_END = re.compile(r"\n?```\s*$")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if present."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = _FENCE_START.sub("", stripped)
        stripped = _FENCE_END.sub("", stripped)
    return stripped.strip()


def parse_json_object(text: str) -> dict[str, Any] | None:
    """
    Parse the outermost ``{...}`` span of a text block.

    Args:
        text: A text block from the model, possibly wrapped in prose or fences.

    Returns:
        The parsed object, or None if there is no parseable object.
    """
    candidate = strip_code_fences(text)
    first_brace = candidate.find("{")
    last_brace = candidate.rfind("}")
    if first_brace == -1 or last_brace <= first_brace:
        return None
    try:
        parsed = json.loads(candidate[first_brace:last_brace + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json_object(text_blocks: list[str]) -> dict[str, Any] | None:
    """
    Find the final JSON answer in a list of agent text blocks.

    The last block is tried first; earlier blocks are tried in reverse order
    when the later ones hold no parseable object.

    Args:
        text_blocks: Text output of the agent, in emission order.

    Returns:
        The first object found scanning backwards, or None.
    """
    for block in reversed(text_blocks):
        parsed = parse_json_object(block)
        if parsed is not None:
            return parsed
    return None


class AIProvider(str, Enum):
    """Supported AI providers."""

    ANTHROPIC = "anthropic"


class AgentResult(BaseModel):
    """Result of a search agent run."""

    text_blocks: list[str] = Field(default_factory=list)
    stop_reason: str | None = None
    continuations: int = 0
    error_message: str | None = None

    @property
    def completed(self) -> bool:
        """True when the agent finished its turn without error."""
        return self.error_message is None and self.stop_reason != PAUSE_TURN

    @property
    def final_text(self) -> str:
        """All text output joined together."""
        return "\n".join(self.text_blocks)

    def json_answer(self) -> dict[str, Any] | None:
        """
        The salvaged JSON answer, or None if the run failed.

        A run still paused after its last continuation is salvaged anyway;
        the model often emits the answer before asking for another turn.
        """
        if self.error_message is not None:
            return None
        return extract_json_object(self.text_blocks)


class AgentClient(ABC):
    """Abstract base class for tool-using search agents."""

    provider: AIProvider
    model: str

    @abstractmethod
    async def run(
        self,
        prompt: str,
        *,
        max_searches: int,
        max_fetches: int = 0,
        allowed_domains: list[str] | None = None,
        user_location: dict[str, str] | None = None,
        max_tokens: int = 2048,
        timeout: float | None = None,
        max_continuations: int = 5,
        continuation_prompt: str = "Please continue and provide the JSON result.",
    ) -> AgentResult:
        """
        Run the agent with web-search (and optionally web-fetch) tools.

        Args:
            prompt: The task prompt.
            max_searches: Maximum web searches the agent may perform.
            max_fetches: Maximum page fetches (0 disables fetching).
            allowed_domains: Restrict tools to these domains.
            user_location: Approximate requester location for localized results.
            max_tokens: Output token budget per request.
            timeout: Per-request timeout in seconds.
            max_continuations: How often a paused turn is resumed.
            continuation_prompt: Message sent when resuming a paused turn.

        Returns:
            AgentResult with the text output; errors are reported, not raised.
        """
        pass


def get_agent_client(
    provider: AIProvider | str,
    api_key: str,
    model: str | None = None,
) -> AgentClient:
    """
    Factory function to get a search agent client for the specified provider.

    Args:
        provider: The AI provider to use.
        api_key: The API key for the provider.
        model: Optional model name override.

    Returns:
        An AgentClient instance for the specified provider.

    Raises:
        ValueError: If the provider is not supported.
    """
    if isinstance(provider, str):
        provider = AIProvider(provider.lower())

    if provider == AIProvider.ANTHROPIC:
        from wine_value.services.ai.providers.anthropic import AnthropicAgentClient

        return AnthropicAgentClient(api_key=api_key, model=model)
    raise ValueError(f"Unsupported AI provider: {provider}")
