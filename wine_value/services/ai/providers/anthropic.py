"""Anthropic (Claude) search agent implementation."""

import logging
from typing import Any

from wine_value.config import DEFAULT_MODEL
from wine_value.services.ai.client import (
    PAUSE_TURN,
    AgentClient,
    AgentResult,
    AIProvider,
)

logger = logging.getLogger(__name__)

WEB_SEARCH_TOOL = "web_search_20250305"
WEB_FETCH_TOOL = "web_fetch_20250910"
WEB_FETCH_BETA = "web-fetch-2025-09-10"


def build_tools(
    max_searches: int,
    max_fetches: int = 0,
    allowed_domains: list[str] | None = None,
    user_location: dict[str, str] | None = None,
) -> list[dict[str, Any]]:
    """
    Build the server-side tool definitions for a request.

    Args:
        max_searches: Search budget.
        max_fetches: Fetch budget; 0 leaves the fetch tool out.
        allowed_domains: Optional domain restriction applied to both tools.
        user_location: Optional approximate location for the search tool.

    Returns:
        List of tool definitions.
    """
    search_tool: dict[str, Any] = {
        "type": WEB_SEARCH_TOOL,
        "name": "web_search",
        "max_uses": max_searches,
    }
    if allowed_domains:
        search_tool["allowed_domains"] = list(allowed_domains)
    if user_location:
        search_tool["user_location"] = {"type": "approximate", **user_location}

    tools = [search_tool]
    if max_fetches > 0:
        fetch_tool: dict[str, Any] = {
            "type": WEB_FETCH_TOOL,
            "name": "web_fetch",
            "max_uses": max_fetches,
        }
        if allowed_domains:
            fetch_tool["allowed_domains"] = list(allowed_domains)
        tools.append(fetch_tool)
    return tools


class AnthropicAgentClient(AgentClient):
    """Claude with server-side web search and web fetch tools."""

    provider = AIProvider.ANTHROPIC

    def __init__(self, api_key: str, model: str | None = None, client: Any = None):
        """
        Initialize the Anthropic agent client.

        Args:
            api_key: Anthropic API key.
            model: Model name (defaults to claude-sonnet-4-20250514).
            client: Optional pre-built AsyncAnthropic client (used in tests).
        """
        if client is None:
            try:
                import anthropic
            except ImportError:
                raise ImportError(
                    "anthropic package is required. Install with: pip install anthropic"
                )
            client = anthropic.AsyncAnthropic(api_key=api_key)

        self.client = client
        self.model = model or DEFAULT_MODEL

    async def _create(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_tokens: int,
        timeout: float | None,
        use_fetch: bool,
    ) -> Any:
        """Send one Messages API request."""
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": messages,
            "tools": tools,
        }
        if timeout is not None:
            kwargs["timeout"] = timeout

        if use_fetch:
            return await self.client.beta.messages.create(betas=[WEB_FETCH_BETA], **kwargs)
        return await self.client.messages.create(**kwargs)

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
        Run Claude with web tools, resuming paused turns.

        A ``pause_turn`` stop reason means the server-side tool loop hit its
        iteration limit; the conversation is resent with the partial assistant
        turn and an explicit request for the final JSON.
        """
        tools = build_tools(max_searches, max_fetches, allowed_domains, user_location)
        use_fetch = max_fetches > 0
        messages: list[dict[str, Any]] = [{"role": "user", "content": prompt}]
        text_blocks: list[str] = []
        continuations = 0

        try:
            response = await self._create(messages, tools, max_tokens, timeout, use_fetch)
            text_blocks.extend(_text_of(response))

            while response.stop_reason == PAUSE_TURN and continuations < max_continuations:
                continuations += 1
                logger.info(f"Agent paused, continuing (attempt {continuations}/{max_continuations})")
                messages = [
                    {"role": "user", "content": prompt},
                    {"role": "assistant", "content": response.content},
                    {"role": "user", "content": continuation_prompt},
                ]
                response = await self._create(messages, tools, max_tokens, timeout, use_fetch)
                text_blocks.extend(_text_of(response))

        except Exception as e:
            logger.error(f"Anthropic API error: {e}")
            return AgentResult(
                text_blocks=text_blocks,
                continuations=continuations,
                error_message=f"API error: {str(e)}",
            )

        logger.debug(
            f"Agent finished: stop_reason={response.stop_reason}, "
            f"text_blocks={len(text_blocks)}, continuations={continuations}"
        )
        return AgentResult(
            text_blocks=text_blocks,
            stop_reason=response.stop_reason,
            continuations=continuations,
        )


def _text_of(response: Any) -> list[str]:
    """Collect the text blocks of a Messages API response."""
    return [
        block.text
        for block in response.content
        if getattr(block, "type", None) == "text" and getattr(block, "text", None)
    ]
