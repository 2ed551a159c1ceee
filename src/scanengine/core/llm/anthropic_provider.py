"""Anthropic provider backing the enrichment service."""

import os

from anthropic import AsyncAnthropic

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

ANALYST_SYSTEM_PROMPT = (
    "You are a security analyst reviewing findings from an authorized assessment. "
    "Answer only with the JSON object requested."
)


class AnthropicProvider:
    """LLMProvider over the Anthropic Messages API.

    Enrichment calls are short, single-turn and expected to return JSON, so
    every request carries the analyst system prompt and runs at temperature 0.

    Args:
        api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
        model: Default model for completions
        request_timeout: SDK-level timeout per request in seconds
        max_retries: SDK retries on rate limits and transient errors

    Raises:
        ValueError: If no API key is available
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        request_timeout: float = 60.0,
        max_retries: int = 2,
    ):
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY environment variable not set and no api_key provided"
            )
        self.default_model = model
        self.client = AsyncAnthropic(
            api_key=self.api_key, timeout=request_timeout, max_retries=max_retries
        )

    async def complete(
        self,
        messages: list[dict],
        model: str | None = None,
        max_tokens: int = 2048,
    ) -> dict:
        """Send one Messages API request.

        Returns:
            Dict with 'content' text blocks, 'stop_reason' and token 'usage'
        """
        response = await self.client.messages.create(
            model=model or self.default_model,
            system=ANALYST_SYSTEM_PROMPT,
            messages=messages,
            max_tokens=max_tokens,
            temperature=0,
        )
        return {
            "id": response.id,
            "model": response.model,
            "content": [
                {"type": block.type, "text": getattr(block, "text", None)}
                for block in response.content
            ],
            "stop_reason": response.stop_reason,
            "usage": {
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
        }
