"""LLM provider abstraction layer for the enrichment service.

Provides a protocol-based interface for LLM providers so the enrichment
pipeline never depends on a specific vendor SDK.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol defining the interface for LLM providers.

    Allows Anthropic, local models or test doubles to back the enrichment
    pipeline through the same call.
    """

    async def complete(
        self,
        messages: list[dict],
        model: str | None = None,
        max_tokens: int = 2048,
    ) -> dict:
        """Send a completion request to the LLM.

        Args:
            messages: List of message dicts with 'role' and 'content' keys
            model: Optional model override (uses provider default if None)
            max_tokens: Upper bound on generated tokens

        Returns:
            Response dict with 'content' blocks, 'stop_reason', 'usage', etc.
        """
        ...


class LLMClient:
    """Wrapper client that uses a provider for LLM operations."""

    def __init__(self, provider: LLMProvider):
        """Initialize the client with a provider.

        Args:
            provider: An instance implementing the LLMProvider protocol
        """
        self.provider = provider

    async def complete(
        self,
        messages: list[dict],
        model: str | None = None,
        max_tokens: int = 2048,
    ) -> dict:
        """Send a completion request via the provider."""
        return await self.provider.complete(messages, model=model, max_tokens=max_tokens)

    async def complete_text(self, prompt: str, max_tokens: int = 2048) -> str:
        """Send a single user prompt and return the concatenated text blocks.

        Args:
            prompt: User message content
            max_tokens: Upper bound on generated tokens

        Returns:
            Text of all 'text' content blocks joined together
        """
        response = await self.complete(
            [{"role": "user", "content": prompt}], max_tokens=max_tokens
        )
        return "".join(
            block.get("text") or ""
            for block in response.get("content", [])
            if block.get("type") == "text"
        )
