"""Reasoning-service client used by finding enrichment.

Provides:
- LLMProvider protocol and the LLMClient wrapper (complete / complete_text)
- AnthropicProvider backed by the Anthropic SDK
"""

from .anthropic_provider import AnthropicProvider
from .client import LLMClient, LLMProvider

__all__ = ["AnthropicProvider", "LLMClient", "LLMProvider"]
