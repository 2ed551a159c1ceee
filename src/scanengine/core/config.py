"""Configuration management for the scan engine.

Loads configuration from environment variables using Pydantic models.
Provides sensible defaults for all settings while allowing override via
environment.

Provides:
- ExecutionMode: parallel or sequential agent execution
- Config: Pydantic model with all engine settings
- load_config: Factory function to create Config instance
"""

import os
from enum import Enum

from pydantic import BaseModel, Field


class ExecutionMode(str, Enum):
    """How the orchestrator runs the selected agents."""

    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"


def _optional_float(name: str) -> float | None:
    value = os.getenv(name)
    return float(value) if value else None


class Config(BaseModel):
    """Engine configuration loaded from environment.

    Attributes:
        anthropic_api_key: API key for the enrichment service (empty = unconfigured)
        llm_model: Model identifier used for enrichment prompts
        execution_mode: Default orchestration mode
        scan_timeout_seconds: Per-scan timeout applied by run_with_timeout callers
        cancellation_grace_seconds: Time in-flight agents get to reach a checkpoint
            after cancellation before their tasks are abandoned
        enrichment_enabled: Whether findings are enriched at all
        enrichment_timeout_seconds: Timeout for each enrichment call
        max_concurrent_enrichments: Upper bound on simultaneous enrichment calls
        probe_timeout_seconds: Network timeout used by agent probes
    """

    # API Keys
    anthropic_api_key: str = Field(
        default_factory=lambda: os.getenv("ANTHROPIC_API_KEY", "")
    )

    # LLM Settings
    llm_model: str = Field(
        default_factory=lambda: os.getenv("SCANENGINE_LLM_MODEL", "claude-sonnet-4-5-20250929")
    )

    # Orchestration
    execution_mode: ExecutionMode = Field(
        default_factory=lambda: ExecutionMode(
            os.getenv("SCANENGINE_EXECUTION_MODE", ExecutionMode.PARALLEL.value)
        )
    )
    scan_timeout_seconds: float | None = Field(
        default_factory=lambda: _optional_float("SCANENGINE_SCAN_TIMEOUT")
    )
    cancellation_grace_seconds: float = Field(default=30.0, ge=0.0)

    # Enrichment
    enrichment_enabled: bool = Field(default=True)
    enrichment_timeout_seconds: float = Field(default=60.0, gt=0.0)
    max_concurrent_enrichments: int = Field(default=4, ge=1)

    # Agent probes
    probe_timeout_seconds: float = Field(default=5.0, gt=0.0)


def load_config() -> Config:
    """Load configuration from environment.

    Returns:
        Populated Config instance
    """
    return Config()
