"""Scan orchestration.

Provides:
- AgentRegistry and the stable agent-type enumeration
- Pure outcome aggregation and final status decision
- Orchestrator (parallel and sequential modes, cancellation, timeout)
"""

from .aggregation import ScanAggregate, aggregate_outcomes, decide_final_status, format_error
from .orchestrator import ORCHESTRATOR, Orchestrator
from .registry import (
    AGENT_TYPE_ALIASES,
    AGENT_TYPES,
    AgentRegistry,
    build_default_registry,
    canonical_agent_type,
)

__all__ = [
    "ScanAggregate",
    "aggregate_outcomes",
    "decide_final_status",
    "format_error",
    "ORCHESTRATOR",
    "Orchestrator",
    "AGENT_TYPE_ALIASES",
    "AGENT_TYPES",
    "AgentRegistry",
    "build_default_registry",
    "canonical_agent_type",
]
