"""Core scan engine functionality.

Provides:
- Engine configuration and error taxonomy
- Scan data model and lifecycle state machine
- Cooperative cancellation token
- Event Channel with the sink protocol and in-memory reference sink
- CVSS severity calculation
"""

from .cancellation import CancellationToken
from .config import Config, ExecutionMode, load_config
from .errors import (
    AgentExecutionError,
    ConfigurationError,
    EnrichmentError,
    InvalidTransitionError,
    NoAgentTypesError,
    ScanCancelledError,
    ScanEngineError,
    UnknownAgentTypeError,
)
from .events import EventChannel, MemorySink, ScanSink, ScanSnapshot
from .lifecycle import ALLOWED_TRANSITIONS, ScanLifecycle
from .models import (
    AgentActivityLogEntry,
    AgentOutcome,
    AIReasoning,
    EnrichmentStatus,
    Finding,
    FindingDraft,
    FindingState,
    LogStatus,
    Remediation,
    ScanOutcome,
    ScanStatus,
    ScanStatusUpdate,
    Severity,
)
from .severity import calculate_severity, cvss_defaults, score_for, severity_label

__all__ = [
    "CancellationToken",
    "Config",
    "ExecutionMode",
    "load_config",
    "AgentExecutionError",
    "ConfigurationError",
    "EnrichmentError",
    "InvalidTransitionError",
    "NoAgentTypesError",
    "ScanCancelledError",
    "ScanEngineError",
    "UnknownAgentTypeError",
    "EventChannel",
    "MemorySink",
    "ScanSink",
    "ScanSnapshot",
    "ALLOWED_TRANSITIONS",
    "ScanLifecycle",
    "AgentActivityLogEntry",
    "AgentOutcome",
    "AIReasoning",
    "EnrichmentStatus",
    "Finding",
    "FindingDraft",
    "FindingState",
    "LogStatus",
    "Remediation",
    "ScanOutcome",
    "ScanStatus",
    "ScanStatusUpdate",
    "Severity",
    "calculate_severity",
    "cvss_defaults",
    "score_for",
    "severity_label",
]
