"""Error taxonomy for scan orchestration.

Only configuration errors and "no agent succeeded" are fatal to a scan.
Agent and enrichment errors are contained where they occur.

Provides:
- ScanEngineError: Base class for all engine errors
- ConfigurationError, NoAgentTypesError, UnknownAgentTypeError
- AgentExecutionError: An agent failed mid-execution
- EnrichmentError: Enrichment service failure (always non-fatal)
- InvalidTransitionError: Illegal scan lifecycle transition
- ScanCancelledError: Raised at agent checkpoints once a scan is cancelled
"""


class ScanEngineError(Exception):
    """Base class for scan engine errors."""


class ConfigurationError(ScanEngineError):
    """Scan request is unusable before any agent runs."""


class NoAgentTypesError(ConfigurationError):
    """No agent types were supplied for the scan."""

    def __init__(self):
        super().__init__("No scan types provided")


class UnknownAgentTypeError(ConfigurationError):
    """Requested agent type has no registered agent."""

    def __init__(self, agent_type: str):
        self.agent_type = agent_type
        super().__init__(f"No agent found for type: {agent_type}")


class AgentExecutionError(ScanEngineError):
    """An agent raised while executing.

    Attributes:
        agent_type: Registry identifier of the failing agent
        cause: Original exception
    """

    def __init__(self, agent_type: str, cause: BaseException):
        self.agent_type = agent_type
        self.cause = cause
        super().__init__(f"{agent_type} agent failed: {cause}")


class EnrichmentError(ScanEngineError):
    """Enrichment service call failed or returned unusable data."""


class InvalidTransitionError(ScanEngineError):
    """Scan status change not allowed by the lifecycle state machine."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot transition scan from {current} to {requested}")


class ScanCancelledError(ScanEngineError):
    """Scan was cancelled; raised cooperatively at agent checkpoints."""

    def __init__(self, reason: str = "Scan cancelled"):
        self.reason = reason
        super().__init__(reason)
