"""Data model for scans, activity logs and findings.

Every record that crosses the Event Channel is a pydantic model so sinks can
serialize it with ``model_dump(mode="json")`` without knowing its shape.

Provides:
- Severity, FindingState, ScanStatus, LogStatus, EnrichmentStatus: Enums
- AgentActivityLogEntry: Immutable activity log observation
- FindingDraft: What an agent reports
- AIReasoning, Remediation: Mutable enrichment blocks of a finding
- Finding: Full finding with placeholder enrichment
- ScanStatusUpdate: Status change pushed to persistence
- AgentOutcome, ScanOutcome: Per-agent and per-scan results
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Severity(str, Enum):
    """Finding impact level."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class FindingState(str, Enum):
    """Disposition of a finding."""

    NEW = "new"
    CONFIRMED = "confirmed"
    FALSE_POSITIVE = "false_positive"
    REMEDIATED = "remediated"
    ACCEPTED_RISK = "accepted_risk"


class ScanStatus(str, Enum):
    """Scan lifecycle states.

    PENDING -> RUNNING -> one of COMPLETED / FAILED / CANCELLED.
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStatus.COMPLETED, ScanStatus.FAILED, ScanStatus.CANCELLED)


class LogStatus(str, Enum):
    """Status tag of an activity log entry."""

    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class EnrichmentStatus(str, Enum):
    """How far enrichment got for a finding."""

    PENDING = "pending"
    ENRICHED = "enriched"
    PARTIAL = "partial"
    FALLBACK = "fallback"


class AgentActivityLogEntry(BaseModel):
    """Append-only observation emitted by an agent or the orchestrator.

    Attributes:
        agent_type: Name of the originating agent (or "Orchestrator")
        message: Free-text message
        status: running / completed / error
        details: Structured detail payload
        timestamp: When the entry was created
    """

    model_config = ConfigDict(frozen=True)

    agent_type: str
    message: str
    status: LogStatus
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)


class FindingDraft(BaseModel):
    """Finding as reported by an agent, before enrichment placeholders exist."""

    title: str
    description: str
    severity: Severity
    affected_asset: str
    evidence: dict[str, Any] = Field(default_factory=dict)
    cvss_score: float | None = Field(default=None, ge=0.0, le=10.0)
    cwe_id: str | None = None


class AIReasoning(BaseModel):
    """Enrichment block: why the finding matters and how sure we are."""

    reasoning_chain: list[str] = Field(default_factory=list)
    confidence_score: int | None = Field(default=None, ge=0, le=100)
    alternative_hypotheses: list[str] = Field(default_factory=list)
    assessed_severity: Severity | None = None
    exploitability: str | None = None
    false_positive_likelihood: int | None = Field(default=None, ge=0, le=100)


class Remediation(BaseModel):
    """Remediation block: how to fix the finding."""

    steps: list[str] = Field(default_factory=list)
    code_examples: list[str] = Field(default_factory=list)
    estimated_effort: str | None = None
    priority: str | None = None
    verification_steps: list[str] = Field(default_factory=list)


class Finding(BaseModel):
    """Security finding with mutable enrichment and remediation blocks.

    The first write of a finding always carries the empty placeholder blocks;
    an enrichment worker may later replace them with a single update write.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    scan_id: str
    title: str
    description: str
    severity: Severity
    affected_asset: str
    evidence: dict[str, Any] = Field(default_factory=dict)
    cvss_score: float | None = Field(default=None, ge=0.0, le=10.0)
    cwe_id: str | None = None
    ai_reasoning: AIReasoning = Field(default_factory=AIReasoning)
    remediation: Remediation = Field(default_factory=Remediation)
    enrichment_status: EnrichmentStatus = EnrichmentStatus.PENDING
    state: FindingState = FindingState.NEW
    discovered_by_agent: str
    discovered_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_draft(cls, draft: FindingDraft, scan_id: str, discovered_by_agent: str) -> "Finding":
        """Build a full finding with placeholder enrichment from an agent's draft.

        Args:
            draft: Finding as reported by the agent
            scan_id: Scan the finding belongs to
            discovered_by_agent: Display name of the reporting agent

        Returns:
            Finding in state NEW with enrichment status PENDING
        """
        return cls(
            scan_id=scan_id,
            discovered_by_agent=discovered_by_agent,
            **draft.model_dump(),
        )


class ScanStatusUpdate(BaseModel):
    """Status change handed to the sink's persist_status."""

    status: ScanStatus
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_seconds: float | None = None
    findings_count: int = 0
    error_message: str | None = None


class AgentOutcome(BaseModel):
    """Result of one agent's execution, consumed by the aggregation step."""

    agent_type: str
    success: bool
    findings_count: int = 0
    error: str | None = None
    cancelled: bool = False


class ScanOutcome(BaseModel):
    """Aggregate result returned by Orchestrator.run."""

    scan_id: str
    success: bool
    status: ScanStatus
    error: str | None = None
    agent_outcomes: list[AgentOutcome] = Field(default_factory=list)
    total_findings: int = 0
    duration_seconds: float = 0.0
