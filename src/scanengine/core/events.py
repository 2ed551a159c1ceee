"""Event Channel between agents, the orchestrator and persistence.

Agents and the orchestrator never talk to persistence directly. They write
log entries, findings and status changes into an EventChannel, which forwards
each one to the caller-supplied sink exactly once. Sink delivery is
best-effort: a failing sink is logged and never raised back into the writer,
so it cannot corrupt orchestration state.

Provides:
- ScanSink: Protocol the caller implements for persistence
- EventChannel: Best-effort, per-scan writer over a sink
- ScanSnapshot: Presentation view rebuilt from persisted state
- MemorySink: In-process sink supporting the polling presentation pattern
"""

from typing import Any, Protocol, runtime_checkable

import structlog
from pydantic import BaseModel, Field

from scanengine.core.models import (
    AgentActivityLogEntry,
    Finding,
    LogStatus,
    ScanStatus,
    ScanStatusUpdate,
)

logger = structlog.get_logger()


@runtime_checkable
class ScanSink(Protocol):
    """Persistence capabilities the caller supplies for a scan.

    All methods may be called concurrently from several agents; none of them
    needs exclusive access to previously written entries.
    """

    async def persist_log(self, scan_id: str, entry: AgentActivityLogEntry) -> None:
        """Append an activity log entry."""
        ...

    async def persist_finding(self, finding: Finding) -> None:
        """Write a finding for the first time (placeholder enrichment)."""
        ...

    async def update_finding(self, finding: Finding) -> None:
        """Overwrite a finding's enrichment/remediation after enrichment."""
        ...

    async def persist_status(self, scan_id: str, update: ScanStatusUpdate) -> None:
        """Record a scan status transition with its timestamps."""
        ...


class EventChannel:
    """Per-scan writer that forwards events to a sink on a best-effort basis.

    Within one writer, events reach the sink in emission order because every
    emit awaits the sink call before returning. Across writers no order is
    implied.

    Args:
        scan_id: Scan the events belong to
        sink: Caller-supplied persistence sink
    """

    def __init__(self, scan_id: str, sink: ScanSink):
        self.scan_id = scan_id
        self.sink = sink
        self.logs_emitted = 0
        self.findings_emitted = 0
        self._logger = logger.bind(scan_id=scan_id)

    async def emit_log(self, entry: AgentActivityLogEntry) -> None:
        """Deliver a log entry. Never raises."""
        try:
            await self.sink.persist_log(self.scan_id, entry)
        except Exception as e:
            self._logger.warning("log_delivery_failed", agent=entry.agent_type, error=str(e))
            return
        self.logs_emitted += 1

    async def log(
        self,
        agent_type: str,
        message: str,
        status: LogStatus = LogStatus.RUNNING,
        /,
        **details: Any,
    ) -> AgentActivityLogEntry:
        """Build and deliver a log entry.

        Args:
            agent_type: Name of the writer
            message: Human-readable message
            status: Status tag for the entry
            **details: Structured detail payload. May itself carry keys such
                as agent_type, which stay in the payload.

        Returns:
            The entry that was emitted
        """
        entry = AgentActivityLogEntry(
            agent_type=agent_type,
            message=message,
            status=status,
            details=details,
        )
        await self.emit_log(entry)
        return entry

    async def publish_finding(self, finding: Finding) -> bool:
        """Deliver a finding's first write.

        Returns:
            True if the sink accepted the finding
        """
        try:
            await self.sink.persist_finding(finding)
        except Exception as e:
            self._logger.warning("finding_delivery_failed", finding_id=finding.id, error=str(e))
            return False
        self.findings_emitted += 1
        return True

    async def update_finding(self, finding: Finding) -> bool:
        """Deliver a finding's enrichment update."""
        try:
            await self.sink.update_finding(finding)
        except Exception as e:
            self._logger.warning("finding_update_failed", finding_id=finding.id, error=str(e))
            return False
        return True

    async def publish_status(self, update: ScanStatusUpdate) -> bool:
        """Deliver a status transition."""
        try:
            await self.sink.persist_status(self.scan_id, update)
        except Exception as e:
            self._logger.warning("status_delivery_failed", status=update.status.value, error=str(e))
            return False
        return True


class ScanSnapshot(BaseModel):
    """What a polling consumer sees for one scan at a point in time."""

    scan_id: str
    status: ScanStatus
    update: ScanStatusUpdate | None = None
    recent_logs: list[AgentActivityLogEntry] = Field(default_factory=list)
    findings: list[Finding] = Field(default_factory=list)


class MemorySink:
    """In-process sink that keeps everything it receives.

    The presentation side reads it with snapshot(); no subscription or session
    state is involved, every snapshot is rebuilt from the stored records.
    """

    def __init__(self):
        self.logs: dict[str, list[AgentActivityLogEntry]] = {}
        self.findings: dict[str, dict[str, Finding]] = {}
        self.status_updates: dict[str, list[ScanStatusUpdate]] = {}
        self.finding_updates = 0

    async def persist_log(self, scan_id: str, entry: AgentActivityLogEntry) -> None:
        self.logs.setdefault(scan_id, []).append(entry)

    async def persist_finding(self, finding: Finding) -> None:
        self.findings.setdefault(finding.scan_id, {})[finding.id] = finding

    async def update_finding(self, finding: Finding) -> None:
        self.findings.setdefault(finding.scan_id, {})[finding.id] = finding
        self.finding_updates += 1

    async def persist_status(self, scan_id: str, update: ScanStatusUpdate) -> None:
        self.status_updates.setdefault(scan_id, []).append(update)

    def current_status(self, scan_id: str) -> ScanStatus:
        updates = self.status_updates.get(scan_id)
        return updates[-1].status if updates else ScanStatus.PENDING

    def findings_for(self, scan_id: str) -> list[Finding]:
        return list(self.findings.get(scan_id, {}).values())

    def logs_for(self, scan_id: str) -> list[AgentActivityLogEntry]:
        """All log entries for a scan as a timestamp-sorted merge."""
        return sorted(self.logs.get(scan_id, []), key=lambda e: e.timestamp)

    def snapshot(self, scan_id: str, log_limit: int = 10) -> ScanSnapshot:
        """Rebuild the presentation view of a scan.

        Args:
            scan_id: Scan to read
            log_limit: Number of most recent log entries to include

        Returns:
            ScanSnapshot with current status, newest-first recent logs and
            the current finding set
        """
        updates = self.status_updates.get(scan_id)
        recent = sorted(
            self.logs.get(scan_id, []), key=lambda e: e.timestamp, reverse=True
        )[:log_limit]
        return ScanSnapshot(
            scan_id=scan_id,
            status=self.current_status(scan_id),
            update=updates[-1] if updates else None,
            recent_logs=recent,
            findings=self.findings_for(scan_id),
        )
