"""Base agent contract shared by all concrete agents.

Provides:
- AgentContext: Explicit handle an agent receives for one execution
- BaseAgent: execute(context) contract plus log/report_finding helpers
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

import structlog

from scanengine.core.cancellation import CancellationToken
from scanengine.core.events import EventChannel
from scanengine.core.models import (
    AgentActivityLogEntry,
    Finding,
    FindingDraft,
    LogStatus,
)
from scanengine.enrichment import EnrichmentPool

logger = structlog.get_logger()


@dataclass
class AgentContext:
    """Everything an agent may touch during one execution.

    The orchestrator builds one context per agent, so ``findings_reported``
    counts exactly that agent's findings.

    Attributes:
        scan_id: Scan being executed
        agent_type: Registry identifier the agent was resolved under
        agent_name: Display name recorded on findings
        target: Scan target as supplied by the caller
        config: Read-only scan configuration
        channel: Event Channel of the scan
        enrichment: Pool for detached enrichment (None disables enrichment)
        cancellation: Shared cancellation token of the scan
        findings_reported: Findings emitted through this context so far
    """

    scan_id: str
    agent_type: str
    agent_name: str
    target: str
    config: Mapping[str, Any]
    channel: EventChannel
    cancellation: CancellationToken
    enrichment: EnrichmentPool | None = None
    findings_reported: int = 0

    def __post_init__(self):
        if not isinstance(self.config, MappingProxyType):
            self.config = MappingProxyType(dict(self.config))

    async def emit_log(self, entry: AgentActivityLogEntry) -> None:
        """Deliver an activity log entry. Never raises."""
        await self.channel.emit_log(entry)

    async def emit_finding(self, draft: FindingDraft) -> Finding:
        """Report a finding.

        Builds the full finding with placeholder enrichment, delivers its first
        write, then schedules enrichment without waiting for it.

        Args:
            draft: Finding as discovered by the agent

        Returns:
            The finding as first written
        """
        finding = Finding.from_draft(
            draft, scan_id=self.scan_id, discovered_by_agent=self.agent_name
        )
        self.findings_reported += 1
        delivered = await self.channel.publish_finding(finding)
        # enrichment only ever updates a finding whose first write landed
        if delivered and self.enrichment is not None:
            self.enrichment.submit(finding, self.channel)
        return finding

    async def checkpoint(self) -> None:
        """Cooperative cancellation point.

        Raises:
            ScanCancelledError: If the scan has been cancelled
        """
        self.cancellation.raise_if_cancelled()


class BaseAgent:
    """Base class for agents.

    Concrete agents differ only in technique. They implement execute(), emit
    progress through log(), report issues through report_finding(), and call
    ``context.checkpoint()`` between phases. Findings already reported stay
    reported even if the agent later raises.

    Args:
        name: Display name (recorded as the finding's discovering agent)
        description: One-line description for agent discovery
    """

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description
        self.logger = logger.bind(agent=self.__class__.__name__)

    async def execute(self, context: AgentContext) -> None:
        raise NotImplementedError

    async def log(
        self,
        context: AgentContext,
        message: str,
        status: LogStatus = LogStatus.RUNNING,
        /,
        **details: Any,
    ) -> None:
        """Emit an activity log entry attributed to this agent."""
        await context.emit_log(
            AgentActivityLogEntry(
                agent_type=self.name,
                message=message,
                status=status,
                details=details,
            )
        )

    async def report_finding(self, context: AgentContext, **fields: Any) -> Finding:
        """Validate a draft from keyword fields and emit it.

        Example:
            >>> await self.report_finding(
            ...     context,
            ...     title="Open MySQL Port (3306)",
            ...     description="MySQL is reachable from the internet",
            ...     severity="high",
            ...     affected_asset="example.com:3306",
            ...     evidence={"port": 3306},
            ... )
        """
        return await context.emit_finding(FindingDraft(**fields))

    def get_name(self) -> str:
        return self.name

    def get_description(self) -> str:
        return self.description
