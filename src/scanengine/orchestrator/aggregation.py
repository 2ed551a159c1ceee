"""Outcome aggregation and final status decision.

Both functions are pure: the orchestrator feeds them per-agent outcomes and a
cancellation flag, nothing else.
"""

from dataclasses import dataclass
from typing import Iterable

from scanengine.core.models import AgentOutcome, ScanStatus


@dataclass(frozen=True)
class ScanAggregate:
    """Counts and errors collected from every agent of one scan."""

    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0
    total_findings: int = 0
    errors: tuple[str, ...] = ()


def aggregate_outcomes(outcomes: Iterable[AgentOutcome]) -> ScanAggregate:
    """Fold per-agent outcomes into scan-level counts.

    Findings are totalled across successful agents. Cancelled agents are
    counted separately and do not contribute errors.
    """
    succeeded = failed = cancelled = total = 0
    errors = []
    for outcome in outcomes:
        if outcome.success:
            succeeded += 1
            total += outcome.findings_count
        elif outcome.cancelled:
            cancelled += 1
        else:
            failed += 1
            if outcome.error:
                errors.append(outcome.error)
    return ScanAggregate(
        succeeded=succeeded,
        failed=failed,
        cancelled=cancelled,
        total_findings=total,
        errors=tuple(errors),
    )


def decide_final_status(aggregate: ScanAggregate, cancelled: bool = False) -> ScanStatus:
    """Terminal status for a scan that ran.

    A single successful agent is enough for the scan to complete.

    Example:
        >>> decide_final_status(ScanAggregate(succeeded=1, failed=3))
        <ScanStatus.COMPLETED: 'completed'>
    """
    if cancelled:
        return ScanStatus.CANCELLED
    if aggregate.succeeded > 0:
        return ScanStatus.COMPLETED
    return ScanStatus.FAILED


def format_error(aggregate: ScanAggregate, cancel_reason: str | None = None) -> str | None:
    """Human-readable aggregate error naming every failed agent, or None.

    Args:
        aggregate: Folded agent outcomes
        cancel_reason: Set for cancelled scans; leads the message and is
            followed by any agent failures that happened before the stop
    """
    if cancel_reason is not None:
        return "; ".join((cancel_reason, *aggregate.errors))
    if not aggregate.errors:
        return None
    joined = "; ".join(aggregate.errors)
    if aggregate.succeeded > 0:
        return f"Partial success: {joined}"
    return joined
