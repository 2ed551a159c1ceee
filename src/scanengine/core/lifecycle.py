"""Scan lifecycle state machine.

PENDING -> RUNNING -> COMPLETED | FAILED | CANCELLED

A scan may also fail or be cancelled straight from PENDING (configuration
errors, cancellation before start). Terminal states never change again, and
``completed_at`` is stamped exactly once, on the terminal transition.

Provides:
- ALLOWED_TRANSITIONS: Transition table
- ScanLifecycle: Drives one scan's status and timing
"""

import time
from datetime import datetime
from typing import Callable

import structlog

from scanengine.core.errors import InvalidTransitionError
from scanengine.core.models import ScanStatus, ScanStatusUpdate, utcnow

logger = structlog.get_logger()

ALLOWED_TRANSITIONS: dict[ScanStatus, frozenset[ScanStatus]] = {
    ScanStatus.PENDING: frozenset(
        {ScanStatus.RUNNING, ScanStatus.FAILED, ScanStatus.CANCELLED}
    ),
    ScanStatus.RUNNING: frozenset(
        {ScanStatus.COMPLETED, ScanStatus.FAILED, ScanStatus.CANCELLED}
    ),
    ScanStatus.COMPLETED: frozenset(),
    ScanStatus.FAILED: frozenset(),
    ScanStatus.CANCELLED: frozenset(),
}


class ScanLifecycle:
    """Tracks the status and timing of a single scan.

    Duration is wall-clock time between the RUNNING transition and the
    terminal transition, measured with a monotonic clock. A scan that never
    ran records a duration of zero.

    Args:
        scan_id: Scan identifier (for logging)
        clock: Monotonic clock, injectable for tests
    """

    def __init__(self, scan_id: str, clock: Callable[[], float] = time.monotonic):
        self.scan_id = scan_id
        self.status = ScanStatus.PENDING
        self.started_at: datetime | None = None
        self.completed_at: datetime | None = None
        self.duration_seconds: float | None = None
        self.error_message: str | None = None
        self._clock = clock
        self._started_monotonic: float | None = None
        self.log = logger.bind(scan_id=scan_id)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def can_transition(self, new_status: ScanStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS[self.status]

    def transition(
        self,
        new_status: ScanStatus,
        *,
        findings_count: int = 0,
        error_message: str | None = None,
    ) -> ScanStatusUpdate:
        """Move the scan to a new status.

        Args:
            new_status: Target status
            findings_count: Aggregate finding count to report with the update
            error_message: Reason recorded on FAILED/CANCELLED transitions

        Returns:
            ScanStatusUpdate describing the new state, ready for the sink

        Raises:
            InvalidTransitionError: If the transition table forbids the move
        """
        if not self.can_transition(new_status):
            raise InvalidTransitionError(self.status.value, new_status.value)

        if new_status == ScanStatus.RUNNING:
            self.started_at = utcnow()
            self._started_monotonic = self._clock()
        elif new_status.is_terminal:
            self.completed_at = utcnow()
            if self._started_monotonic is None:
                self.duration_seconds = 0.0
            else:
                self.duration_seconds = max(0.0, self._clock() - self._started_monotonic)
            if error_message:
                self.error_message = error_message

        self.log.info(
            "scan_status_changed",
            previous=self.status.value,
            status=new_status.value,
        )
        self.status = new_status
        return self.snapshot(findings_count=findings_count)

    def snapshot(self, findings_count: int = 0) -> ScanStatusUpdate:
        return ScanStatusUpdate(
            status=self.status,
            started_at=self.started_at,
            completed_at=self.completed_at,
            duration_seconds=self.duration_seconds,
            findings_count=findings_count,
            error_message=self.error_message,
        )
