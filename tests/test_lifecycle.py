"""Tests for the scan lifecycle state machine and cancellation token."""

import asyncio
from unittest.mock import MagicMock

import pytest

from scanengine.core.cancellation import CancellationToken
from scanengine.core.errors import InvalidTransitionError, ScanCancelledError
from scanengine.core.lifecycle import ALLOWED_TRANSITIONS, ScanLifecycle
from scanengine.core.models import ScanStatus


def test_initial_state_is_pending():
    lifecycle = ScanLifecycle("scan-1")
    assert lifecycle.status == ScanStatus.PENDING
    assert lifecycle.started_at is None
    assert lifecycle.completed_at is None
    assert not lifecycle.is_terminal


def test_running_then_completed_records_duration():
    """Duration is measured between RUNNING and the terminal transition."""
    clock = MagicMock(side_effect=[100.0, 112.5])
    lifecycle = ScanLifecycle("scan-1", clock=clock)

    running = lifecycle.transition(ScanStatus.RUNNING)
    assert running.status == ScanStatus.RUNNING
    assert running.started_at is not None
    assert running.completed_at is None

    done = lifecycle.transition(ScanStatus.COMPLETED, findings_count=3)
    assert done.status == ScanStatus.COMPLETED
    assert done.duration_seconds == pytest.approx(12.5)
    assert done.findings_count == 3
    assert done.completed_at >= done.started_at


@pytest.mark.parametrize("terminal", [ScanStatus.FAILED, ScanStatus.CANCELLED])
def test_duration_recorded_on_failure_and_cancellation(terminal):
    clock = MagicMock(side_effect=[5.0, 7.0])
    lifecycle = ScanLifecycle("scan-1", clock=clock)
    lifecycle.transition(ScanStatus.RUNNING)

    update = lifecycle.transition(terminal, error_message="boom")

    assert update.duration_seconds == pytest.approx(2.0)
    assert update.error_message == "boom"


def test_failing_from_pending_records_zero_duration():
    lifecycle = ScanLifecycle("scan-1")
    update = lifecycle.transition(ScanStatus.FAILED, error_message="No scan types provided")

    assert update.status == ScanStatus.FAILED
    assert update.started_at is None
    assert update.duration_seconds == 0.0
    assert update.completed_at is not None


@pytest.mark.parametrize(
    "terminal", [ScanStatus.COMPLETED, ScanStatus.FAILED, ScanStatus.CANCELLED]
)
def test_terminal_states_never_change(terminal):
    lifecycle = ScanLifecycle("scan-1")
    lifecycle.transition(ScanStatus.RUNNING)
    lifecycle.transition(terminal)

    for status in ScanStatus:
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition(status)
    assert lifecycle.status == terminal


def test_running_happens_only_once():
    lifecycle = ScanLifecycle("scan-1")
    lifecycle.transition(ScanStatus.RUNNING)

    with pytest.raises(InvalidTransitionError):
        lifecycle.transition(ScanStatus.RUNNING)


def test_pending_cannot_complete_without_running():
    lifecycle = ScanLifecycle("scan-1")
    assert not lifecycle.can_transition(ScanStatus.COMPLETED)
    with pytest.raises(InvalidTransitionError):
        lifecycle.transition(ScanStatus.COMPLETED)


def test_transition_table_covers_every_status():
    assert set(ALLOWED_TRANSITIONS) == set(ScanStatus)
    for status in ScanStatus:
        if status.is_terminal:
            assert not ALLOWED_TRANSITIONS[status]


def test_cancellation_token_keeps_first_reason():
    token = CancellationToken()
    assert not token.is_cancelled
    token.raise_if_cancelled()

    token.cancel("Scan timed out after 5 seconds")
    token.cancel("Scan stopped by user")

    assert token.is_cancelled
    assert token.reason == "Scan timed out after 5 seconds"
    with pytest.raises(ScanCancelledError) as exc_info:
        token.raise_if_cancelled()
    assert exc_info.value.reason == "Scan timed out after 5 seconds"


@pytest.mark.asyncio
async def test_cancellation_token_wait_wakes_waiters():
    token = CancellationToken()
    waiter = asyncio.create_task(token.wait())
    await asyncio.sleep(0)
    assert not waiter.done()

    token.cancel()
    await asyncio.wait_for(waiter, timeout=1)
    assert token.reason == "Scan stopped by user"
