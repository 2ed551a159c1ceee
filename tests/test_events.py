"""Tests for the Event Channel and the in-memory reference sink."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from fakes import BrokenSink
from scanengine.core.events import EventChannel, MemorySink, ScanSink
from scanengine.core.models import (
    AgentActivityLogEntry,
    Finding,
    FindingDraft,
    LogStatus,
    ScanStatus,
    ScanStatusUpdate,
)


def _finding(scan_id: str = "scan-1", title: str = "Missing HSTS") -> Finding:
    draft = FindingDraft(
        title=title,
        description="Header not sent",
        severity="medium",
        affected_asset="https://example.com",
    )
    return Finding.from_draft(draft, scan_id=scan_id, discovered_by_agent="Web Application Agent")


def test_memory_sink_satisfies_protocol():
    assert isinstance(MemorySink(), ScanSink)


@pytest.mark.asyncio
async def test_channel_forwards_each_event_once():
    sink = MemorySink()
    channel = EventChannel("scan-1", sink)
    finding = _finding()

    entry = await channel.log("Network Penetration Agent", "Probing ports", ports=[22, 80])
    assert await channel.publish_finding(finding)
    assert await channel.publish_status(ScanStatusUpdate(status=ScanStatus.RUNNING))

    assert sink.logs_for("scan-1") == [entry]
    assert entry.details == {"ports": [22, 80]}
    assert sink.findings_for("scan-1") == [finding]
    assert sink.current_status("scan-1") == ScanStatus.RUNNING
    assert channel.logs_emitted == 1
    assert channel.findings_emitted == 1


@pytest.mark.asyncio
async def test_channel_preserves_emission_order_per_writer():
    sink = MemorySink()
    channel = EventChannel("scan-1", sink)

    for index in range(5):
        await channel.log("Agent", f"step {index}")

    assert [e.message for e in sink.logs["scan-1"]] == [f"step {i}" for i in range(5)]


@pytest.mark.asyncio
async def test_channel_log_delivers_single_entry():
    sink = MemorySink()

    await EventChannel("scan-1", sink).log("X", "msg")

    assert len(sink.logs["scan-1"]) == 1
    assert sink.logs["scan-1"][0].agent_type == "X"
    assert sink.logs["scan-1"][0].status == LogStatus.RUNNING


@pytest.mark.asyncio
async def test_channel_log_keeps_agent_type_in_details():
    sink = MemorySink()
    channel = EventChannel("scan-1", sink)

    entry = await channel.log("Orchestrator", "Launching", LogStatus.RUNNING, agent_type="api")

    assert entry.agent_type == "Orchestrator"
    assert entry.details == {"agent_type": "api"}
    assert sink.logs_for("scan-1") == [entry]


@pytest.mark.asyncio
async def test_sink_failures_never_reach_the_writer():
    """A failing sink is logged and swallowed, not raised."""
    channel = EventChannel("scan-1", BrokenSink())

    await channel.log("Agent", "hello")
    delivered = await channel.publish_finding(_finding())
    updated = await channel.update_finding(_finding())
    status = await channel.publish_status(ScanStatusUpdate(status=ScanStatus.RUNNING))

    assert delivered is False
    assert updated is False
    assert status is False
    assert channel.logs_emitted == 0
    assert channel.findings_emitted == 0


@pytest.mark.asyncio
async def test_channel_accepts_any_protocol_implementation():
    sink = AsyncMock()
    channel = EventChannel("scan-1", sink)
    finding = _finding()

    await channel.publish_finding(finding)
    await channel.update_finding(finding)

    sink.persist_finding.assert_awaited_once_with(finding)
    sink.update_finding.assert_awaited_once_with(finding)


@pytest.mark.asyncio
async def test_snapshot_returns_newest_logs_first():
    sink = MemorySink()
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    for index in range(15):
        await sink.persist_log(
            "scan-1",
            AgentActivityLogEntry(
                agent_type="Agent",
                message=f"entry {index}",
                status=LogStatus.RUNNING,
                timestamp=base + timedelta(seconds=index),
            ),
        )

    snapshot = sink.snapshot("scan-1")

    assert len(snapshot.recent_logs) == 10
    assert snapshot.recent_logs[0].message == "entry 14"
    assert snapshot.recent_logs[-1].message == "entry 5"


@pytest.mark.asyncio
async def test_logs_are_merged_by_timestamp_across_writers():
    sink = MemorySink()
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    late = AgentActivityLogEntry(
        agent_type="B", message="late", status=LogStatus.RUNNING, timestamp=base + timedelta(seconds=2)
    )
    early = AgentActivityLogEntry(
        agent_type="A", message="early", status=LogStatus.RUNNING, timestamp=base
    )
    await sink.persist_log("scan-1", late)
    await sink.persist_log("scan-1", early)

    assert [e.message for e in sink.logs_for("scan-1")] == ["early", "late"]


@pytest.mark.asyncio
async def test_snapshot_reflects_finding_updates():
    sink = MemorySink()
    finding = _finding()
    await sink.persist_finding(finding)
    await sink.persist_status("scan-1", ScanStatusUpdate(status=ScanStatus.COMPLETED, findings_count=1))

    updated = finding.model_copy(update={"remediation": finding.remediation.model_copy(update={"steps": ["Enable HSTS"]})})
    await sink.update_finding(updated)

    snapshot = sink.snapshot("scan-1")
    assert snapshot.status == ScanStatus.COMPLETED
    assert snapshot.update.findings_count == 1
    assert len(snapshot.findings) == 1
    assert snapshot.findings[0].remediation.steps == ["Enable HSTS"]
    assert sink.finding_updates == 1


def test_snapshot_of_unknown_scan_is_pending():
    snapshot = MemorySink().snapshot("missing")
    assert snapshot.status == ScanStatus.PENDING
    assert snapshot.update is None
    assert snapshot.recent_logs == []
    assert snapshot.findings == []
