"""Tests for the agent registry and outcome aggregation."""

import pytest

from fakes import FindingAgent
from scanengine.agents import (
    APIAgent,
    CloudAgent,
    ConfigAgent,
    IoTAgent,
    NetworkAgent,
    WebAppAgent,
)
from scanengine.core.config import Config
from scanengine.core.errors import UnknownAgentTypeError
from scanengine.core.models import AgentOutcome, ScanStatus
from scanengine.orchestrator import (
    AGENT_TYPES,
    AgentRegistry,
    ScanAggregate,
    aggregate_outcomes,
    build_default_registry,
    canonical_agent_type,
    decide_final_status,
    format_error,
)


def test_default_registry_exposes_all_agent_types():
    registry = build_default_registry(Config(probe_timeout_seconds=2))

    assert tuple(registry) == AGENT_TYPES
    assert isinstance(registry.resolve("network"), NetworkAgent)
    assert isinstance(registry.resolve("web-application"), WebAppAgent)
    assert isinstance(registry.resolve("api"), APIAgent)
    assert isinstance(registry.resolve("cloud"), CloudAgent)
    assert isinstance(registry.resolve("iot"), IoTAgent)
    assert isinstance(registry.resolve("configuration"), ConfigAgent)
    assert registry.resolve("network").ports.timeout == 2


@pytest.mark.parametrize(
    "alias,canonical",
    [("webapp", "web-application"), ("config", "configuration"), (" API ", "api")],
)
def test_aliases_resolve_to_canonical_types(alias, canonical):
    registry = build_default_registry(Config())
    assert canonical_agent_type(alias) == canonical
    assert registry.resolve(alias) is registry.resolve(canonical)
    assert alias in registry


def test_resolve_unknown_type_raises():
    with pytest.raises(UnknownAgentTypeError) as exc_info:
        AgentRegistry().resolve("network")
    assert exc_info.value.agent_type == "network"
    assert "network" in str(exc_info.value)


def test_registry_is_read_only():
    registry = AgentRegistry({"network": FindingAgent()})
    with pytest.raises(TypeError):
        registry["api"] = FindingAgent()
    with pytest.raises(TypeError):
        registry._agents["api"] = FindingAgent()


def test_available_agents_describes_each_agent():
    registry = build_default_registry(Config())
    described = registry.available_agents()

    assert [a["type"] for a in described] == list(AGENT_TYPES)
    network = described[0]
    assert network["name"] == "Network Penetration Agent"
    assert network["description"]


def test_aggregate_counts_success_failure_and_cancellation():
    aggregate = aggregate_outcomes([
        AgentOutcome(agent_type="network", success=True, findings_count=2),
        AgentOutcome(agent_type="api", success=False, error="api agent failed: boom"),
        AgentOutcome(agent_type="iot", success=False, cancelled=True, findings_count=1),
    ])

    assert aggregate == ScanAggregate(
        succeeded=1,
        failed=1,
        cancelled=1,
        total_findings=2,
        errors=("api agent failed: boom",),
    )


def test_aggregate_of_nothing():
    assert aggregate_outcomes([]) == ScanAggregate()


@pytest.mark.parametrize(
    "aggregate,cancelled,expected",
    [
        (ScanAggregate(succeeded=3), False, ScanStatus.COMPLETED),
        (ScanAggregate(succeeded=1, failed=5), False, ScanStatus.COMPLETED),
        (ScanAggregate(failed=2), False, ScanStatus.FAILED),
        (ScanAggregate(), False, ScanStatus.FAILED),
        (ScanAggregate(succeeded=2), True, ScanStatus.CANCELLED),
        (ScanAggregate(failed=2), True, ScanStatus.CANCELLED),
    ],
)
def test_decide_final_status(aggregate, cancelled, expected):
    assert decide_final_status(aggregate, cancelled=cancelled) == expected


def test_format_error_partial_success_mentions_each_failure():
    error = format_error(
        ScanAggregate(succeeded=1, failed=2, errors=("api agent failed: x", "cloud agent failed: y"))
    )
    assert error == "Partial success: api agent failed: x; cloud agent failed: y"


def test_format_error_total_failure_and_none():
    assert format_error(ScanAggregate(failed=1, errors=("network agent failed: z",))) == "network agent failed: z"
    assert format_error(ScanAggregate(succeeded=2)) is None


def test_format_error_cancelled_scan_keeps_agent_failures():
    aggregate = ScanAggregate(succeeded=1, failed=1, cancelled=1, errors=("api agent failed: x",))

    assert format_error(aggregate, cancel_reason="Scan stopped by user") == (
        "Scan stopped by user; api agent failed: x"
    )
    assert format_error(ScanAggregate(cancelled=2), cancel_reason="Scan timed out after 5 seconds") == (
        "Scan timed out after 5 seconds"
    )
