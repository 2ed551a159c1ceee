"""Unit tests for CLI commands with a scripted agent registry."""

import json
from unittest.mock import patch

import asyncclick as click
import pytest
from asyncclick.testing import CliRunner

from fakes import FailingAgent, FindingAgent
from scanengine.agents import BaseAgent
from scanengine.cli.main import cli, parse_settings
from scanengine.core.config import Config
from scanengine.orchestrator import AGENT_TYPES, AgentRegistry, Orchestrator


def _orchestrator(**agents) -> Orchestrator:
    config = Config(anthropic_api_key="", enrichment_enabled=False, cancellation_grace_seconds=0.1)
    return Orchestrator(registry=AgentRegistry(agents), config=config)


def test_parse_settings_reads_json_values():
    assert parse_settings(("debug=true", "ports=[22, 80]", "name=prod", "empty=")) == {
        "debug": True,
        "ports": [22, 80],
        "name": "prod",
        "empty": "",
    }


def test_parse_settings_rejects_missing_separator():
    with pytest.raises(click.BadParameter):
        parse_settings(("debug",))


@pytest.mark.asyncio
async def test_agents_lists_registry():
    runner = CliRunner()
    result = await runner.invoke(cli, ["agents"])

    assert result.exit_code == 0
    for agent_type in AGENT_TYPES:
        assert agent_type in result.output
    assert "Network Penetration Agent" in result.output


@pytest.mark.asyncio
async def test_scan_success():
    runner = CliRunner()
    orchestrator = _orchestrator(network=FindingAgent(2))

    with patch("scanengine.cli.main.Orchestrator.from_config", return_value=orchestrator):
        result = await runner.invoke(cli, ["scan", "example.com", "-a", "network"])

    assert result.exit_code == 0
    assert "[*] Target: example.com" in result.output
    assert "Finding Agent: Reporting scripted findings" in result.output
    assert "[+] Scan completed" in result.output
    assert "[+] Findings: 2" in result.output
    assert "[HIGH] Scripted Finding 0" in result.output


@pytest.mark.asyncio
async def test_scan_partial_success_exits_zero():
    runner = CliRunner()
    orchestrator = _orchestrator(network=FindingAgent(1), api=FailingAgent("refused"))

    with patch("scanengine.cli.main.Orchestrator.from_config", return_value=orchestrator):
        result = await runner.invoke(cli, ["scan", "example.com", "-a", "network", "-a", "api"])

    assert result.exit_code == 0
    assert "Partial success" in result.output
    assert "api agent failed: refused" in result.output


@pytest.mark.asyncio
async def test_scan_failure_exits_non_zero():
    runner = CliRunner()
    orchestrator = _orchestrator(api=FailingAgent("refused"))

    with patch("scanengine.cli.main.Orchestrator.from_config", return_value=orchestrator):
        result = await runner.invoke(cli, ["scan", "example.com", "-a", "api"])

    assert result.exit_code == 1
    assert "[-] Scan failed" in result.output


@pytest.mark.asyncio
async def test_scan_without_agents_fails():
    runner = CliRunner()
    orchestrator = _orchestrator(network=FindingAgent())

    with patch("scanengine.cli.main.Orchestrator.from_config", return_value=orchestrator):
        result = await runner.invoke(cli, ["scan", "example.com"])

    assert result.exit_code == 1
    assert "No scan types provided" in result.output


@pytest.mark.asyncio
async def test_scan_json_output():
    runner = CliRunner()
    orchestrator = _orchestrator(network=FindingAgent(1))

    with patch("scanengine.cli.main.Orchestrator.from_config", return_value=orchestrator):
        result = await runner.invoke(cli, ["scan", "example.com", "-a", "network", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["status"] == "completed"
    assert payload["success"] is True
    assert payload["agent_outcomes"][0]["agent_type"] == "network"
    assert payload["findings"][0]["title"] == "Scripted Finding 0"


@pytest.mark.asyncio
async def test_scan_json_output_stays_parseable_with_failed_agent():
    runner = CliRunner()
    orchestrator = _orchestrator(network=FindingAgent(1), api=FailingAgent("refused"))

    with patch("scanengine.cli.main.Orchestrator.from_config", return_value=orchestrator):
        result = await runner.invoke(
            cli, ["scan", "example.com", "-a", "network", "-a", "api", "-a", "iot", "--json"]
        )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["status"] == "completed"
    assert "api agent failed: refused" in payload["error"]
    assert "agent_failed" in result.stderr


@pytest.mark.asyncio
async def test_scan_passes_settings_to_agents():
    seen = {}

    class Recording(BaseAgent):
        def __init__(self):
            super().__init__("Recording Agent", "Records its config")

        async def execute(self, context):
            seen.update(context.config)

    runner = CliRunner()
    orchestrator = _orchestrator(configuration=Recording())

    with patch("scanengine.cli.main.Orchestrator.from_config", return_value=orchestrator):
        result = await runner.invoke(
            cli, ["scan", "example.com", "-a", "config", "--set", "debug=true", "--set", "tls_min_version=1.0"]
        )

    assert result.exit_code == 0
    assert seen == {"debug": True, "tls_min_version": 1.0}


@pytest.mark.asyncio
async def test_scan_rejects_malformed_setting():
    runner = CliRunner()
    orchestrator = _orchestrator(network=FindingAgent())

    with patch("scanengine.cli.main.Orchestrator.from_config", return_value=orchestrator):
        result = await runner.invoke(cli, ["scan", "example.com", "-a", "network", "--set", "debug"])

    assert result.exit_code == 2
    assert "KEY=VALUE" in result.output
