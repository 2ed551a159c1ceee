"""AsyncClick CLI for running scans.

Provides user-facing commands:
- agents: List available agent types
- scan: Run selected agents against a target and print the outcome
"""

import json
import logging
import sys
from uuid import uuid4

import asyncclick as click
import structlog

from scanengine.core.config import ExecutionMode, load_config
from scanengine.core.events import MemorySink
from scanengine.core.models import AgentActivityLogEntry, LogStatus, ScanStatus
from scanengine.orchestrator import Orchestrator, build_default_registry

logger = structlog.get_logger()

_STATUS_MARK = {
    LogStatus.RUNNING: "[*]",
    LogStatus.COMPLETED: "[+]",
    LogStatus.ERROR: "[-]",
}


class EchoSink(MemorySink):
    """MemorySink that also prints activity log entries as they arrive."""

    def __init__(self, echo: bool = True):
        super().__init__()
        self.echo = echo

    async def persist_log(self, scan_id: str, entry: AgentActivityLogEntry) -> None:
        await super().persist_log(scan_id, entry)
        if self.echo:
            click.echo(f"{_STATUS_MARK[entry.status]} {entry.agent_type}: {entry.message}")


def parse_settings(pairs: tuple[str, ...]) -> dict:
    """Turn KEY=VALUE pairs into a scan config map.

    Values are read as JSON when possible (numbers, booleans, lists), otherwise
    kept as strings.

    Raises:
        click.BadParameter: If a pair has no '='
    """
    settings = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{pair}'", param_hint="--set")
        try:
            settings[key] = json.loads(raw)
        except json.JSONDecodeError:
            settings[key] = raw
    return settings


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show engine debug logging")
@click.pass_context
async def cli(ctx, verbose: bool):
    """Scan Engine - concurrent security assessment agents"""
    ctx.ensure_object(dict)
    # stdout carries scan output (and the --json document); engine logs go to stderr
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.WARNING
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


@cli.command("agents")
async def list_agents():
    """List agent types that can be passed to scan -a."""
    registry = build_default_registry(load_config())
    for agent in registry.available_agents():
        click.echo(f"{agent['type']:<16} {agent['name']} - {agent['description']}")


@cli.command()
@click.argument("target")
@click.option("--agent", "-a", "agent_types", multiple=True,
              help="Agent type to run (repeatable)")
@click.option("--sequential", is_flag=True, help="Run agents one after another")
@click.option("--timeout", type=float, default=None, help="Cancel the scan after N seconds")
@click.option("--set", "pairs", multiple=True, metavar="KEY=VALUE",
              help="Scan configuration entry (repeatable)")
@click.option("--wait-enrichment", type=float, default=0.0,
              help="Seconds to wait for finding enrichment after the scan")
@click.option("--json", "as_json", is_flag=True, help="Print the outcome as JSON")
@click.pass_context
async def scan(
    ctx,
    target: str,
    agent_types: tuple[str, ...],
    sequential: bool,
    timeout: float | None,
    pairs: tuple[str, ...],
    wait_enrichment: float,
    as_json: bool,
):
    """Run agents against a target.

    Examples:
        scanengine scan example.com -a network -a web-application
        scanengine scan example.com -a configuration --set debug=true
        scanengine scan example.com -a api --timeout 120 --json
    """
    settings = parse_settings(pairs)
    config = load_config()
    orchestrator = Orchestrator.from_config(config)
    sink = EchoSink(echo=not as_json)
    scan_id = str(uuid4())

    if not as_json:
        click.echo(f"[*] Target: {target}")
        click.echo(f"[*] Scan: {scan_id}")

    try:
        outcome = await orchestrator.run_with_timeout(
            scan_id,
            agent_types,
            target,
            settings,
            sink,
            timeout=timeout,
            mode=ExecutionMode.SEQUENTIAL if sequential else None,
        )
        if wait_enrichment > 0 and not await orchestrator.drain_enrichment(wait_enrichment):
            logger.warning("enrichment_still_running", scan_id=scan_id)
    finally:
        if orchestrator.enrichment is not None:
            await orchestrator.enrichment.aclose()

    findings = sink.findings_for(scan_id)

    if as_json:
        payload = outcome.model_dump(mode="json")
        payload["findings"] = [f.model_dump(mode="json") for f in findings]
        click.echo(json.dumps(payload, indent=2))
    else:
        click.echo("\n" + "=" * 60)
        mark = "[+]" if outcome.success else "[-]"
        click.echo(f"{mark} Scan {outcome.status.value} in {outcome.duration_seconds:.1f}s")
        click.echo("=" * 60)
        for agent in outcome.agent_outcomes:
            if agent.success:
                mark, detail = "[+]", f"{agent.findings_count} findings"
            elif agent.cancelled:
                mark, detail = "[!]", "cancelled"
            else:
                mark, detail = "[-]", agent.error
            click.echo(f"    {mark} {agent.agent_type}: {detail}")
        if outcome.error:
            click.echo(f"\n[!] {outcome.error}")

        click.echo(f"\n[+] Findings: {len(findings)}")
        for finding in findings:
            click.echo(
                f"    [{finding.severity.value.upper()}] {finding.title} "
                f"({finding.affected_asset}) enrichment={finding.enrichment_status.value}"
            )

    if outcome.status != ScanStatus.COMPLETED:
        ctx.exit(1)


if __name__ == "__main__":
    cli()
