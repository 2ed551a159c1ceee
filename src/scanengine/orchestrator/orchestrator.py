"""Scan orchestration: fan agents out against one target and fan them back in.

One run() call drives one scan from PENDING to a terminal status:

1. Reject an empty agent-type set (FAILED, no agent invoked)
2. Move to RUNNING and announce the selected agents
3. Resolve each type; unknown types fail individually
4. Launch resolved agents, concurrently or one after another
5. Wait for every launched agent (fan-in barrier)
6. Aggregate outcomes and emit a summary log
7. Decide and record the terminal status

Agent failures are contained per agent. Enrichment is never part of the
barrier. Cancellation is cooperative: agents stop at their next checkpoint,
and tasks that have not stopped after the grace period are abandoned so the
barrier cannot leak.

Provides:
- Orchestrator: run(), run_with_timeout(), drain_enrichment()
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import structlog

from scanengine.agents import AgentContext, BaseAgent
from scanengine.core.cancellation import CancellationToken
from scanengine.core.config import Config, ExecutionMode, load_config
from scanengine.core.errors import (
    AgentExecutionError,
    NoAgentTypesError,
    ScanCancelledError,
    UnknownAgentTypeError,
)
from scanengine.core.events import EventChannel, ScanSink
from scanengine.core.lifecycle import ScanLifecycle
from scanengine.core.models import AgentOutcome, LogStatus, ScanOutcome, ScanStatus
from scanengine.enrichment import EnrichmentPool, build_enrichment_pool

from .aggregation import aggregate_outcomes, decide_final_status, format_error
from .registry import AgentRegistry, build_default_registry, canonical_agent_type

logger = structlog.get_logger()

ORCHESTRATOR = "Orchestrator"


@dataclass
class _Launch:
    agent_type: str
    agent: BaseAgent
    context: AgentContext


class Orchestrator:
    """Runs a set of agents for one scan and aggregates their outcome.

    Args:
        registry: Agent registry (built-in agents if None)
        config: Engine configuration (loaded from env if None)
        enrichment: Pool used for detached finding enrichment (None disables it)
    """

    def __init__(
        self,
        registry: AgentRegistry | None = None,
        config: Config | None = None,
        enrichment: EnrichmentPool | None = None,
    ):
        self.config = config or load_config()
        self.registry = registry if registry is not None else build_default_registry(self.config)
        self.enrichment = enrichment

    @classmethod
    def from_config(cls, config: Config | None = None) -> "Orchestrator":
        """Orchestrator with built-in agents and enrichment as configured."""
        config = config or load_config()
        return cls(
            registry=build_default_registry(config),
            config=config,
            enrichment=build_enrichment_pool(config),
        )

    async def run(
        self,
        scan_id: str,
        agent_types: Iterable[str],
        target: str,
        config: Mapping[str, Any],
        sink: ScanSink,
        *,
        cancellation: CancellationToken | None = None,
        mode: ExecutionMode | str | None = None,
    ) -> ScanOutcome:
        """Execute one scan.

        Args:
            scan_id: Identifier of the scan
            agent_types: Agent types to run (duplicates are ignored)
            target: Target passed to every agent
            config: Free-form scan configuration shared read-only by agents
            sink: Caller-supplied persistence
            cancellation: External cancellation signal for this scan
            mode: Execution mode (engine default if None)

        Returns:
            ScanOutcome with the terminal status and per-agent outcomes
        """
        token = cancellation or CancellationToken()
        mode = ExecutionMode(mode) if mode else self.config.execution_mode
        channel = EventChannel(scan_id, sink)
        lifecycle = ScanLifecycle(scan_id)
        log = logger.bind(scan_id=scan_id)
        requested = list(dict.fromkeys(canonical_agent_type(t) for t in agent_types))

        if not requested:
            error = NoAgentTypesError()
            log.warning("scan_rejected", error=str(error))
            await channel.log(ORCHESTRATOR, f"{error}; nothing to execute", LogStatus.ERROR)
            await channel.publish_status(
                lifecycle.transition(ScanStatus.FAILED, error_message=str(error))
            )
            return ScanOutcome(
                scan_id=scan_id, success=False, status=ScanStatus.FAILED, error=str(error)
            )

        if token.is_cancelled:
            log.info("scan_cancelled_before_start", reason=token.reason)
            await channel.log(ORCHESTRATOR, f"Scan cancelled before start: {token.reason}", LogStatus.ERROR)
            await channel.publish_status(
                lifecycle.transition(ScanStatus.CANCELLED, error_message=token.reason)
            )
            return ScanOutcome(
                scan_id=scan_id, success=False, status=ScanStatus.CANCELLED, error=token.reason
            )

        await channel.publish_status(lifecycle.transition(ScanStatus.RUNNING))
        log.info("scan_started", agent_types=requested, target=target, mode=mode.value)
        await channel.log(
            ORCHESTRATOR,
            f"Starting {mode.value} orchestration with {len(requested)} agents against {target}",
            agent_types=requested,
            target=target,
        )

        outcomes: list[AgentOutcome] = []
        launches: list[_Launch] = []
        for agent_type in requested:
            try:
                agent = self.registry.resolve(agent_type)
            except UnknownAgentTypeError as e:
                log.warning("agent_unresolved", agent_type=agent_type)
                await channel.log(ORCHESTRATOR, str(e), LogStatus.ERROR, agent_type=agent_type)
                outcomes.append(AgentOutcome(agent_type=agent_type, success=False, error=str(e)))
                continue
            launches.append(
                _Launch(
                    agent_type=agent_type,
                    agent=agent,
                    context=AgentContext(
                        scan_id=scan_id,
                        agent_type=agent_type,
                        agent_name=agent.get_name(),
                        target=target,
                        config=config,
                        channel=channel,
                        cancellation=token,
                        enrichment=self.enrichment,
                    ),
                )
            )

        try:
            if mode == ExecutionMode.SEQUENTIAL:
                for launch in launches:
                    if token.is_cancelled:
                        await channel.log(
                            ORCHESTRATOR,
                            f"Skipping {launch.agent_type}: scan cancelled",
                            agent_type=launch.agent_type,
                        )
                        outcomes.append(
                            AgentOutcome(
                                agent_type=launch.agent_type,
                                success=False,
                                cancelled=True,
                                error="Not launched: scan cancelled",
                            )
                        )
                        continue
                    outcomes.extend(await self._fan_in([launch], token, channel))
            elif launches:
                outcomes.extend(await self._fan_in(launches, token, channel))
        except asyncio.CancelledError:
            token.cancel("Scan task cancelled")
            log.warning("scan_task_cancelled")
            await self._finish(lifecycle, channel, outcomes, token)
            raise

        return await self._finish(lifecycle, channel, outcomes, token)

    async def _fan_in(
        self,
        launches: list[_Launch],
        token: CancellationToken,
        channel: EventChannel,
    ) -> list[AgentOutcome]:
        """Launch agents as tasks and wait until all of them are terminal.

        Once the token fires, agents get the grace period to reach a
        checkpoint; tasks still running after that are cancelled.
        """
        tasks = [
            asyncio.create_task(
                self._run_agent(launch, channel),
                name=f"{channel.scan_id}:{launch.agent_type}",
            )
            for launch in launches
        ]
        barrier = asyncio.gather(*tasks, return_exceptions=True)
        stop = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({barrier, stop}, return_when=asyncio.FIRST_COMPLETED)
            if not barrier.done():
                _, stragglers = await asyncio.wait(
                    tasks, timeout=self.config.cancellation_grace_seconds
                )
                for task in stragglers:
                    task.cancel()
                if stragglers:
                    logger.warning(
                        "agents_abandoned",
                        scan_id=channel.scan_id,
                        agents=[t.get_name() for t in stragglers],
                    )
                    await asyncio.wait(stragglers)
            await barrier
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        finally:
            stop.cancel()

        outcomes = []
        for launch, task in zip(launches, tasks):
            if task.cancelled():
                outcomes.append(
                    AgentOutcome(
                        agent_type=launch.agent_type,
                        success=False,
                        cancelled=True,
                        findings_count=launch.context.findings_reported,
                        error="Abandoned after cancellation grace period",
                    )
                )
            else:
                outcomes.append(task.result())
        return outcomes

    async def _run_agent(self, launch: _Launch, channel: EventChannel) -> AgentOutcome:
        """Execute one agent with failure containment."""
        agent_type, context = launch.agent_type, launch.context
        log = logger.bind(scan_id=channel.scan_id, agent_type=agent_type)
        await channel.log(ORCHESTRATOR, f"Launching {launch.agent.get_name()}", agent_type=agent_type)

        try:
            await launch.agent.execute(context)
        except ScanCancelledError as e:
            log.info("agent_cancelled", reason=e.reason)
            await channel.log(
                ORCHESTRATOR,
                f"{launch.agent.get_name()} stopped: {e.reason}",
                agent_type=agent_type,
                findings=context.findings_reported,
            )
            return AgentOutcome(
                agent_type=agent_type,
                success=False,
                cancelled=True,
                findings_count=context.findings_reported,
            )
        except Exception as e:
            error = AgentExecutionError(agent_type, e)
            log.warning("agent_failed", error=str(e), findings=context.findings_reported)
            await channel.log(
                ORCHESTRATOR,
                str(error),
                LogStatus.ERROR,
                agent_type=agent_type,
                error=str(e),
            )
            return AgentOutcome(
                agent_type=agent_type,
                success=False,
                findings_count=context.findings_reported,
                error=str(error),
            )

        log.info("agent_completed", findings=context.findings_reported)
        await channel.log(
            ORCHESTRATOR,
            f"{launch.agent.get_name()} completed with {context.findings_reported} findings",
            LogStatus.COMPLETED,
            agent_type=agent_type,
            findings=context.findings_reported,
        )
        return AgentOutcome(
            agent_type=agent_type, success=True, findings_count=context.findings_reported
        )

    async def _finish(
        self,
        lifecycle: ScanLifecycle,
        channel: EventChannel,
        outcomes: list[AgentOutcome],
        token: CancellationToken,
    ) -> ScanOutcome:
        aggregate = aggregate_outcomes(outcomes)
        status = decide_final_status(aggregate, cancelled=token.is_cancelled)
        if status == ScanStatus.CANCELLED:
            error = format_error(aggregate, cancel_reason=token.reason or "Scan cancelled")
        else:
            error = format_error(aggregate)

        await channel.log(
            ORCHESTRATOR,
            f"Orchestration finished: {aggregate.succeeded} succeeded, "
            f"{aggregate.failed} failed, {aggregate.cancelled} cancelled",
            LogStatus.ERROR if status == ScanStatus.FAILED else LogStatus.COMPLETED,
            successful_agents=aggregate.succeeded,
            failed_agents=aggregate.failed,
            cancelled_agents=aggregate.cancelled,
            total_findings=aggregate.total_findings,
            errors=list(aggregate.errors),
        )

        update = lifecycle.transition(
            status,
            findings_count=channel.findings_emitted,
            error_message=None if status == ScanStatus.COMPLETED else error,
        )
        await channel.publish_status(update)
        logger.info(
            "scan_finished",
            scan_id=lifecycle.scan_id,
            status=status.value,
            duration=update.duration_seconds,
        )

        return ScanOutcome(
            scan_id=lifecycle.scan_id,
            success=status == ScanStatus.COMPLETED,
            status=status,
            error=error,
            agent_outcomes=outcomes,
            total_findings=aggregate.total_findings,
            duration_seconds=update.duration_seconds or 0.0,
        )

    async def run_with_timeout(
        self,
        scan_id: str,
        agent_types: Iterable[str],
        target: str,
        config: Mapping[str, Any],
        sink: ScanSink,
        *,
        timeout: float | None = None,
        cancellation: CancellationToken | None = None,
        mode: ExecutionMode | str | None = None,
    ) -> ScanOutcome:
        """run() with a per-scan timeout treated as cancellation.

        Args:
            timeout: Seconds before the scan is cancelled
                (config.scan_timeout_seconds if None; no timeout if both unset)
        """
        timeout = timeout if timeout is not None else self.config.scan_timeout_seconds
        token = cancellation or CancellationToken()
        handle = None
        if timeout is not None:
            handle = asyncio.get_running_loop().call_later(
                timeout, token.cancel, f"Scan timed out after {timeout:g} seconds"
            )
        try:
            return await self.run(
                scan_id, agent_types, target, config, sink, cancellation=token, mode=mode
            )
        finally:
            if handle is not None:
                handle.cancel()

    async def drain_enrichment(self, timeout: float | None = None) -> bool:
        """Wait for detached enrichment to finish.

        Returns:
            True if nothing is left in flight
        """
        if self.enrichment is None:
            return True
        return await self.enrichment.drain(timeout)
