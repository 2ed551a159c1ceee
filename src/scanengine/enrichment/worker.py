"""Detached, best-effort enrichment of reported findings.

A finding's first write never waits for enrichment. The agent that reported
it hands the finding to the EnrichmentPool, which spawns a task and returns
at once. The task runs severity analysis and remediation generation
concurrently and, if anything useful came back, writes a single update.

Enrichment is outside the orchestrator's fan-in barrier: a scan may reach a
terminal state while enrichment tasks are still running.

Provides:
- EnrichmentWorker: Enrich one finding and write the update
- EnrichmentPool: Spawn and track detached enrichment tasks
- build_enrichment_pool: Construct a pool from Config
"""

import asyncio

import structlog

from scanengine.core.config import Config
from scanengine.core.errors import EnrichmentError
from scanengine.core.events import EventChannel
from scanengine.core.llm import AnthropicProvider, LLMClient
from scanengine.core.models import (
    AIReasoning,
    EnrichmentStatus,
    Finding,
    LogStatus,
    Remediation,
)

from .analysis import FindingEnricher, RemediationGuidance, VulnerabilityAnalysis

logger = structlog.get_logger()

ENRICHMENT_AGENT = "Enrichment"


class EnrichmentWorker:
    """Runs both enrichment operations for a finding and merges the results.

    The agent-reported severity and the finding's disposition are never
    changed; the service's own severity opinion goes into
    ``ai_reasoning.assessed_severity``.

    Args:
        enricher: Service wrapper performing the calls
        timeout_seconds: Timeout applied to each operation
    """

    def __init__(self, enricher: FindingEnricher, timeout_seconds: float = 60.0):
        self.enricher = enricher
        self.timeout_seconds = timeout_seconds

    async def _with_timeout(self, operation):
        try:
            return await asyncio.wait_for(operation, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise EnrichmentError(
                f"Enrichment timed out after {self.timeout_seconds:g}s"
            ) from e

    async def enrich(self, finding: Finding, channel: EventChannel) -> Finding | None:
        """Enrich a finding and deliver the update.

        Args:
            finding: Finding as first written
            channel: Channel of the finding's scan

        Returns:
            The updated finding, or None when both operations failed
        """
        log = logger.bind(scan_id=finding.scan_id, finding_id=finding.id)

        analysis, remediation = await asyncio.gather(
            self._with_timeout(self.enricher.analyze(finding)),
            self._with_timeout(self.enricher.remediate(finding)),
            return_exceptions=True,
        )

        update: dict = {}
        failures: dict[str, BaseException] = {}

        if isinstance(analysis, VulnerabilityAnalysis):
            update["ai_reasoning"] = AIReasoning(
                reasoning_chain=analysis.reasoning,
                confidence_score=analysis.confidence,
                alternative_hypotheses=analysis.alternative_hypotheses,
                assessed_severity=analysis.severity,
                exploitability=analysis.exploitability,
                false_positive_likelihood=analysis.false_positive_likelihood,
            )
        else:
            failures["analysis"] = analysis

        if isinstance(remediation, RemediationGuidance):
            update["remediation"] = Remediation(**remediation.model_dump())
        else:
            failures["remediation"] = remediation

        for error in failures.values():
            if not isinstance(error, Exception):
                raise error

        for operation, error in failures.items():
            log.info("enrichment_failed", operation=operation, error=str(error))
            await channel.log(
                ENRICHMENT_AGENT,
                f"Enrichment {operation} failed for '{finding.title}'; keeping placeholder",
                LogStatus.COMPLETED,
                finding_id=finding.id,
                operation=operation,
                error=str(error),
                level="info",
            )

        if not update:
            return None

        if not self.enricher.configured:
            status = EnrichmentStatus.FALLBACK
        elif failures:
            status = EnrichmentStatus.PARTIAL
        else:
            status = EnrichmentStatus.ENRICHED

        enriched = finding.model_copy(update={**update, "enrichment_status": status})
        await channel.update_finding(enriched)
        log.debug("enrichment_complete", enrichment_status=status.value)
        return enriched


class EnrichmentPool:
    """Spawns enrichment tasks without making the caller wait.

    Tasks are tracked until they finish so they are not garbage collected
    mid-flight, and so a process can drain them before exiting.

    Args:
        worker: Worker that performs each enrichment
        max_concurrency: Maximum enrichments calling the service at once
    """

    def __init__(self, worker: EnrichmentWorker, max_concurrency: int = 4):
        self.worker = worker
        self.max_concurrency = max_concurrency
        self._semaphore: asyncio.Semaphore | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def _limit(self) -> asyncio.Semaphore:
        # A semaphore is bound to the loop that first waits on it
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._loop is not loop:
            self._semaphore = asyncio.Semaphore(self.max_concurrency)
            self._loop = loop
        return self._semaphore

    def submit(self, finding: Finding, channel: EventChannel) -> asyncio.Task:
        """Schedule enrichment for a finding and return immediately."""
        task = asyncio.create_task(
            self._run(finding, channel, self._limit()), name=f"enrich-{finding.id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(
        self, finding: Finding, channel: EventChannel, limit: asyncio.Semaphore
    ) -> Finding | None:
        async with limit:
            try:
                return await self.worker.enrich(finding, channel)
            except Exception as e:
                logger.warning(
                    "enrichment_crashed",
                    scan_id=finding.scan_id,
                    finding_id=finding.id,
                    error=str(e),
                )
                return None

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for in-flight enrichment.

        Args:
            timeout: Maximum seconds to wait (None waits indefinitely)

        Returns:
            True if nothing is left running
        """
        if not self._tasks:
            return True
        _, still_running = await asyncio.wait(set(self._tasks), timeout=timeout)
        return not still_running

    async def aclose(self) -> None:
        """Cancel whatever is still running."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


def build_enrichment_pool(config: Config) -> EnrichmentPool | None:
    """Create the enrichment pool described by config.

    Returns:
        None when enrichment is disabled. An unconfigured service (no API key)
        still yields a pool that writes the fallback payload.
    """
    if not config.enrichment_enabled:
        return None

    client = None
    if config.anthropic_api_key:
        client = LLMClient(
            AnthropicProvider(
                api_key=config.anthropic_api_key,
                model=config.llm_model,
                request_timeout=config.enrichment_timeout_seconds,
            )
        )
    else:
        logger.info("enrichment_service_unconfigured", fallback=True)

    worker = EnrichmentWorker(
        FindingEnricher(client), timeout_seconds=config.enrichment_timeout_seconds
    )
    return EnrichmentPool(worker, max_concurrency=config.max_concurrent_enrichments)
