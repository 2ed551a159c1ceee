"""Best-effort asynchronous enrichment of findings.

Provides:
- FindingEnricher for severity analysis and remediation guidance
- EnrichmentWorker / EnrichmentPool for detached enrichment tasks
- Fallback payloads used when no reasoning service is configured
"""

from .analysis import (
    FALLBACK_ANALYSIS,
    FALLBACK_REMEDIATION,
    NOT_ANALYZED_REASON,
    FindingEnricher,
    RemediationGuidance,
    VulnerabilityAnalysis,
    extract_json,
)
from .worker import ENRICHMENT_AGENT, EnrichmentPool, EnrichmentWorker, build_enrichment_pool

__all__ = [
    "FALLBACK_ANALYSIS",
    "FALLBACK_REMEDIATION",
    "NOT_ANALYZED_REASON",
    "FindingEnricher",
    "RemediationGuidance",
    "VulnerabilityAnalysis",
    "extract_json",
    "ENRICHMENT_AGENT",
    "EnrichmentPool",
    "EnrichmentWorker",
    "build_enrichment_pool",
]
