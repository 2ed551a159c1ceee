"""Severity analysis and remediation guidance from the reasoning service.

Both operations prompt the LLM for a JSON object, extract the first JSON
object from the reply and validate it with pydantic. Anything unusable is an
EnrichmentError; callers decide how to degrade.

When no reasoning service is configured, both operations return a fixed,
clearly labelled fallback instead of calling anything.

Provides:
- VulnerabilityAnalysis, RemediationGuidance: Validated service responses
- FindingEnricher: analyze() / remediate() over an optional LLMClient
- extract_json: Pull the first JSON object out of free text
"""

import json
from typing import Any

import structlog
from pydantic import BaseModel, Field, ValidationError

from scanengine.core.errors import EnrichmentError
from scanengine.core.llm import LLMClient
from scanengine.core.models import Finding, Severity

logger = structlog.get_logger()

NOT_ANALYZED_REASON = "Not analyzed: no enrichment service is configured"

_DECODER = json.JSONDecoder()


class VulnerabilityAnalysis(BaseModel):
    """Severity/confidence classification of a finding."""

    severity: Severity
    confidence: int = Field(ge=0, le=100)
    reasoning: list[str] = Field(default_factory=list)
    exploitability: str = "medium"
    false_positive_likelihood: int = Field(default=50, ge=0, le=100)
    alternative_hypotheses: list[str] = Field(default_factory=list)


class RemediationGuidance(BaseModel):
    """Remediation steps for a finding."""

    steps: list[str] = Field(default_factory=list)
    code_examples: list[str] = Field(default_factory=list)
    estimated_effort: str = "Unknown"
    priority: str = "medium"
    verification_steps: list[str] = Field(default_factory=list)


FALLBACK_ANALYSIS = VulnerabilityAnalysis(
    severity=Severity.MEDIUM,
    confidence=0,
    reasoning=[NOT_ANALYZED_REASON],
    exploitability="unknown",
    false_positive_likelihood=50,
)

FALLBACK_REMEDIATION = RemediationGuidance(
    steps=[
        NOT_ANALYZED_REASON,
        "Review the finding evidence manually",
        "Apply the vendor's hardening guidance for the affected asset",
    ],
    estimated_effort="Unknown",
    priority="medium",
)


def extract_json(text: str) -> dict[str, Any]:
    """Extract the first JSON object embedded in text.

    Raises:
        EnrichmentError: If no object is present or it does not parse
    """
    start = text.find("{")
    if start == -1:
        raise EnrichmentError("Response did not contain a JSON object")
    last_error = None
    while start != -1:
        try:
            payload, _ = _DECODER.raw_decode(text, start)
        except json.JSONDecodeError as e:
            last_error = e
        else:
            if isinstance(payload, dict):
                return payload
        start = text.find("{", start + 1)
    raise EnrichmentError(f"Response JSON did not parse: {last_error}")


def _analysis_prompt(finding: Finding) -> str:
    cvss = finding.cvss_score if finding.cvss_score is not None else "N/A"
    return f"""You are a security expert analyzing a vulnerability. Provide a detailed assessment.

Vulnerability Information:
Title: {finding.title}
Description: {finding.description}
CVSS Score: {cvss}
Evidence: {json.dumps(finding.evidence, indent=2, default=str)}

Analyze this vulnerability and provide:
1. Severity assessment (critical, high, medium, low, info)
2. Confidence level (0-100)
3. Step-by-step reasoning
4. Exploitability assessment (high, medium, low)
5. Likelihood this is a false positive (0-100)
6. Alternative explanations for the evidence, if any

Respond in JSON format:
{{
  "severity": "high",
  "confidence": 85,
  "reasoning": ["step1", "step2"],
  "exploitability": "high",
  "false_positive_likelihood": 10,
  "alternative_hypotheses": []
}}"""


def _remediation_prompt(finding: Finding) -> str:
    return f"""You are a security expert providing remediation guidance.

Vulnerability:
Title: {finding.title}
Description: {finding.description}
Severity: {finding.severity.value}
Affected Asset: {finding.affected_asset}

Provide detailed remediation guidance including:
1. Step-by-step remediation steps
2. Code examples if applicable
3. Estimated effort (e.g., "2-4 hours", "1 day", "1 week")
4. Priority level (immediate, high, medium, low)
5. Verification steps to confirm the fix

Respond in JSON format:
{{
  "steps": ["step1", "step2"],
  "code_examples": ["example1"],
  "estimated_effort": "2-4 hours",
  "priority": "high",
  "verification_steps": ["verify1"]
}}"""


class FindingEnricher:
    """Calls the reasoning service for one finding at a time.

    Args:
        client: LLM client, or None when the service is not configured
    """

    def __init__(self, client: LLMClient | None = None):
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def _ask(self, prompt: str, model: type[BaseModel]) -> Any:
        try:
            text = await self.client.complete_text(prompt)
        except EnrichmentError:
            raise
        except Exception as e:
            raise EnrichmentError(f"Enrichment service call failed: {e}") from e
        try:
            return model.model_validate(extract_json(text))
        except ValidationError as e:
            raise EnrichmentError(f"Enrichment response failed validation: {e}") from e

    async def analyze(self, finding: Finding) -> VulnerabilityAnalysis:
        """Classify severity and confidence for a finding.

        Raises:
            EnrichmentError: On service failure or an unusable response
        """
        if self.client is None:
            return FALLBACK_ANALYSIS
        return await self._ask(_analysis_prompt(finding), VulnerabilityAnalysis)

    async def remediate(self, finding: Finding) -> RemediationGuidance:
        """Generate remediation guidance for a finding.

        Raises:
            EnrichmentError: On service failure or an unusable response
        """
        if self.client is None:
            return FALLBACK_REMEDIATION
        return await self._ask(_remediation_prompt(finding), RemediationGuidance)
