"""API agent: exposed API descriptions and management endpoints."""

from scanengine.core.models import LogStatus, Severity
from scanengine.core.severity import calculate_severity, cvss_defaults, score_for
from scanengine.tools import HttpPathProbeTool, ToolStatus, target_url

from .base import AgentContext, BaseAgent

DOCUMENTATION_PATHS = [
    "/swagger.json",
    "/openapi.json",
    "/v2/api-docs",
    "/v3/api-docs",
    "/api-docs",
    "/swagger-ui.html",
]

MANAGEMENT_PATHS = [
    "/actuator",
    "/actuator/env",
    "/actuator/heapdump",
    "/metrics",
    "/debug/vars",
]


class APIAgent(BaseAgent):
    """Tests API surface exposure."""

    def __init__(self, probe_timeout: float = 10.0):
        super().__init__("API Security Agent", "Tests API documentation and management endpoint exposure")
        self.paths = HttpPathProbeTool(timeout=probe_timeout)

    async def execute(self, context: AgentContext) -> None:
        base = target_url(context.target)
        await self.log(context, f"Starting API assessment of {base}")

        docs = await self.paths.run(base, paths=DOCUMENTATION_PATHS)
        if docs.status != ToolStatus.SUCCESS:
            raise RuntimeError(f"API documentation probe failed: {docs.error}")

        for hit in docs.data["hits"]:
            preview = hit["body_preview"].lower()
            if "swagger" not in preview and "openapi" not in preview:
                continue
            await self.report_finding(
                context,
                title="Exposed API Documentation",
                description=f"API description published at {hit['url']}",
                severity=Severity.LOW,
                affected_asset=hit["url"],
                evidence={"status": hit["status"], "content_type": hit["content_type"]},
                cvss_score=score_for("info_disclosure"),
                cwe_id="CWE-200",
            )

        await context.checkpoint()

        management = await self.paths.run(base, paths=MANAGEMENT_PATHS)
        if management.status != ToolStatus.SUCCESS:
            raise RuntimeError(f"Management endpoint probe failed: {management.error}")

        cvss_score, severity = calculate_severity(cvss_defaults("management_endpoint"))
        for hit in management.data["hits"]:
            await self.report_finding(
                context,
                title="Exposed Management Endpoint",
                description=f"Unauthenticated management endpoint at {hit['url']}",
                severity=severity,
                affected_asset=hit["url"],
                evidence={
                    "status": hit["status"],
                    "content_type": hit["content_type"],
                    "preview": hit["body_preview"][:200],
                },
                cvss_score=cvss_score,
                cwe_id="CWE-215",
            )

        await self.log(
            context,
            "API assessment completed",
            LogStatus.COMPLETED,
            documentation_hits=len(docs.data["hits"]),
            management_hits=len(management.data["hits"]),
        )
