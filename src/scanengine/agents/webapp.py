"""Web application agent: security headers, CORS policy and exposed files."""

from scanengine.core.models import LogStatus, Severity
from scanengine.core.severity import score_for
from scanengine.tools import HttpPathProbeTool, SecurityHeadersTool, ToolStatus, target_url

from .base import AgentContext, BaseAgent

# path -> (title, marker expected in the body, severity)
SENSITIVE_PATHS: dict[str, tuple[str, str | None, Severity]] = {
    "/.git/HEAD": ("Exposed Git Repository", "ref:", Severity.HIGH),
    "/.env": ("Exposed Environment File", "=", Severity.HIGH),
    "/server-status": ("Apache Server Status Exposed", "Apache", Severity.MEDIUM),
    "/phpinfo.php": ("phpinfo() Page Exposed", "phpinfo", Severity.MEDIUM),
    "/backup.zip": ("Backup Archive Exposed", None, Severity.HIGH),
}


class WebAppAgent(BaseAgent):
    """Tests a web application's HTTP hardening."""

    def __init__(self, probe_timeout: float = 10.0):
        super().__init__("Web Application Agent", "Tests web application security headers and exposures")
        self.headers = SecurityHeadersTool(timeout=probe_timeout)
        self.paths = HttpPathProbeTool(timeout=probe_timeout)

    async def execute(self, context: AgentContext) -> None:
        url = target_url(context.target)
        await self.log(context, f"Starting web application assessment of {url}")

        result = await self.headers.run(url)
        if result.status != ToolStatus.SUCCESS:
            raise RuntimeError(f"Could not reach {url}: {result.error}")
        await self.log(
            context,
            f"Security header score: {result.data['score']}%",
            LogStatus.COMPLETED,
            present=list(result.data["present_headers"]),
        )

        for missing in result.data["missing_headers"]:
            await self.report_finding(
                context,
                title=f"Missing {missing['header']} Header",
                description=f"{url} does not send {missing['header']}. {missing['purpose']}.",
                severity=missing["severity"],
                affected_asset=url,
                evidence={"header": missing["header"], "status_code": result.data["status_code"]},
                cvss_score=score_for("missing_security_header"),
                cwe_id="CWE-693",
            )

        for issue in result.data["cors_issues"]:
            await self.report_finding(
                context,
                title=issue["issue"],
                description=f"{issue['description']} on {url}",
                severity=issue["severity"],
                affected_asset=url,
                evidence={"value": issue["value"]},
                cwe_id="CWE-942",
            )

        if result.data["info_disclosure"]:
            headers = {item["header"]: item["value"] for item in result.data["info_disclosure"]}
            await self.report_finding(
                context,
                title="Server Technology Disclosure",
                description=f"{url} discloses its software stack in response headers",
                severity=Severity.INFO,
                affected_asset=url,
                evidence={"headers": headers},
                cvss_score=score_for("info_disclosure"),
                cwe_id="CWE-200",
            )

        await context.checkpoint()

        await self.log(context, f"Checking {len(SENSITIVE_PATHS)} sensitive paths")
        probe = await self.paths.run(url, paths=list(SENSITIVE_PATHS))
        if probe.status != ToolStatus.SUCCESS:
            await self.log(context, f"Sensitive path check failed: {probe.error}", LogStatus.ERROR)
        else:
            for hit in probe.data["hits"]:
                title, marker, severity = SENSITIVE_PATHS[hit["path"]]
                if marker and marker not in hit["body_preview"]:
                    continue
                await self.report_finding(
                    context,
                    title=title,
                    description=f"{hit['url']} is publicly readable",
                    severity=severity,
                    affected_asset=hit["url"],
                    evidence={
                        "status": hit["status"],
                        "content_type": hit["content_type"],
                        "preview": hit["body_preview"][:200],
                    },
                    cvss_score=score_for("sensitive_file_exposure"),
                    cwe_id="CWE-538",
                )

        await self.log(context, "Web application assessment completed", LogStatus.COMPLETED)
