"""Cloud agent: discovers object storage buckets named after the target."""

from scanengine.core.models import LogStatus, Severity
from scanengine.core.severity import calculate_severity, cvss_defaults
from scanengine.tools import HttpPathProbeTool, ToolStatus, target_host

from .base import AgentContext, BaseAgent

BUCKET_SUFFIXES = ["", "-backup", "-backups", "-assets", "-static", "-dev", "-prod"]

# provider -> (URL template, marker of a listable bucket)
STORAGE_PROVIDERS: dict[str, tuple[str, str]] = {
    "aws-s3": ("https://{bucket}.s3.amazonaws.com/", "<ListBucketResult"),
    "gcp-storage": ("https://storage.googleapis.com/{bucket}/", "<ListBucketResult"),
}


def candidate_buckets(host: str) -> list[str]:
    """Derive likely bucket names from the registrable part of a hostname.

    Example:
        >>> candidate_buckets("www.acme.io")[:2]
        ['acme', 'acme-backup']
    """
    labels = [label for label in host.split(".") if label]
    base = labels[-2] if len(labels) >= 2 else (labels[0] if labels else host)
    return [f"{base}{suffix}" for suffix in BUCKET_SUFFIXES]


class CloudAgent(BaseAgent):
    """Tests cloud storage exposure.

    Config keys:
        buckets: Optional explicit list of bucket names to check
    """

    def __init__(self, probe_timeout: float = 10.0):
        super().__init__("Cloud Security Agent", "Tests cloud storage exposure")
        self.paths = HttpPathProbeTool(timeout=probe_timeout)

    async def execute(self, context: AgentContext) -> None:
        host = target_host(context.target)
        buckets = list(context.config.get("buckets") or candidate_buckets(host))
        await self.log(context, f"Checking {len(buckets)} candidate buckets", buckets=buckets)

        cvss_score, severity = calculate_severity(cvss_defaults("public_bucket"))
        discovered = 0

        for provider, (template, marker) in STORAGE_PROVIDERS.items():
            await context.checkpoint()
            urls = [template.format(bucket=bucket) for bucket in buckets]
            result = await self.paths.run("", paths=urls)
            if result.status != ToolStatus.SUCCESS:
                await self.log(context, f"{provider} probe failed: {result.error}", LogStatus.ERROR)
                continue

            for response, bucket in zip(result.data["responses"], buckets):
                status = response.get("status")
                if status == 200 and marker in response.get("body_preview", ""):
                    discovered += 1
                    await self.report_finding(
                        context,
                        title="Publicly Listable Storage Bucket",
                        description=f"Bucket '{bucket}' on {provider} allows anonymous listing",
                        severity=severity,
                        affected_asset=response["url"],
                        evidence={"provider": provider, "bucket": bucket, "status": status},
                        cvss_score=cvss_score,
                        cwe_id="CWE-284",
                    )
                elif status == 403:
                    discovered += 1
                    await self.report_finding(
                        context,
                        title="Storage Bucket Discovered",
                        description=f"Bucket '{bucket}' exists on {provider} but denies anonymous access",
                        severity=Severity.INFO,
                        affected_asset=response["url"],
                        evidence={"provider": provider, "bucket": bucket, "status": status},
                    )

        await self.log(
            context, "Cloud assessment completed", LogStatus.COMPLETED, buckets_found=discovered
        )
