"""Configuration review agent.

Reviews a flat mapping of configuration settings supplied with the scan
(``config["settings"]``, or the scan config itself when no nested settings are
given) against a fixed rule set. Pure analysis, no network access.
"""

from dataclasses import dataclass
from typing import Any, Callable, Mapping

from scanengine.core.models import LogStatus, Severity
from scanengine.core.severity import calculate_severity, cvss_defaults

from .base import AgentContext, BaseAgent

WEAK_TLS_VERSIONS = {"sslv3", "tlsv1", "tlsv1.0", "tlsv1.1", "1.0", "1.1"}
DEFAULT_PASSWORDS = {"", "admin", "password", "changeme", "root", "123456", "default"}


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _falsy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"0", "false", "no", "off"}
    return value is False


@dataclass(frozen=True)
class ConfigRule:
    """A single configuration check."""

    key: str
    title: str
    description: str
    cwe_id: str
    matches: Callable[[Any], bool]
    severity: Severity | None = None  # None: derive from CVSS


RULES = [
    ConfigRule(
        key="debug",
        title="Debug Mode Enabled",
        description="Debug mode exposes stack traces and internals to clients",
        cwe_id="CWE-489",
        matches=_truthy,
    ),
    ConfigRule(
        key="tls_min_version",
        title="Weak TLS Version Allowed",
        description="Protocol versions below TLS 1.2 are accepted",
        cwe_id="CWE-326",
        matches=lambda v: str(v).strip().lower() in WEAK_TLS_VERSIONS,
    ),
    ConfigRule(
        key="cors_allow_origins",
        title="Wildcard CORS Policy",
        description="Any origin may read authenticated responses",
        cwe_id="CWE-942",
        matches=lambda v: "*" in (v if isinstance(v, (list, tuple, set)) else str(v).split(",")),
        severity=Severity.MEDIUM,
    ),
    ConfigRule(
        key="session_cookie_secure",
        title="Session Cookie Sent Without Secure Flag",
        description="Session cookies may travel over plaintext HTTP",
        cwe_id="CWE-614",
        matches=_falsy,
        severity=Severity.MEDIUM,
    ),
    ConfigRule(
        key="directory_listing",
        title="Directory Listing Enabled",
        description="Directory contents are browsable",
        cwe_id="CWE-548",
        matches=_truthy,
        severity=Severity.LOW,
    ),
]


class ConfigAgent(BaseAgent):
    """Reviews supplied configuration for insecure settings."""

    def __init__(self):
        super().__init__("Configuration Review Agent", "Reviews configuration for insecure settings")

    def review(self, settings: Mapping[str, Any]) -> list[dict]:
        """Apply the rule set to settings.

        Returns:
            Finding field dicts (without affected_asset) for every violation
        """
        cvss_score, derived = calculate_severity(cvss_defaults("insecure_configuration"))
        normalized = {str(k).lower(): v for k, v in settings.items()}
        violations = []

        for rule in RULES:
            if rule.key in normalized and rule.matches(normalized[rule.key]):
                violations.append({
                    "title": rule.title,
                    "description": rule.description,
                    "severity": rule.severity or derived,
                    "evidence": {"setting": rule.key, "value": normalized[rule.key]},
                    "cvss_score": cvss_score,
                    "cwe_id": rule.cwe_id,
                })

        for key, value in normalized.items():
            if "password" in key and str(value).strip().lower() in DEFAULT_PASSWORDS:
                violations.append({
                    "title": "Default or Empty Credential",
                    "description": f"Setting '{key}' holds a default or empty password",
                    "severity": Severity.HIGH,
                    "evidence": {"setting": key},
                    "cwe_id": "CWE-1392",
                })

        return violations

    async def execute(self, context: AgentContext) -> None:
        settings = context.config.get("settings", context.config)
        if not isinstance(settings, Mapping) or not settings:
            await self.log(context, "No configuration supplied; nothing to review", LogStatus.COMPLETED)
            return

        await self.log(context, f"Reviewing {len(settings)} configuration settings")
        await context.checkpoint()

        violations = self.review(settings)
        for violation in violations:
            await self.report_finding(context, affected_asset=context.target, **violation)

        await self.log(
            context,
            "Configuration review completed",
            LogStatus.COMPLETED,
            violations=len(violations),
        )
