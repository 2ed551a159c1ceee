"""HTTP security header check (pure Python, no binary).

Fetches a URL and reports missing security headers, CORS misconfigurations
and headers that disclose server technology.

Provides:
- REQUIRED_HEADERS: Security headers checked, with their purpose and severity
- SecurityHeadersTool: aiohttp-based header analysis
"""

import asyncio
import time

import aiohttp

from .base import ToolResult, ToolStatus

REQUIRED_HEADERS: dict[str, tuple[str, str]] = {
    "Strict-Transport-Security": ("Prevents HTTPS downgrade attacks", "medium"),
    "Content-Security-Policy": ("Prevents XSS and injection attacks", "medium"),
    "X-Frame-Options": ("Prevents clickjacking attacks", "low"),
    "X-Content-Type-Options": ("Prevents MIME sniffing attacks", "low"),
    "Referrer-Policy": ("Controls referrer information leakage", "low"),
    "Permissions-Policy": ("Controls browser feature access", "low"),
}


def _header(headers: dict[str, str], name: str) -> str | None:
    """Case-insensitive header lookup."""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


class SecurityHeadersTool:
    """Security header analysis over a single GET request.

    Args:
        timeout: Total request timeout in seconds
    """

    name = "security_headers"

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    def analyze(self, headers: dict[str, str]) -> dict:
        """Analyze a response header mapping.

        Returns:
            Dict with missing_headers, present_headers, cors_issues,
            info_disclosure and score (0-100 share of required headers present)
        """
        missing_headers = []
        present_headers = {}
        for header, (purpose, severity) in REQUIRED_HEADERS.items():
            value = _header(headers, header)
            if value is None:
                missing_headers.append(
                    {"header": header, "purpose": purpose, "severity": severity}
                )
            else:
                present_headers[header] = value

        cors_issues = []
        origin = _header(headers, "Access-Control-Allow-Origin")
        credentials = _header(headers, "Access-Control-Allow-Credentials")
        if origin == "*":
            if credentials and credentials.lower() == "true":
                cors_issues.append({
                    "issue": "Dangerous CORS configuration",
                    "value": f"Credentials: {credentials}, Origin: {origin}",
                    "severity": "high",
                    "description": "Credentials allowed together with a wildcard origin",
                })
            else:
                cors_issues.append({
                    "issue": "Wildcard CORS origin",
                    "value": origin,
                    "severity": "medium",
                    "description": "Allows any origin to read responses",
                })

        info_disclosure = []
        server = _header(headers, "Server")
        if server and any(char.isdigit() for char in server):
            info_disclosure.append({
                "header": "Server",
                "value": server,
                "description": "Server version information disclosed",
            })
        powered_by = _header(headers, "X-Powered-By")
        if powered_by:
            info_disclosure.append({
                "header": "X-Powered-By",
                "value": powered_by,
                "description": "Technology stack information disclosed",
            })

        return {
            "missing_headers": missing_headers,
            "present_headers": present_headers,
            "cors_issues": cors_issues,
            "info_disclosure": info_disclosure,
            "score": int(len(present_headers) / len(REQUIRED_HEADERS) * 100),
        }

    async def run(self, target: str, **kwargs) -> ToolResult:
        """Fetch target and analyze its response headers.

        Args:
            target: URL including scheme (e.g., https://example.com)

        Returns:
            ToolResult whose data is analyze()'s output plus url and status_code
        """
        start = time.monotonic()
        timeout = aiohttp.ClientTimeout(total=kwargs.get("timeout", self.timeout))

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(target, allow_redirects=True) as response:
                    headers = dict(response.headers)
                    data = self.analyze(headers)
                    data.update({"url": target, "status_code": response.status})
                    return ToolResult(
                        status=ToolStatus.SUCCESS,
                        data=data,
                        raw_output=str(headers),
                        duration_seconds=time.monotonic() - start,
                    )
        except aiohttp.ClientError as e:
            return ToolResult(
                status=ToolStatus.ERROR,
                data={"url": target},
                error=f"Connection error: {e}",
                duration_seconds=time.monotonic() - start,
            )
        except asyncio.TimeoutError as e:
            return ToolResult(
                status=ToolStatus.TIMEOUT,
                data={"url": target},
                error=f"Timed out: {e}",
                duration_seconds=time.monotonic() - start,
            )
