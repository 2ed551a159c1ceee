"""Network agent: resolves the target and probes commonly exposed services."""

import asyncio
import socket

from scanengine.core.models import LogStatus, Severity
from scanengine.core.severity import calculate_severity, cvss_defaults
from scanengine.tools import PortProbeTool, ToolStatus, target_host

from .base import AgentContext, BaseAgent

# port -> (service, weakness class or None when exposure alone is informational)
COMMON_PORTS: dict[int, tuple[str, str | None]] = {
    21: ("FTP", "cleartext_service"),
    22: ("SSH", None),
    23: ("Telnet", "cleartext_service"),
    25: ("SMTP", None),
    80: ("HTTP", None),
    443: ("HTTPS", None),
    445: ("SMB", "remote_admin_service"),
    1433: ("MSSQL", "exposed_database"),
    3306: ("MySQL", "exposed_database"),
    3389: ("RDP", "remote_admin_service"),
    5432: ("PostgreSQL", "exposed_database"),
    5900: ("VNC", "remote_admin_service"),
    6379: ("Redis", "exposed_database"),
    9200: ("Elasticsearch", "exposed_database"),
    27017: ("MongoDB", "exposed_database"),
}

_CWE = {
    "cleartext_service": "CWE-319",
    "remote_admin_service": "CWE-284",
    "exposed_database": "CWE-200",
}


class NetworkAgent(BaseAgent):
    """Tests network infrastructure and exposed services.

    Config keys:
        ports: Optional list of ports overriding COMMON_PORTS
    """

    def __init__(self, probe_timeout: float = 5.0):
        super().__init__("Network Penetration Agent", "Tests network infrastructure and services")
        self.ports = PortProbeTool(timeout=probe_timeout)

    async def _resolve(self, host: str) -> list[str]:
        loop = asyncio.get_running_loop()
        infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
        return sorted({info[4][0] for info in infos})

    async def execute(self, context: AgentContext) -> None:
        host = target_host(context.target)
        await self.log(context, f"Starting network assessment of {host}")

        try:
            addresses = await self._resolve(host)
        except OSError as e:
            raise RuntimeError(f"Could not resolve {host}: {e}") from e
        await self.log(
            context, f"Resolved {host} to {len(addresses)} address(es)", addresses=addresses
        )

        await context.checkpoint()

        ports = [int(p) for p in context.config.get("ports", COMMON_PORTS)]
        await self.log(context, f"Probing {len(ports)} ports", ports=ports)
        result = await self.ports.run(host, ports=ports)
        if result.status != ToolStatus.SUCCESS:
            raise RuntimeError(f"Port probe failed: {result.error}")

        open_ports = result.data["open_ports"]
        for port in open_ports:
            await context.checkpoint()
            service, weakness = COMMON_PORTS.get(port, (f"port {port}", None))
            await self.log(context, f"Port {port}/{service} is open", LogStatus.COMPLETED)

            if weakness is None:
                severity, cvss_score = Severity.INFO, None
            else:
                cvss_score, severity = calculate_severity(cvss_defaults(weakness))

            await self.report_finding(
                context,
                title=f"Open {service} Port ({port})",
                description=f"Port {port} running {service} is reachable on {host}",
                severity=severity,
                affected_asset=f"{host}:{port}",
                evidence={"host": host, "port": port, "service": service, "addresses": addresses},
                cvss_score=cvss_score,
                cwe_id=_CWE.get(weakness),
            )

        await self.log(
            context,
            "Network assessment completed",
            LogStatus.COMPLETED,
            open_ports=open_ports,
        )
