"""IoT agent: probes device and industrial protocol ports."""

from scanengine.core.models import LogStatus, Severity
from scanengine.core.severity import calculate_severity, cvss_defaults
from scanengine.tools import PortProbeTool, ToolStatus, target_host

from .base import AgentContext, BaseAgent

# port -> (protocol, weakness class or None, description)
IOT_PORTS: dict[int, tuple[str, str | None, str]] = {
    23: ("Telnet", "unauthenticated_iot_protocol", "Telnet management console"),
    2323: ("Telnet (alt)", "unauthenticated_iot_protocol", "Alternate Telnet console common on embedded devices"),
    1883: ("MQTT", "unauthenticated_iot_protocol", "MQTT broker without transport encryption"),
    8883: ("MQTT over TLS", None, "MQTT broker over TLS"),
    502: ("Modbus/TCP", "unauthenticated_iot_protocol", "Modbus has no authentication"),
    102: ("Siemens S7", "unauthenticated_iot_protocol", "S7comm PLC protocol"),
    554: ("RTSP", "remote_admin_service", "Camera/streaming control"),
    7547: ("TR-069 CWMP", "remote_admin_service", "CPE remote management"),
}


class IoTAgent(BaseAgent):
    """Tests IoT and OT protocol exposure."""

    def __init__(self, probe_timeout: float = 5.0):
        super().__init__("IoT Security Agent", "Tests IoT device and industrial protocol exposure")
        self.ports = PortProbeTool(timeout=probe_timeout)

    async def execute(self, context: AgentContext) -> None:
        host = target_host(context.target)
        await self.log(context, f"Probing {len(IOT_PORTS)} IoT protocol ports on {host}")

        result = await self.ports.run(host, ports=list(IOT_PORTS))
        if result.status != ToolStatus.SUCCESS:
            raise RuntimeError(f"IoT port probe failed: {result.error}")

        for port in result.data["open_ports"]:
            await context.checkpoint()
            protocol, weakness, description = IOT_PORTS[port]
            if weakness is None:
                severity, cvss_score = Severity.INFO, None
            else:
                cvss_score, severity = calculate_severity(cvss_defaults(weakness))

            await self.report_finding(
                context,
                title=f"Exposed {protocol} Service",
                description=f"{description} reachable on {host}:{port}",
                severity=severity,
                affected_asset=f"{host}:{port}",
                evidence={"host": host, "port": port, "protocol": protocol},
                cvss_score=cvss_score,
                cwe_id="CWE-306" if weakness == "unauthenticated_iot_protocol" else None,
            )

        await self.log(
            context,
            "IoT assessment completed",
            LogStatus.COMPLETED,
            open_ports=result.data["open_ports"],
        )
