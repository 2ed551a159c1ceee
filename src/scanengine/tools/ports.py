"""TCP connect port probe.

Opens plain TCP connections to a list of ports and reports which accepted.
No raw sockets or external binaries, so it works unprivileged everywhere.
"""

import asyncio
import time

import structlog

from .base import ToolResult, ToolStatus

logger = structlog.get_logger()


class PortProbeTool:
    """Concurrent TCP connect probe with a concurrency limit.

    Args:
        timeout: Per-connection timeout in seconds
        max_concurrent: Maximum simultaneous connection attempts
    """

    name = "port_probe"

    def __init__(self, timeout: float = 5.0, max_concurrent: int = 20):
        self.timeout = timeout
        self.max_concurrent = max_concurrent
        self.log = logger.bind(tool=self.name)

    async def _probe(self, host: str, port: int, semaphore: asyncio.Semaphore) -> bool:
        async with semaphore:
            try:
                _, writer = await asyncio.wait_for(
                    asyncio.open_connection(host, port), timeout=self.timeout
                )
            except (OSError, asyncio.TimeoutError):
                return False
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass
            return True

    async def run(self, target: str, **kwargs) -> ToolResult:
        """Probe ports on a host.

        Args:
            target: Hostname or IP address
            **kwargs:
                ports: Iterable of port numbers to probe

        Returns:
            ToolResult with data:
                host: str
                open_ports: list[int] (sorted)
                probed: int
        """
        ports = sorted(set(kwargs.get("ports", [])))
        start = time.monotonic()
        semaphore = asyncio.Semaphore(self.max_concurrent)

        try:
            results = await asyncio.gather(*(self._probe(target, port, semaphore) for port in ports))
        except Exception as e:
            self.log.error("port_probe_failed", host=target, error=str(e))
            return ToolResult(
                status=ToolStatus.ERROR,
                data={"host": target},
                error=str(e),
                duration_seconds=time.monotonic() - start,
            )

        open_ports = [port for port, is_open in zip(ports, results) if is_open]
        self.log.debug("port_probe_complete", host=target, open_ports=open_ports)
        return ToolResult(
            status=ToolStatus.SUCCESS,
            data={"host": target, "open_ports": open_ports, "probed": len(ports)},
            duration_seconds=time.monotonic() - start,
        )
