"""HTTP path probe.

Requests a list of paths (or absolute URLs) and records the status code,
content type and a short body preview of each response. Agents decide what
a hit means; the probe only collects.
"""

import asyncio
import time

import aiohttp
import structlog

from .base import ToolResult, ToolStatus

logger = structlog.get_logger()

PREVIEW_BYTES = 512


class HttpPathProbeTool:
    """Probe paths relative to a base URL.

    Args:
        timeout: Per-request timeout in seconds
        max_concurrent: Maximum simultaneous requests
    """

    name = "http_paths"

    def __init__(self, timeout: float = 10.0, max_concurrent: int = 5):
        self.timeout = timeout
        self.max_concurrent = max_concurrent
        self.log = logger.bind(tool=self.name)

    async def _fetch(
        self,
        session: aiohttp.ClientSession,
        semaphore: asyncio.Semaphore,
        base_url: str,
        path: str,
    ) -> dict:
        url = path if path.startswith(("http://", "https://")) else f"{base_url}{path}"
        async with semaphore:
            try:
                async with session.get(url, allow_redirects=False) as response:
                    body = await response.content.read(PREVIEW_BYTES)
                    return {
                        "path": path,
                        "url": url,
                        "status": response.status,
                        "content_type": response.headers.get("Content-Type", ""),
                        "body_preview": body.decode("utf-8", errors="replace"),
                    }
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                return {"path": path, "url": url, "status": None, "error": str(e)}

    async def run(self, target: str, **kwargs) -> ToolResult:
        """Request each path against target.

        Args:
            target: Base URL including scheme, without trailing slash
            **kwargs:
                paths: List of paths ("/.env") or absolute URLs

        Returns:
            ToolResult with data:
                base_url: str
                responses: list[dict] (path, url, status, content_type, body_preview)
                hits: subset of responses with HTTP 200
        """
        paths = list(kwargs.get("paths", []))
        start = time.monotonic()
        semaphore = asyncio.Semaphore(self.max_concurrent)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                responses = await asyncio.gather(
                    *(self._fetch(session, semaphore, target, path) for path in paths)
                )
        except aiohttp.ClientError as e:
            self.log.error("path_probe_failed", base_url=target, error=str(e))
            return ToolResult(
                status=ToolStatus.ERROR,
                data={"base_url": target},
                error=str(e),
                duration_seconds=time.monotonic() - start,
            )

        hits = [r for r in responses if r.get("status") == 200]
        return ToolResult(
            status=ToolStatus.SUCCESS,
            data={"base_url": target, "responses": list(responses), "hits": hits},
            duration_seconds=time.monotonic() - start,
        )
