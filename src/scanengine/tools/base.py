"""Base tool protocol and shared infrastructure for agent probes.

Provides:
- Tool protocol for consistent probe interface
- ToolResult dataclass for structured probe output
- ToolStatus enum
- target_host / target_url helpers for normalizing scan targets
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlsplit


class ToolStatus(str, Enum):
    """Probe execution status."""
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass
class ToolResult:
    """Structured result from a probe execution."""
    status: ToolStatus
    data: dict[str, Any] = field(default_factory=dict)
    raw_output: str = ""
    error: str = ""
    duration_seconds: float = 0.0


@runtime_checkable
class Tool(Protocol):
    """Protocol for probe tools."""
    name: str

    async def run(self, target: str, **kwargs) -> ToolResult:
        """Execute probe on target."""
        ...


def target_host(target: str) -> str:
    """Extract the bare hostname from a target string.

    Accepts URLs ("https://example.com/app"), host:port pairs and bare hosts.

    Example:
        >>> target_host("https://Example.com:8443/login")
        'example.com'
    """
    candidate = target.strip()
    if "://" not in candidate:
        candidate = f"//{candidate}"
    host = urlsplit(candidate).hostname
    return host or target.strip().lower()


def target_url(target: str, default_scheme: str = "https") -> str:
    """Return the target as a URL without trailing slash, adding a scheme if missing."""
    candidate = target.strip()
    if "://" not in candidate:
        candidate = f"{default_scheme}://{candidate}"
    return candidate.rstrip("/")
