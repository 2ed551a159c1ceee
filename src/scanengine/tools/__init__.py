"""Probe tools used by the concrete agents.

Provides:
- Base tool protocol and target helpers
- PortProbeTool for TCP connect probes
- SecurityHeadersTool for HTTP security header analysis
- HttpPathProbeTool for exposed path discovery
"""

from .base import Tool, ToolResult, ToolStatus, target_host, target_url
from .ports import PortProbeTool
from .headers import SecurityHeadersTool
from .http_paths import HttpPathProbeTool

__all__ = [
    "Tool",
    "ToolResult",
    "ToolStatus",
    "target_host",
    "target_url",
    "PortProbeTool",
    "SecurityHeadersTool",
    "HttpPathProbeTool",
]
