"""Agents run by the orchestrator.

Provides:
- AgentContext / BaseAgent contract
- NetworkAgent, WebAppAgent, APIAgent, CloudAgent, IoTAgent, ConfigAgent
"""

from .base import AgentContext, BaseAgent
from .network import NetworkAgent
from .webapp import WebAppAgent
from .api import APIAgent
from .cloud import CloudAgent
from .iot import IoTAgent
from .configuration import ConfigAgent

__all__ = [
    "AgentContext",
    "BaseAgent",
    "NetworkAgent",
    "WebAppAgent",
    "APIAgent",
    "CloudAgent",
    "IoTAgent",
    "ConfigAgent",
]
