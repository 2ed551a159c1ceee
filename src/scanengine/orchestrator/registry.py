"""Agent registry: agent-type identifier -> agent instance.

Built once at startup and read-only afterwards, so concurrent scans can
resolve agents without locking.

Provides:
- AGENT_TYPES: Stable enumeration of agent-type identifiers
- AGENT_TYPE_ALIASES: Legacy identifiers still accepted by resolve()
- AgentRegistry: Immutable mapping with alias-aware resolve()
- build_default_registry: Registry holding the six built-in agents
"""

from types import MappingProxyType
from typing import Iterator, Mapping

from scanengine.agents import (
    APIAgent,
    BaseAgent,
    CloudAgent,
    ConfigAgent,
    IoTAgent,
    NetworkAgent,
    WebAppAgent,
)
from scanengine.core.config import Config, load_config
from scanengine.core.errors import UnknownAgentTypeError

AGENT_TYPES = ("network", "web-application", "api", "cloud", "iot", "configuration")

AGENT_TYPE_ALIASES = MappingProxyType({
    "webapp": "web-application",
    "web": "web-application",
    "config": "configuration",
})


def canonical_agent_type(agent_type: str) -> str:
    """Normalize an identifier and map legacy aliases to the canonical type."""
    normalized = agent_type.strip().lower()
    return AGENT_TYPE_ALIASES.get(normalized, normalized)


class AgentRegistry(Mapping[str, BaseAgent]):
    """Read-only mapping of agent types to agent instances.

    Args:
        agents: Agent type -> agent. Keys are normalized on construction.
    """

    def __init__(self, agents: Mapping[str, BaseAgent] | None = None):
        self._agents = MappingProxyType(
            {canonical_agent_type(t): agent for t, agent in (agents or {}).items()}
        )

    def __getitem__(self, agent_type: str) -> BaseAgent:
        return self._agents[canonical_agent_type(agent_type)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._agents)

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_type: object) -> bool:
        return isinstance(agent_type, str) and canonical_agent_type(agent_type) in self._agents

    def resolve(self, agent_type: str) -> BaseAgent:
        """Look up the agent for a type.

        Raises:
            UnknownAgentTypeError: If no agent is registered for the type
        """
        try:
            return self[agent_type]
        except KeyError:
            raise UnknownAgentTypeError(agent_type) from None

    def available_agents(self) -> list[dict[str, str]]:
        """Describe registered agents for discovery by callers."""
        return [
            {"type": agent_type, "name": agent.get_name(), "description": agent.get_description()}
            for agent_type, agent in self._agents.items()
        ]


def build_default_registry(config: Config | None = None) -> AgentRegistry:
    """Create the registry with all built-in agents.

    Args:
        config: Engine configuration (probe timeouts); loaded from env if None
    """
    config = config or load_config()
    timeout = config.probe_timeout_seconds
    return AgentRegistry({
        "network": NetworkAgent(probe_timeout=timeout),
        "web-application": WebAppAgent(probe_timeout=timeout),
        "api": APIAgent(probe_timeout=timeout),
        "cloud": CloudAgent(probe_timeout=timeout),
        "iot": IoTAgent(probe_timeout=timeout),
        "configuration": ConfigAgent(),
    })
