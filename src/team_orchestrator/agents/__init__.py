"""Agent-Paket.

Enthält die Executor-Grenze des Orchestrators:
- BaseAgent: Abstrakte Basis für alle Agents
- AgentPool: Rollenname → Agent
- EchoAgent: Offline-Agent für CLI und Tests
"""

from __future__ import annotations

from .base import (
    AgentPool,
    AgentResult,
    AgentStatus,
    BaseAgent,
    ExecutionOptions,
)
from .echo import EchoAgent

__all__ = [
    "BaseAgent",
    "AgentPool",
    "AgentResult",
    "AgentStatus",
    "ExecutionOptions",
    "EchoAgent",
]
