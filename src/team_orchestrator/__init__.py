"""Team Orchestrator - Koordination eines KI-Entwicklerteams.

Ein Ziel in natürlicher Sprache wird vom Planungs-Agent in Tasks zerlegt,
jeder Task per Entscheidungstabelle einer Rolle zugewiesen und mit einer
von vier Strategien ausgeführt:
- sequential: ein Task nach dem anderen
- parallel: Batches mit begrenzter Nebenläufigkeit
- hierarchical: nach Priorität sortiert, dann sequentiell
- collaborative: Primär-Durchlauf plus Review durch eine zweite Rolle

Beispiel:
    >>> from src.team_orchestrator import AgentOrchestrator, AgentPool, EchoAgent, RoleRegistry
    >>> pool = AgentPool.from_registry(RoleRegistry.default(), EchoAgent)
    >>> result = asyncio.run(AgentOrchestrator(pool).orchestrate("Add dark mode"))
    >>> print(result.success)
    True
"""

from __future__ import annotations

from .agents import AgentPool, AgentResult, BaseAgent, EchoAgent, ExecutionOptions
from .decomposer import TaskBreakdownParser, TaskDecomposer
from .errors import (
    AgentExecutionError,
    AgentTimeoutError,
    ConfigurationError,
    DecompositionError,
    ErrorCode,
    InvalidTransitionError,
    OrchestratorBusyError,
    OrchestratorError,
    TaskParseError,
    UnknownRoleError,
)
from .events import (
    CompletionEvent,
    EventSink,
    InMemoryEventSink,
    JsonlEventSink,
    SqliteEventStore,
    Timeline,
    TimelineEvent,
)
from .models import (
    ContributionMap,
    OrchestrationStrategy,
    StrategyType,
    Task,
    TaskBoard,
    TaskPriority,
    TaskStatus,
)
from .orchestrator import (
    AgentOrchestrator,
    OrchestrateOptions,
    OrchestrationResult,
    OrchestratorConfig,
)
from .roles import RoleDefinition, RoleRegistry, Specialization
from .selector import AgentSelector, SelectionRule
from .strategies import StrategyOutcome, build_strategy

__all__ = [
    "AgentOrchestrator",
    "OrchestratorConfig",
    "OrchestrateOptions",
    "OrchestrationResult",
    "AgentPool",
    "AgentResult",
    "BaseAgent",
    "EchoAgent",
    "ExecutionOptions",
    "TaskDecomposer",
    "TaskBreakdownParser",
    "AgentSelector",
    "SelectionRule",
    "StrategyOutcome",
    "build_strategy",
    "RoleDefinition",
    "RoleRegistry",
    "Specialization",
    "Task",
    "TaskBoard",
    "TaskPriority",
    "TaskStatus",
    "StrategyType",
    "OrchestrationStrategy",
    "ContributionMap",
    "Timeline",
    "TimelineEvent",
    "CompletionEvent",
    "EventSink",
    "InMemoryEventSink",
    "SqliteEventStore",
    "JsonlEventSink",
    "OrchestratorError",
    "ErrorCode",
    "ConfigurationError",
    "UnknownRoleError",
    "DecompositionError",
    "TaskParseError",
    "AgentExecutionError",
    "AgentTimeoutError",
    "InvalidTransitionError",
    "OrchestratorBusyError",
]
