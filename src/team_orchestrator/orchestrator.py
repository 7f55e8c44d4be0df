"""Team-Orchestrator - Fassade über Zerlegung, Auswahl und Strategien.

Ein Lauf:
1. Timeline "Task analysis started", Zerlegung, "Task breakdown completed"
2. Ausführung mit der gewählten Strategie
3. Genau ein ``taskCompleted``-Event an alle Sinks, Rückgabe des Ergebnisses

Zerlegungs- und Konfigurationsfehler werden geworfen, ohne dass ein Event
emittiert wird. Task-Fehler stecken im Ergebnis (``success=False``).

Beispiel:
    >>> pool = AgentPool.from_registry(RoleRegistry.default(), EchoAgent)
    >>> orchestrator = AgentOrchestrator(pool)
    >>> result = await orchestrator.orchestrate("Fix login bug and add dark mode")
    >>> result.success
    True
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable

from .agents.base import DEFAULT_TIMEOUT_SECONDS, AgentPool
from .decomposer import TaskDecomposer
from .errors import ConfigurationError, OrchestratorBusyError, UnknownRoleError
from .events import CompletionEvent, EventSink, Timeline
from .models import (
    ContributionMap,
    OrchestrationStrategy,
    StrategyType,
    Task,
    TaskBoard,
    TaskPriority,
    TaskStatus,
    to_jsonable,
    utc_now,
)
from .roles import RoleRegistry
from .selector import AgentSelector
from .strategies import RunContext, StrategyOutcome, build_strategy

logger = logging.getLogger(__name__)


@dataclass
class OrchestratorConfig:
    """Konfiguration für den AgentOrchestrator.

    Attributes:
        strategy: Standard-Strategie, wenn der Aufrufer keine angibt
        timeout_seconds: Zeitlimit pro Agent-Aufruf
        history_limit: Anzahl gespeicherter Läufe für Statistiken
    """

    strategy: OrchestrationStrategy = field(default_factory=OrchestrationStrategy)
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    history_limit: int = 100

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ConfigurationError(
                f"timeout_seconds must be > 0, got {self.timeout_seconds}"
            )


@dataclass
class OrchestrateOptions:
    """Optionen eines einzelnen ``orchestrate()``-Aufrufs.

    Attributes:
        strategy: Strategie-Typ für diesen Lauf (Default aus der Konfiguration)
        priority: Priorität des Fallback-Tasks
        required_roles: Rollen, die der Planungs-Agent berücksichtigen soll
        session_id: Optionale ID des Laufs (sonst generiert)
    """

    strategy: StrategyType | str | None = None
    priority: TaskPriority | str | None = None
    required_roles: list[str] = field(default_factory=list)
    session_id: str | None = None


@dataclass
class OrchestrationResult:
    """Ergebnis eines Orchestrierungs-Laufs."""

    session_id: str
    strategy: OrchestrationStrategy
    success: bool
    result: StrategyOutcome
    task_breakdown: list[Task]
    agent_contributions: ContributionMap
    timeline: Timeline
    started_at: datetime
    completed_at: datetime

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def failed_tasks(self) -> list[Task]:
        return [t for t in self.task_breakdown if t.status == TaskStatus.FAILED]

    def to_dict(self) -> dict[str, Any]:
        """Konvertiere zu Dictionary für Serialisierung."""
        return {
            "session_id": self.session_id,
            "strategy": self.strategy.to_dict(),
            "success": self.success,
            "result": self.result.to_dict(),
            "task_breakdown": [t.to_dict() for t in self.task_breakdown],
            "agent_contributions": to_jsonable(self.agent_contributions.to_dict()),
            "timeline": self.timeline.to_list(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": self.duration_seconds,
        }


class AgentOrchestrator:
    """Koordiniert ein Team aus Rollen-Agenten für ein Entwicklungsziel.

    Pro Instanz läuft höchstens eine Orchestrierung gleichzeitig; ein
    zweiter paralleler Aufruf wirft OrchestratorBusyError.

    Args:
        pool: Agent-Pool mit einem Agent pro Rolle der Registry
        registry: Rollen-Registry (Default: Standard-Team)
        config: Orchestrator-Konfiguration
        sinks: Empfänger für das ``taskCompleted``-Event
    """

    def __init__(
        self,
        pool: AgentPool,
        registry: RoleRegistry | None = None,
        config: OrchestratorConfig | None = None,
        sinks: Iterable[EventSink] | None = None,
    ) -> None:
        self.registry = registry or RoleRegistry.default()
        self.pool = pool
        self.config = config or OrchestratorConfig()

        missing = [name for name in self.registry.names() if name not in self.pool]
        if missing:
            raise UnknownRoleError(missing[0], missing=missing)

        self.selector = AgentSelector(self.registry)
        self.decomposer = TaskDecomposer(
            self.registry, self.pool, timeout_seconds=self.config.timeout_seconds
        )

        self._sinks: list[EventSink] = list(sinks or [])
        self._lock = asyncio.Lock()
        self._current_board: TaskBoard | None = None
        self._history: list[OrchestrationResult] = []
        self._completed_task_count = 0

        logger.info(
            f"AgentOrchestrator initialized "
            f"(roles: {', '.join(self.registry.names())}, "
            f"default strategy: {self.config.strategy.type.value})"
        )

    def add_sink(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    def resolve_policy(self, strategy: StrategyType | str | None) -> OrchestrationStrategy:
        """Strategie für einen Lauf: Konfiguration, ggf. mit anderem Typ."""
        if strategy is None:
            return self.config.strategy
        return replace(self.config.strategy, type=StrategyType.parse(strategy))

    async def orchestrate(
        self, goal: str, options: OrchestrateOptions | None = None
    ) -> OrchestrationResult:
        """Führt einen kompletten Orchestrierungs-Lauf aus.

        Raises:
            ConfigurationError: Bei leerem Ziel, unbekannter Strategie oder Rolle
            DecompositionError: Wenn der Planungs-Agent fehlschlägt
            OrchestratorBusyError: Wenn auf der Instanz bereits ein Lauf aktiv ist
        """
        if self._lock.locked():
            raise OrchestratorBusyError("An orchestration is already running on this instance")

        async with self._lock:
            return await self._orchestrate(goal, options or OrchestrateOptions())

    async def _orchestrate(self, goal: str, options: OrchestrateOptions) -> OrchestrationResult:
        if not goal or not goal.strip():
            raise ConfigurationError("Goal must not be empty")

        policy = self.resolve_policy(options.strategy)
        strategy = build_strategy(policy.type)
        session_id = options.session_id or f"session-{uuid.uuid4().hex[:12]}"
        started_at = utc_now()

        for role in options.required_roles:
            self.registry.require(role)

        logger.info(f"[{session_id}] Orchestrating with {policy.type.value}: {goal[:80]}")

        timeline = Timeline()
        timeline.add("Task analysis started")
        tasks = await self.decomposer.decompose(
            goal, priority=options.priority, required_roles=options.required_roles
        )
        timeline.add("Task breakdown completed")

        board = TaskBoard(tasks)
        board.claim(session_id)
        contributions = ContributionMap()
        ctx = RunContext(
            pool=self.pool,
            selector=self.selector,
            policy=policy,
            timeline=timeline,
            contributions=contributions,
            timeout_seconds=self.config.timeout_seconds,
        )

        self._current_board = board
        try:
            outcome = await strategy.run(board, ctx)
        finally:
            self._current_board = None
            self._completed_task_count += len(board.with_status(TaskStatus.COMPLETED))

        result = OrchestrationResult(
            session_id=session_id,
            strategy=policy,
            success=outcome.success,
            result=outcome,
            task_breakdown=board.ordered(),
            agent_contributions=contributions,
            timeline=timeline,
            started_at=started_at,
            completed_at=utc_now(),
        )
        self._remember(result)
        self._emit(result)

        logger.info(
            f"[{session_id}] Finished (success={result.success}, "
            f"tasks={len(board)}, duration={result.duration_seconds:.2f}s)"
        )
        return result

    def _remember(self, result: OrchestrationResult) -> None:
        self._history.append(result)
        overflow = len(self._history) - self.config.history_limit
        if overflow > 0:
            del self._history[:overflow]

    def _emit(self, result: OrchestrationResult) -> None:
        event = CompletionEvent(
            session_id=result.session_id,
            success=result.success,
            strategy=result.strategy.type.value,
            payload=result.to_dict(),
        )
        for sink in self._sinks:
            try:
                sink.record(event)
            except Exception as e:
                logger.error(f"Event sink {type(sink).__name__} failed: {e}")

    def get_team_status(self) -> dict[str, Any]:
        """Status aller Agenten plus aktive und abgeschlossene Tasks."""
        board = self._current_board
        active = len(board.with_status(TaskStatus.IN_PROGRESS)) if board else 0
        return {
            "agents": self.pool.stats(),
            "active_tasks": active,
            "completed_tasks": self._completed_task_count,
            "busy": self._lock.locked(),
        }

    def get_history(self, limit: int = 100) -> list[OrchestrationResult]:
        """Die letzten ``limit`` Läufe (älteste zuerst)."""
        if limit <= 0:
            return []
        return self._history[-limit:]

    def get_statistics(self) -> dict[str, Any]:
        """Holt Orchestrator-Statistiken.

        Returns:
            Dict mit Statistiken.
        """
        runs = self._history
        successful = [r for r in runs if r.success]

        role_distribution: Counter[str] = Counter()
        strategy_distribution: Counter[str] = Counter()
        for run in runs:
            strategy_distribution[run.strategy.type.value] += 1
            for task in run.task_breakdown:
                if task.assigned_agent:
                    role_distribution[task.assigned_agent] += 1

        avg_duration = (
            sum(r.duration_seconds for r in runs) / len(runs) if runs else 0.0
        )

        return {
            "total_runs": len(runs),
            "successful_runs": len(successful),
            "failed_runs": len(runs) - len(successful),
            "success_rate": len(successful) / len(runs) if runs else 0.0,
            "average_duration_seconds": avg_duration,
            "role_distribution": dict(role_distribution),
            "strategy_distribution": dict(strategy_distribution),
        }
