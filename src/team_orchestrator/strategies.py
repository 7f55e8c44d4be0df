"""Ausführungsstrategien für eine zerlegte Task-Liste.

Geschlossene Menge von Varianten:
- SequentialStrategy: Zerlegungsreihenfolge, ein Aufruf zur Zeit
- ParallelStrategy: Batches der Größe ``max_concurrency``
- HierarchicalStrategy: stabile Sortierung nach Priorität, dann sequentiell
- CollaborativeStrategy: Primär-Durchlauf plus Review durch eine Sekundärrolle

Task-Fehler werden pro Task erfasst (``result = {"error": ...}``) und nie
erneut ausgeführt. Konfigurationsfehler (unbekannte Rolle) werden vor dem
Start des betroffenen Tasks geworfen und erreichen den Aufrufer.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .agents.base import AgentPool, AgentResult, BaseAgent, ExecutionOptions
from .errors import ConfigurationError, ErrorCode
from .events import Timeline
from .models import (
    ContributionMap,
    OrchestrationStrategy,
    StrategyType,
    Task,
    TaskBoard,
    to_jsonable,
)
from .prompts import build_review_prompt
from .selector import AgentSelector

logger = logging.getLogger(__name__)

SINGLE_PASS_MAX_STEPS = 8
COLLABORATIVE_MAX_STEPS = 5


@dataclass
class StrategyOutcome:
    """Ergebnis einer Strategie.

    Attributes:
        success: True nur, wenn kein Task fehlgeschlagen ist
        results: Ergebnisse der abgeschlossenen Tasks (Ausführungsreihenfolge)
    """

    success: bool
    results: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "results": to_jsonable(self.results)}


@dataclass
class RunContext:
    """Gemeinsamer Zustand eines Laufs, den alle Strategien beschreiben."""

    pool: AgentPool
    selector: AgentSelector
    policy: OrchestrationStrategy
    timeline: Timeline
    contributions: ContributionMap
    timeout_seconds: float = 300.0

    def options(self, max_steps: int) -> ExecutionOptions:
        return ExecutionOptions(
            reasoning=True,
            max_steps=max_steps,
            timeout_seconds=self.timeout_seconds,
        )


class ExecutionStrategy(ABC):
    """Basisklasse aller Strategien."""

    type: StrategyType

    @abstractmethod
    async def run(self, board: TaskBoard, ctx: RunContext) -> StrategyOutcome:
        """Führt die Tasks des Boards aus."""
        ...

    def _resolve(self, task: Task, ctx: RunContext) -> tuple[str, BaseAgent]:
        role = ctx.selector.select_primary(task)
        return role, ctx.pool.get(role)

    async def _execute_single(
        self, task: Task, role: str, agent: BaseAgent, ctx: RunContext
    ) -> AgentResult | None:
        """Ein Task, ein Aufruf. Gibt das Ergebnis oder None (fehlgeschlagen) zurück."""
        task.start(role)
        ctx.timeline.add(f"Task started: {task.description}", role)

        result = await agent.run(task.description, ctx.options(SINGLE_PASS_MAX_STEPS))

        if not result.success:
            task.fail(result.error or "unknown error")
            ctx.timeline.add(f"Task failed: {task.description}", role)
            logger.warning(f"Task {task.id} failed: {result.error}")
            return None

        task.complete(result)
        ctx.contributions.record(role, task.id, result)
        ctx.timeline.add(f"Task completed: {task.description}", role)
        return result

    async def _run_in_order(self, tasks: list[Task], ctx: RunContext) -> StrategyOutcome:
        results: list[Any] = []
        success = True

        for task in tasks:
            role, agent = self._resolve(task, ctx)
            result = await self._execute_single(task, role, agent, ctx)
            if result is None:
                success = False
                if not ctx.policy.retry_on_failure:
                    return StrategyOutcome(success=False, results=results)
                continue
            results.append(result)

        return StrategyOutcome(success=success, results=results)


class SequentialStrategy(ExecutionStrategy):
    type = StrategyType.SEQUENTIAL

    async def run(self, board: TaskBoard, ctx: RunContext) -> StrategyOutcome:
        return await self._run_in_order(board.ordered(), ctx)


class HierarchicalStrategy(ExecutionStrategy):
    """Sequentiell nach Priorität (urgent > high > medium > low)."""

    type = StrategyType.HIERARCHICAL

    async def run(self, board: TaskBoard, ctx: RunContext) -> StrategyOutcome:
        return await self._run_in_order(board.by_priority(), ctx)


class ParallelStrategy(ExecutionStrategy):
    """Batches von höchstens ``max_concurrency`` gleichzeitigen Tasks.

    Ein Batch wird vollständig abgewartet, bevor der nächste startet. Tasks
    eines Batches werden bei einem Fehler eines Geschwisters nicht
    abgebrochen.
    """

    type = StrategyType.PARALLEL

    async def run(self, board: TaskBoard, ctx: RunContext) -> StrategyOutcome:
        tasks = board.ordered()
        size = ctx.policy.max_concurrency
        results: list[Any] = []
        success = True

        for offset in range(0, len(tasks), size):
            batch = tasks[offset:offset + size]
            # Rollen vor dem Start auflösen, damit ein Konfigurationsfehler
            # keinen halb gestarteten Batch hinterlässt
            resolved = [self._resolve(task, ctx) for task in batch]
            logger.debug(f"Dispatching batch of {len(batch)} task(s)")

            batch_results = await asyncio.gather(
                *(
                    self._execute_single(task, role, agent, ctx)
                    for task, (role, agent) in zip(batch, resolved)
                )
            )

            batch_failed = False
            for result in batch_results:
                if result is None:
                    batch_failed = True
                else:
                    results.append(result)

            if batch_failed:
                success = False
                if not ctx.policy.retry_on_failure:
                    return StrategyOutcome(success=False, results=results)

        return StrategyOutcome(success=success, results=results)


class CollaborativeStrategy(ExecutionStrategy):
    """Primärrolle bearbeitet den Task, Sekundärrolle überarbeitet das Ergebnis.

    Ohne ``cross_validation`` entfällt der zweite Durchlauf und die Ausgabe
    der Primärrolle ist das finale Ergebnis.
    """

    type = StrategyType.COLLABORATIVE

    async def run(self, board: TaskBoard, ctx: RunContext) -> StrategyOutcome:
        results: list[Any] = []
        success = True

        for task in board.ordered():
            combined = await self._collaborate(task, ctx)
            if combined is None:
                success = False
                if not ctx.policy.retry_on_failure:
                    return StrategyOutcome(success=False, results=results)
                continue
            results.append(combined)

        return StrategyOutcome(success=success, results=results)

    async def _collaborate(self, task: Task, ctx: RunContext) -> dict[str, Any] | None:
        primary_role, primary_agent = self._resolve(task, ctx)
        secondary_role: str | None = None
        secondary_agent: BaseAgent | None = None
        if ctx.policy.cross_validation:
            secondary_role = ctx.selector.select_secondary(task, primary_role)
            secondary_agent = ctx.pool.get(secondary_role)

        task.start(primary_role)
        ctx.timeline.add(f"Collaborative task started: {task.description}", primary_role)
        options = ctx.options(COLLABORATIVE_MAX_STEPS)

        primary = await primary_agent.run(task.description, options)
        if not primary.success:
            return self._fail(task, primary.error, primary_role, ctx)

        secondary: AgentResult | None = None
        if secondary_agent is not None:
            secondary = await secondary_agent.run(
                build_review_prompt(primary.output, task.description), options
            )
            if not secondary.success:
                return self._fail(task, secondary.error, primary_role, ctx)

        combined = {
            "primary": primary,
            "secondary": secondary,
            "final": secondary.output if secondary is not None else primary.output,
        }
        task.complete(combined)
        ctx.contributions.record(primary_role, task.id, primary)
        if secondary is not None and secondary_role is not None:
            ctx.contributions.record(secondary_role, task.id, secondary)

        finished_by = secondary_role or primary_role
        ctx.timeline.add(f"Collaborative task completed: {task.description}", finished_by)
        return combined

    @staticmethod
    def _fail(task: Task, error: str | None, role: str, ctx: RunContext) -> None:
        task.fail(error or "unknown error")
        ctx.timeline.add(f"Task failed: {task.description}", role)
        logger.warning(f"Collaborative task {task.id} failed: {error}")
        return None


_STRATEGIES: dict[StrategyType, type[ExecutionStrategy]] = {
    StrategyType.SEQUENTIAL: SequentialStrategy,
    StrategyType.PARALLEL: ParallelStrategy,
    StrategyType.HIERARCHICAL: HierarchicalStrategy,
    StrategyType.COLLABORATIVE: CollaborativeStrategy,
}


def build_strategy(strategy_type: StrategyType | str) -> ExecutionStrategy:
    """Erzeugt die Strategie-Instanz für einen StrategyType."""
    strategy_type = StrategyType.parse(strategy_type)
    try:
        return _STRATEGIES[strategy_type]()
    except KeyError as e:
        raise ConfigurationError(
            f"No executor for strategy {strategy_type.value}",
            error_code=ErrorCode.INVALID_STRATEGY,
        ) from e
