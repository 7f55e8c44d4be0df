"""Task-Zerlegung durch den Planungs-Agent.

Ablauf:
1. Planungs-Rolle (Spezialisierung ``planning``) mit dem Zerlegungs-Prompt aufrufen
2. Antwort zeilenweise nach ``Task:``- bzw. ``-``-Markern parsen
3. Keine Marker gefunden → genau ein Fallback-Task mit dem Ziel als Beschreibung
"""

from __future__ import annotations

import logging
from typing import Iterable

from .agents.base import AgentPool, ExecutionOptions
from .errors import DecompositionError, TaskParseError
from .models import Task, TaskPriority
from .prompts import build_decomposition_prompt
from .roles import RoleRegistry

logger = logging.getLogger(__name__)

TASK_MARKERS: tuple[str, ...] = ("Task:", "-")

PLANNING_MAX_STEPS = 5


class TaskBreakdownParser:
    """Parser für die Textantwort des Planungs-Agents.

    Jede getrimmte Zeile, die mit einem Marker beginnt, startet einen neuen
    Task. Alle anderen Zeilen werden ignoriert.
    """

    def __init__(self, markers: tuple[str, ...] = TASK_MARKERS) -> None:
        self.markers = markers

    def parse(self, text: str) -> list[Task]:
        """Parst die Antwort in Tasks (``task-1``, ``task-2``, ...).

        Raises:
            TaskParseError: Wenn keine Zeile einen Task ergibt
        """
        tasks: list[Task] = []
        for raw_line in (text or "").splitlines():
            description = self._strip_marker(raw_line.strip())
            if not description:
                continue
            tasks.append(
                Task(
                    id=f"task-{len(tasks) + 1}",
                    description=description,
                    priority=TaskPriority.MEDIUM,
                )
            )

        if not tasks:
            raise TaskParseError("No task markers found in planning output")
        return tasks

    def _strip_marker(self, line: str) -> str | None:
        for marker in self.markers:
            if line.startswith(marker):
                return line[len(marker):].strip()
        return None


class TaskDecomposer:
    """Zerlegt ein Ziel mit Hilfe der Planungs-Rolle in Tasks.

    Args:
        registry: Rollen-Registry (liefert Planungs-Rolle und Rollennamen)
        pool: Agent-Pool mit einem Agent pro Rolle
        parser: Optionaler Parser (Default: TaskBreakdownParser)
        timeout_seconds: Zeitlimit für den Planungs-Aufruf
    """

    def __init__(
        self,
        registry: RoleRegistry,
        pool: AgentPool,
        parser: TaskBreakdownParser | None = None,
        timeout_seconds: float = 300.0,
    ) -> None:
        self.registry = registry
        self.pool = pool
        self.parser = parser or TaskBreakdownParser()
        self.timeout_seconds = timeout_seconds

    async def decompose(
        self,
        goal: str,
        priority: TaskPriority | str | None = None,
        required_roles: Iterable[str] | None = None,
    ) -> list[Task]:
        """Zerlegt ``goal`` in eine nicht-leere Task-Liste.

        Args:
            goal: Ziel in natürlicher Sprache
            priority: Priorität des Fallback-Tasks (Default: medium)
            required_roles: Rollen, die im Planungs-Prompt genannt werden

        Raises:
            DecompositionError: Wenn der Planungs-Aufruf fehlschlägt
            ConfigurationError: Wenn keine Planungs-Rolle existiert
        """
        fallback_priority = TaskPriority.parse(priority)
        planner_role = self.registry.planning_role()
        planner = self.pool.get(planner_role.name)

        prompt = build_decomposition_prompt(goal, self.registry.names(), required_roles)
        options = ExecutionOptions(
            reasoning=True,
            max_steps=PLANNING_MAX_STEPS,
            timeout_seconds=self.timeout_seconds,
        )

        result = await planner.run(prompt, options)
        if not result.success:
            raise DecompositionError(
                f"Planning agent '{planner.name}' failed: {result.error}",
                agent=planner.name,
                goal=goal,
            )

        try:
            tasks = self.parser.parse(result.output)
        except TaskParseError:
            logger.info("Planning output contained no tasks, using fallback task")
            tasks = [self.fallback_task(goal, fallback_priority)]

        logger.info(f"Decomposed goal into {len(tasks)} task(s)")
        return tasks

    @staticmethod
    def fallback_task(goal: str, priority: TaskPriority = TaskPriority.MEDIUM) -> Task:
        """Einziger Task, wenn die Zerlegung nichts liefert."""
        return Task(id="task-1", description=goal, priority=priority)
