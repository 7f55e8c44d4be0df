"""Agent-Executor-Grenze des Team-Orchestrators.

Der Orchestrator kennt Agenten nur über diese Schnittstelle: ein Agent
bekommt einen Task-Text und Ausführungsoptionen und liefert asynchron ein
AgentResult. Wie der Agent arbeitet (LLM-Aufruf, Subprozess, Mock) ist für
den Orchestrator unerheblich.

Struktur:
- ExecutionOptions: Reasoning, Step-Budget und verpflichtendes Zeitlimit
- AgentResult: Strukturiertes Ergebnis (Erfolg oder unterscheidbarer Fehler)
- BaseAgent: Abstrakte Basisklasse mit execute() und Lifecycle-Wrapper run()
- AgentPool: Zuordnung Rollenname → Agent-Instanz
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Callable, Iterator

from ..errors import (
    AgentExecutionError,
    AgentTimeoutError,
    ConfigurationError,
    UnknownRoleError,
)
from ..models import utc_now
from ..roles import RoleDefinition, RoleRegistry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300.0


class AgentStatus(Enum):
    """Status eines Agenten."""

    IDLE = auto()
    BUSY = auto()


@dataclass(frozen=True)
class ExecutionOptions:
    """Optionen für einen einzelnen Agent-Aufruf.

    Attributes:
        reasoning: Ob der Agent schrittweise argumentieren soll
        max_steps: Maximale Anzahl Agent-Schritte
        timeout_seconds: Zeitlimit für den Aufruf (immer gesetzt)
    """

    reasoning: bool = True
    max_steps: int = 8
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if self.max_steps < 1:
            raise ConfigurationError(f"max_steps must be >= 1, got {self.max_steps}")
        if self.timeout_seconds <= 0:
            raise ConfigurationError(
                f"timeout_seconds must be > 0, got {self.timeout_seconds}"
            )


@dataclass
class AgentResult:
    """Ergebnis einer Agent-Ausführung.

    Ein fehlgeschlagener Aufruf hat ``success=False`` und eine Fehlermeldung
    in ``error``; er wird nie als spezieller Output-String kodiert.
    """

    agent_name: str
    success: bool
    output: str = ""
    error: str | None = None

    started_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None

    steps: list[dict[str, Any]] = field(default_factory=list)
    error_details: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float | None:
        """Berechne Ausführungsdauer in Sekunden."""
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @classmethod
    def failure(cls, agent_name: str, error: str, **details: Any) -> AgentResult:
        """Erzeuge ein Fehler-Ergebnis."""
        return cls(
            agent_name=agent_name,
            success=False,
            error=error,
            error_details=details,
            completed_at=utc_now(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialisierbare Darstellung (für Timeline, Events und CLI)."""
        return {
            "agent": self.agent_name,
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "steps": self.steps,
            "duration": self.duration_seconds,
            "metadata": self.metadata,
        }


class BaseAgent(ABC):
    """Abstrakte Basisklasse für alle Agenten.

    Jeder Agent ist an genau eine Rolle gebunden. Subklassen implementieren
    ``execute()``; der Orchestrator ruft ausschließlich ``run()`` auf.

    Beispiel:
        class LlmAgent(BaseAgent):
            async def execute(
                self, task_text: str, options: ExecutionOptions
            ) -> AgentResult:
                text = await self._client.complete(self.role.system_prompt, task_text)
                return AgentResult(agent_name=self.name, success=True, output=text)
    """

    def __init__(self, role: RoleDefinition) -> None:
        self.role = role
        self._active_calls = 0
        self._execution_count = 0
        self._error_count = 0
        self._last_activity: datetime | None = None
        self._hooks: dict[str, list[Callable]] = {
            "pre_execute": [],
            "post_execute": [],
            "on_error": [],
        }

    @property
    def name(self) -> str:
        """Rollenname des Agenten (z.B. "architect")."""
        return self.role.name

    @property
    def capabilities(self) -> frozenset[str]:
        return self.role.capability_tags

    @property
    def status(self) -> AgentStatus:
        return AgentStatus.BUSY if self._active_calls else AgentStatus.IDLE

    @property
    def stats(self) -> dict[str, Any]:
        """Statistiken über den Agenten."""
        return {
            "name": self.name,
            "status": self.status.name,
            "execution_count": self._execution_count,
            "error_count": self._error_count,
            "active_calls": self._active_calls,
            "last_activity": (
                self._last_activity.isoformat() if self._last_activity else None
            ),
            "capabilities": sorted(self.capabilities),
        }

    @abstractmethod
    async def execute(self, task_text: str, options: ExecutionOptions) -> AgentResult:
        """Führe den Task-Text aus.

        Darf eine Exception werfen oder ein AgentResult mit ``success=False``
        liefern; beides wird von ``run()`` als Fehler behandelt.
        """
        ...

    def register_hook(self, event: str, callback: Callable) -> None:
        """Registriere einen Hook (pre_execute, post_execute, on_error)."""
        if event in self._hooks:
            self._hooks[event].append(callback)
        else:
            logger.warning(f"Unknown hook event: {event}")

    async def run(self, task_text: str, options: ExecutionOptions) -> AgentResult:
        """Führe den Agent mit Lifecycle-Management aus.

        Wrapped execute() mit Zeitlimit, Hooks, Fehler-Normalisierung und
        Statistik. Wirft keine Exceptions für Agent-Fehler.
        """
        self._active_calls += 1
        self._last_activity = utc_now()

        result: AgentResult
        try:
            for hook in self._hooks["pre_execute"]:
                hook(self, task_text)

            logger.info(f"Agent '{self.name}' starting: {task_text[:60]}")
            result = await asyncio.wait_for(
                self.execute(task_text, options),
                timeout=options.timeout_seconds,
            )
            if result.completed_at is None:
                result.completed_at = utc_now()

        except asyncio.TimeoutError:
            error = AgentTimeoutError(
                f"Agent '{self.name}' timed out after {options.timeout_seconds}s",
                agent=self.name,
            )
            logger.error(str(error))
            result = AgentResult.failure(
                self.name,
                error.message,
                exception_type="AgentTimeoutError",
                error_code=error.error_code,
            )

        except Exception as e:
            error = AgentExecutionError(str(e), agent=self.name)
            logger.exception(f"Agent '{self.name}' failed with exception")
            result = AgentResult.failure(
                self.name,
                error.message,
                exception_type=type(e).__name__,
                error_code=error.error_code,
            )

        finally:
            self._active_calls -= 1
            self._execution_count += 1
            self._last_activity = utc_now()

        if not result.success:
            self._error_count += 1
            if not result.error:
                result.error = f"Agent '{self.name}' reported failure"
            self._call_hooks("on_error", task_text, result)

        self._call_hooks("post_execute", task_text, result)

        logger.info(f"Agent '{self.name}' finished (success={result.success})")
        return result

    def _call_hooks(self, event: str, task_text: str, result: AgentResult) -> None:
        # Hook-Fehler ändern das Ergebnis nicht
        for hook in self._hooks[event]:
            try:
                hook(self, task_text, result)
            except Exception:
                logger.exception(f"Agent '{self.name}' {event} hook failed")

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"name={self.name!r}, "
            f"status={self.status.name})"
        )


class AgentPool:
    """Agent-Instanzen pro Rolle.

    Eine Rolle ohne Agent ist ein Konfigurationsfehler; es gibt keinen
    Ersatz-Agent.
    """

    def __init__(self, agents: list[BaseAgent] | None = None) -> None:
        self._agents: dict[str, BaseAgent] = {}
        for agent in agents or []:
            self.register(agent)

    @classmethod
    def from_registry(
        cls,
        registry: RoleRegistry,
        factory: Callable[[RoleDefinition], BaseAgent],
    ) -> AgentPool:
        """Erstellt für jede Rolle der Registry einen Agent."""
        return cls([factory(role) for role in registry])

    def register(self, agent: BaseAgent) -> None:
        if agent.name in self._agents:
            raise ConfigurationError(f"Agent already registered: {agent.name}")
        self._agents[agent.name] = agent
        logger.debug(f"Registered agent: {agent.name}")

    def get(self, role: str) -> BaseAgent:
        """Hole den Agent einer Rolle.

        Raises:
            UnknownRoleError: Wenn für die Rolle kein Agent registriert ist
        """
        try:
            return self._agents[role]
        except KeyError:
            raise UnknownRoleError(role, available=list(self._agents)) from None

    def roles(self) -> list[str]:
        return list(self._agents)

    def stats(self) -> dict[str, dict[str, Any]]:
        return {name: agent.stats for name, agent in self._agents.items()}

    def __contains__(self, role: object) -> bool:
        return role in self._agents

    def __iter__(self) -> Iterator[BaseAgent]:
        return iter(self._agents.values())

    def __len__(self) -> int:
        return len(self._agents)
