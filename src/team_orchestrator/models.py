"""Datenmodell des Team-Orchestrators.

Enthält die Wertobjekte und Zustandsträger eines Orchestrierungs-Laufs:
- Task mit monotonem Status-Lebenszyklus
- TaskBoard als Arena aller Tasks eines Laufs (adressiert per Task-ID)
- ContributionMap für die Beiträge pro Rolle
- OrchestrationStrategy als read-only Konfigurationswert
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator

from .errors import ConfigurationError, ErrorCode, InvalidTransitionError

logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class TaskStatus(Enum):
    """Status eines Tasks."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskPriority(Enum):
    """Priorität eines Tasks."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Ausführungsrang (0 = zuerst)."""
        return _PRIORITY_RANK[self]

    @classmethod
    def parse(cls, value: TaskPriority | str | None) -> TaskPriority:
        """Löst einen String (case-insensitive) zu TaskPriority auf."""
        if value is None:
            return cls.MEDIUM
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown task priority: {value}", priority=value
            ) from e


_PRIORITY_RANK: dict[TaskPriority, int] = {
    TaskPriority.URGENT: 0,
    TaskPriority.HIGH: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 3,
}


class StrategyType(Enum):
    """Ausführungsstrategie für eine Task-Liste."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    HIERARCHICAL = "hierarchical"
    COLLABORATIVE = "collaborative"

    @classmethod
    def parse(cls, value: StrategyType | str) -> StrategyType:
        """Löst einen String (case-insensitive) zu StrategyType auf."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown strategy type: {value}",
                error_code=ErrorCode.INVALID_STRATEGY,
                strategy=value,
            ) from e


# =============================================================================
# Data Classes
# =============================================================================


def utc_now() -> datetime:
    """Einheitlicher UTC-Zeitstempel."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OrchestrationStrategy:
    """Konfiguration eines Orchestrierungs-Laufs (read-only).

    Attributes:
        type: Ausführungsstrategie
        max_concurrency: Maximale Anzahl gleichzeitiger Agent-Aufrufe (parallel)
        retry_on_failure: Bei False bricht der erste Task-Fehler den Lauf ab.
            Fehlgeschlagene Tasks werden nie erneut ausgeführt.
        cross_validation: Zweiter Durchlauf im Collaborative-Modus
    """

    type: StrategyType = StrategyType.HIERARCHICAL
    max_concurrency: int = 3
    retry_on_failure: bool = True
    cross_validation: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.type, StrategyType):
            object.__setattr__(self, "type", StrategyType.parse(self.type))
        if self.max_concurrency < 1:
            raise ConfigurationError(
                f"max_concurrency must be >= 1, got {self.max_concurrency}",
                error_code=ErrorCode.INVALID_STRATEGY,
                max_concurrency=self.max_concurrency,
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OrchestrationStrategy:
        """Erstellt eine Strategie aus einem Dict (YAML/JSON)."""
        return cls(
            type=StrategyType.parse(data.get("type", StrategyType.HIERARCHICAL.value)),
            max_concurrency=int(data.get("max_concurrency", 3)),
            retry_on_failure=bool(data.get("retry_on_failure", True)),
            cross_validation=bool(data.get("cross_validation", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "max_concurrency": self.max_concurrency,
            "retry_on_failure": self.retry_on_failure,
            "cross_validation": self.cross_validation,
        }


@dataclass
class Task:
    """Eine zerlegte Arbeitseinheit.

    Der Status wechselt genau einmal ``pending → in_progress`` und genau
    einmal in einen Endzustand (``completed`` oder ``failed``).

    ``dependencies`` wird mitgeführt, aber von keiner Strategie ausgewertet.
    """

    id: str
    description: str
    priority: TaskPriority = TaskPriority.MEDIUM
    dependencies: tuple[str, ...] = ()
    assigned_agent: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    result: Any = None
    start_time: datetime | None = None
    end_time: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED)

    @property
    def duration_seconds(self) -> float | None:
        """Berechnet die Ausführungsdauer in Sekunden."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def start(self, agent: str) -> None:
        """Übergang ``pending → in_progress``."""
        if self.status != TaskStatus.PENDING:
            raise InvalidTransitionError(
                f"Task {self.id} cannot start from status {self.status.value}",
                task_id=self.id,
            )
        self.assigned_agent = agent
        self.status = TaskStatus.IN_PROGRESS
        self.start_time = utc_now()

    def complete(self, result: Any) -> None:
        """Übergang ``in_progress → completed``."""
        self._require_in_progress("complete")
        if result is None:
            raise InvalidTransitionError(
                f"Task {self.id} cannot complete without a result", task_id=self.id
            )
        self.result = result
        self.status = TaskStatus.COMPLETED
        self.end_time = utc_now()

    def fail(self, message: str) -> None:
        """Übergang ``in_progress → failed``, Fehler landet im Ergebnis."""
        self._require_in_progress("fail")
        self.result = {"error": message}
        self.status = TaskStatus.FAILED
        self.end_time = utc_now()

    def _require_in_progress(self, action: str) -> None:
        if self.status != TaskStatus.IN_PROGRESS:
            raise InvalidTransitionError(
                f"Task {self.id} cannot {action} from status {self.status.value}",
                task_id=self.id,
            )

    def to_dict(self) -> dict[str, Any]:
        """Konvertiere zu Dictionary für Serialisierung."""
        return {
            "id": self.id,
            "description": self.description,
            "priority": self.priority.value,
            "dependencies": list(self.dependencies),
            "assigned_agent": self.assigned_agent,
            "status": self.status.value,
            "result": to_jsonable(self.result),
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
        }


class TaskBoard:
    """Arena aller Tasks eines einzelnen Laufs.

    Tasks werden per ID adressiert, die Zerlegungsreihenfolge bleibt erhalten.
    Ein Board gehört genau einem Lauf; ``claim()`` schlägt beim zweiten
    Aufruf fehl, damit Tasks nicht über Läufe hinweg wiederverwendet werden.
    """

    def __init__(self, tasks: list[Task]) -> None:
        self._tasks: dict[str, Task] = {}
        for task in tasks:
            if task.id in self._tasks:
                raise ConfigurationError(
                    f"Duplicate task id: {task.id}", task_id=task.id
                )
            self._tasks[task.id] = task
        self._claimed_by: str | None = None

    def claim(self, run_id: str) -> None:
        """Bindet das Board an einen Lauf."""
        if self._claimed_by is not None:
            raise InvalidTransitionError(
                f"Task board already used by run {self._claimed_by}",
                run_id=run_id,
            )
        self._claimed_by = run_id

    @property
    def run_id(self) -> str | None:
        return self._claimed_by

    def get(self, task_id: str) -> Task:
        try:
            return self._tasks[task_id]
        except KeyError as e:
            raise ConfigurationError(f"Unknown task id: {task_id}") from e

    def ordered(self) -> list[Task]:
        """Tasks in Zerlegungsreihenfolge."""
        return list(self._tasks.values())

    def by_priority(self) -> list[Task]:
        """Stabile Sortierung ``urgent > high > medium > low``."""
        return sorted(self._tasks.values(), key=lambda t: t.priority.rank)

    def with_status(self, status: TaskStatus) -> list[Task]:
        return [t for t in self._tasks.values() if t.status == status]

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)


class ContributionMap:
    """Beiträge pro Rolle: ``rolle → {task_id → ergebnis}``.

    Jedes Paar (Rolle, Task) wird genau einmal geschrieben.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    def record(self, role: str, task_id: str, payload: Any) -> None:
        per_role = self._data.setdefault(role, {})
        if task_id in per_role:
            raise InvalidTransitionError(
                f"Contribution of {role} to {task_id} already recorded",
                role=role,
                task_id=task_id,
            )
        per_role[task_id] = payload
        logger.debug(f"Contribution recorded: {role} → {task_id}")

    def get(self, role: str) -> dict[str, Any]:
        return dict(self._data.get(role, {}))

    def roles(self) -> list[str]:
        return list(self._data)

    def __contains__(self, role: object) -> bool:
        return role in self._data

    def __len__(self) -> int:
        return len(self._data)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {role: dict(items) for role, items in self._data.items()}


def to_jsonable(value: Any) -> Any:
    """Wandelt Ergebnis-Payloads in JSON-taugliche Strukturen um."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_jsonable(to_dict())
    return str(value)
