"""Timeline und Completion-Events.

- Timeline: append-only Liste von TimelineEvents eines Laufs
- CompletionEvent: das eine ``taskCompleted``-Event pro erfolgreich
  durchgelaufener Strategie
- EventSinks: In-Memory, SQLite (WAL) und JSONL-Archiv
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Iterator, Protocol, runtime_checkable

from .models import utc_now

logger = logging.getLogger(__name__)

ORCHESTRATOR_AGENT = "orchestrator"
TASK_COMPLETED_EVENT = "taskCompleted"


@dataclass(frozen=True)
class TimelineEvent:
    timestamp: datetime
    event: str
    agent: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "event": self.event,
            "agent": self.agent,
        }


class Timeline:
    """Append-only Ereignisliste eines Orchestrierungs-Laufs."""

    def __init__(self) -> None:
        self._events: list[TimelineEvent] = []

    def add(self, event: str, agent: str = ORCHESTRATOR_AGENT) -> TimelineEvent:
        entry = TimelineEvent(timestamp=utc_now(), event=event, agent=agent)
        self._events.append(entry)
        logger.debug(f"[timeline] {agent}: {event}")
        return entry

    @property
    def events(self) -> tuple[TimelineEvent, ...]:
        return tuple(self._events)

    def messages(self) -> list[str]:
        return [e.event for e in self._events]

    def to_list(self) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self._events]

    def __iter__(self) -> Iterator[TimelineEvent]:
        return iter(tuple(self._events))

    def __len__(self) -> int:
        return len(self._events)


@dataclass(frozen=True)
class CompletionEvent:
    """Abschluss-Event eines Laufs.

    Attributes:
        session_id: ID des Laufs
        success: Gesamtergebnis
        strategy: Name der ausgeführten Strategie
        payload: Serialisiertes OrchestrationResult
    """

    session_id: str
    success: bool
    strategy: str
    payload: dict[str, Any] = field(default_factory=dict)
    name: str = TASK_COMPLETED_EVENT
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "session_id": self.session_id,
            "success": self.success,
            "strategy": self.strategy,
            "timestamp": self.timestamp.isoformat(),
            "payload": self.payload,
        }


@runtime_checkable
class EventSink(Protocol):
    """Empfänger für Completion-Events."""

    def record(self, event: CompletionEvent) -> None: ...


class InMemoryEventSink:
    """Sammelt Events im Speicher (Tests, CLI)."""

    def __init__(self) -> None:
        self.events: list[CompletionEvent] = []

    def record(self, event: CompletionEvent) -> None:
        self.events.append(event)

    def __len__(self) -> int:
        return len(self.events)


class SqliteEventStore:
    """Append-only Event-Tabelle in SQLite (WAL), adressiert per Session-ID."""

    _DB_MAX_RETRIES = 5
    _DB_RETRY_BASE_SLEEP = 0.02

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._closed = False

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False, timeout=30.0)
        self.conn.execute("PRAGMA journal_mode=WAL;")
        self.conn.execute("PRAGMA synchronous=NORMAL;")
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                name TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                success INTEGER NOT NULL,
                strategy TEXT NOT NULL,
                payload TEXT
            )
            """
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_events_session ON events(session_id);"
        )
        self.conn.commit()

    def record(self, event: CompletionEvent) -> None:
        self._execute_with_retry(
            """
            INSERT INTO events (session_id, name, timestamp, success, strategy, payload)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                event.session_id,
                event.name,
                event.timestamp.isoformat(),
                int(event.success),
                event.strategy,
                json.dumps(event.payload, default=str),
            ),
        )

    def fetch(self, session_id: str) -> list[dict[str, Any]]:
        """Alle Events einer Session in Einfügereihenfolge."""
        with self._lock:
            rows = self.conn.execute(
                "SELECT name, session_id, timestamp, success, strategy, payload "
                "FROM events WHERE session_id = ? ORDER BY id",
                (session_id,),
            ).fetchall()
        return [self._row_to_dict(row) for row in rows]

    def recent(self, limit: int = 20) -> list[dict[str, Any]]:
        """Die letzten ``limit`` Events (neueste zuerst)."""
        with self._lock:
            rows = self.conn.execute(
                "SELECT name, session_id, timestamp, success, strategy, payload "
                "FROM events ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row_to_dict(row) for row in rows]

    @staticmethod
    def _row_to_dict(row: tuple) -> dict[str, Any]:
        name, session_id, timestamp, success, strategy, payload = row
        return {
            "name": name,
            "session_id": session_id,
            "timestamp": timestamp,
            "success": bool(success),
            "strategy": strategy,
            "payload": json.loads(payload) if payload else {},
        }

    def _execute_with_retry(self, sql: str, params: Iterable[Any]) -> None:
        attempt = 0
        while True:
            try:
                with self._lock:
                    self.conn.execute(sql, tuple(params))
                    self.conn.commit()
                return
            except sqlite3.OperationalError as e:
                # typ. "database is locked"
                attempt += 1
                if attempt > self._DB_MAX_RETRIES:
                    logger.error(
                        f"SQLite insert failed after {attempt} attempts: {e}"
                    )
                    raise
                sleep_s = self._DB_RETRY_BASE_SLEEP * (2 ** (attempt - 1))
                time.sleep(min(sleep_s, 0.5))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with self._lock:
            try:
                self.conn.commit()
            finally:
                self.conn.close()

    def __enter__(self) -> SqliteEventStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class JsonlEventSink:
    """Archiviert Events zeilenweise als JSON."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def record(self, event: CompletionEvent) -> None:
        line = json.dumps(event.to_dict(), ensure_ascii=False, default=str)
        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")

    def read_all(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]
