"""Tests for timeline and event sinks."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.team_orchestrator.events import (
    CompletionEvent,
    EventSink,
    InMemoryEventSink,
    JsonlEventSink,
    SqliteEventStore,
    Timeline,
)


def _event(session_id: str = "s-1", success: bool = True) -> CompletionEvent:
    return CompletionEvent(
        session_id=session_id,
        success=success,
        strategy="parallel",
        payload={"timeline": [{"event": "Task analysis started"}]},
    )


class TestTimeline:
    """Tests for the append-only timeline."""

    def test_append_order(self):
        """Events keep insertion order and default to the orchestrator agent."""
        timeline = Timeline()
        timeline.add("Task analysis started")
        timeline.add("Task started: x", "developer")

        assert timeline.messages() == ["Task analysis started", "Task started: x"]
        assert [e.agent for e in timeline] == ["orchestrator", "developer"]
        assert timeline.events[0].timestamp <= timeline.events[1].timestamp
        assert len(timeline) == 2

    def test_events_are_immutable(self):
        """TimelineEvents are frozen and the exposed sequence is a tuple."""
        timeline = Timeline()
        entry = timeline.add("x")

        with pytest.raises(AttributeError):
            entry.event = "y"  # type: ignore[misc]
        assert isinstance(timeline.events, tuple)

    def test_to_list(self):
        """Serialized events carry ISO timestamps."""
        timeline = Timeline()
        timeline.add("x", "tester")

        data = timeline.to_list()

        assert data[0]["event"] == "x"
        assert data[0]["agent"] == "tester"
        assert "T" in data[0]["timestamp"]


class TestSinks:
    """Tests for the provided sinks."""

    def test_protocol(self, tmp_path: Path):
        """All sinks satisfy the EventSink protocol."""
        with SqliteEventStore(tmp_path / "events.sqlite") as store:
            for sink in (InMemoryEventSink(), store, JsonlEventSink(tmp_path / "e.jsonl")):
                assert isinstance(sink, EventSink)

    def test_in_memory(self):
        """Events are collected in order."""
        sink = InMemoryEventSink()
        sink.record(_event("a"))
        sink.record(_event("b"))

        assert [e.session_id for e in sink.events] == ["a", "b"]

    def test_sqlite_store_fetch(self, tmp_path: Path):
        """Events are stored per session and survive reopening."""
        db_path = tmp_path / "nested" / "events.sqlite"
        with SqliteEventStore(db_path) as store:
            store.record(_event("s-1"))
            store.record(_event("s-2", success=False))
            store.record(_event("s-1", success=False))

        with SqliteEventStore(db_path) as store:
            events = store.fetch("s-1")
            recent = store.recent(limit=2)

        assert [e["success"] for e in events] == [True, False]
        assert events[0]["name"] == "taskCompleted"
        assert events[0]["payload"]["timeline"][0]["event"] == "Task analysis started"
        assert [e["session_id"] for e in recent] == ["s-1", "s-2"]

    def test_sqlite_wal_mode(self, tmp_path: Path):
        """The store runs in WAL journal mode."""
        with SqliteEventStore(tmp_path / "events.sqlite") as store:
            mode = store.conn.execute("PRAGMA journal_mode;").fetchone()[0]

        assert mode.lower() == "wal"

    def test_sqlite_close_is_idempotent(self, tmp_path: Path):
        """Closing twice is harmless."""
        store = SqliteEventStore(tmp_path / "events.sqlite")
        store.close()
        store.close()

    def test_jsonl_archive(self, tmp_path: Path):
        """Each event is one JSON line."""
        sink = JsonlEventSink(tmp_path / "archive" / "events.jsonl")
        sink.record(_event("a"))
        sink.record(_event("b", success=False))

        lines = sink.read_all()

        assert [line["session_id"] for line in lines] == ["a", "b"]
        assert lines[1]["success"] is False
        assert lines[0]["name"] == "taskCompleted"

    def test_jsonl_missing_file(self, tmp_path: Path):
        """Reading a missing archive yields nothing."""
        assert JsonlEventSink(tmp_path / "none.jsonl").read_all() == []
