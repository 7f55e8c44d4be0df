"""Tests for the AgentOrchestrator facade."""

from __future__ import annotations

import asyncio
import json

import pytest

from src.team_orchestrator.agents import AgentPool, EchoAgent
from src.team_orchestrator.errors import (
    ConfigurationError,
    DecompositionError,
    OrchestratorBusyError,
    UnknownRoleError,
)
from src.team_orchestrator.events import InMemoryEventSink
from src.team_orchestrator.models import (
    OrchestrationStrategy,
    StrategyType,
    TaskPriority,
    TaskStatus,
)
from src.team_orchestrator.orchestrator import (
    AgentOrchestrator,
    OrchestrateOptions,
    OrchestratorConfig,
)
from src.team_orchestrator.roles import RoleRegistry
from tests.mocks.scripted_agent import make_pool

PLAN = "Task: Fix login bug\nTask: Add dark mode toggle"


@pytest.fixture
def sink() -> InMemoryEventSink:
    return InMemoryEventSink()


def _orchestrator(registry, tracker, sink=None, strategy=None, **pool_kwargs):
    pool_kwargs.setdefault("plan", PLAN)
    pool, _ = make_pool(registry, tracker, **pool_kwargs)
    config = OrchestratorConfig(strategy=strategy or OrchestrationStrategy())
    return AgentOrchestrator(pool, registry=registry, config=config,
                             sinks=[sink] if sink is not None else None)


# ============================================================================
# Test Construction
# ============================================================================


class TestConstruction:
    """Tests for orchestrator setup."""

    def test_missing_agent_fails_fast(self, registry):
        """Every registry role needs an agent."""
        pool = AgentPool([EchoAgent(registry.get("architect"))])

        with pytest.raises(UnknownRoleError):
            AgentOrchestrator(pool, registry=registry)

    def test_registry_without_selection_role_fails_fast(self, tmp_path, tracker):
        """A role file lacking a role of the selection table is rejected before any call."""
        path = tmp_path / "roles.yaml"
        path.write_text(
            "roles:\n"
            "  - name: architect\n    specialization: planning\n"
            "  - name: developer\n"
            "  - name: reviewer\n    specialization: reviewing\n",
            encoding="utf-8",
        )
        registry = RoleRegistry.from_yaml(path)
        pool, _ = make_pool(registry, tracker, plan=PLAN)

        with pytest.raises(UnknownRoleError) as exc_info:
            AgentOrchestrator(pool, registry=registry)

        assert exc_info.value.role == "tester"
        assert tracker.calls == []

    def test_default_registry(self, registry):
        """Without registry the default team is used."""
        orchestrator = AgentOrchestrator(AgentPool.from_registry(registry, EchoAgent))

        assert orchestrator.registry.names() == registry.names()

    def test_invalid_timeout(self):
        """The agent timeout must be positive."""
        with pytest.raises(ConfigurationError):
            OrchestratorConfig(timeout_seconds=0)


# ============================================================================
# Test orchestrate
# ============================================================================


class TestOrchestrate:
    """Tests for a full orchestration run."""

    @pytest.mark.asyncio
    async def test_full_run(self, registry, tracker, sink):
        """Decompose, execute, aggregate and emit once."""
        orchestrator = _orchestrator(registry, tracker, sink)

        result = await orchestrator.orchestrate("Fix login bug and add dark mode")

        assert result.success is True
        assert result.strategy.type is StrategyType.HIERARCHICAL
        assert [t.description for t in result.task_breakdown] == [
            "Fix login bug", "Add dark mode toggle",
        ]
        assert all(t.status is TaskStatus.COMPLETED for t in result.task_breakdown)
        assert [t.assigned_agent for t in result.task_breakdown] == ["tester", "developer"]
        assert result.agent_contributions.roles() == ["tester", "developer"]
        assert len(result.result.results) == 2
        assert result.timeline.messages() == [
            "Task analysis started",
            "Task breakdown completed",
            "Task started: Fix login bug",
            "Task completed: Fix login bug",
            "Task started: Add dark mode toggle",
            "Task completed: Add dark mode toggle",
        ]
        assert result.timeline.events[0].agent == "orchestrator"
        assert result.timeline.events[1].agent == "orchestrator"
        assert result.duration_seconds >= 0
        assert len(sink) == 1

    @pytest.mark.asyncio
    async def test_completion_event(self, registry, tracker, sink):
        """The taskCompleted event carries the full bundle."""
        orchestrator = _orchestrator(registry, tracker, sink)

        result = await orchestrator.orchestrate(
            "Fix login bug and add dark mode", OrchestrateOptions(session_id="s-1")
        )

        event = sink.events[0]
        assert event.name == "taskCompleted"
        assert event.session_id == "s-1" == result.session_id
        assert event.success is True
        assert event.strategy == "hierarchical"
        assert set(event.payload) >= {
            "success", "result", "task_breakdown", "agent_contributions", "timeline",
        }
        json.dumps(event.payload)

    @pytest.mark.asyncio
    async def test_option_strategy_overrides_default(self, registry, tracker):
        """options.strategy selects the strategy for one run."""
        orchestrator = _orchestrator(registry, tracker)

        result = await orchestrator.orchestrate(
            "anything", OrchestrateOptions(strategy="collaborative")
        )

        assert result.strategy.type is StrategyType.COLLABORATIVE
        assert result.strategy.max_concurrency == 3
        assert "Collaborative task started: Fix login bug" in result.timeline.messages()
        assert orchestrator.config.strategy.type is StrategyType.HIERARCHICAL

    @pytest.mark.asyncio
    async def test_task_failure_is_reported_not_raised(self, registry, tracker, sink):
        """Task failures end in success=false and still emit."""
        orchestrator = _orchestrator(
            registry, tracker, sink,
            strategy=OrchestrationStrategy(type=StrategyType.SEQUENTIAL,
                                           retry_on_failure=False),
            overrides={"tester": {"fail_on": ["login"]}},
        )

        result = await orchestrator.orchestrate("Fix login bug and add dark mode")

        assert result.success is False
        assert [t.status for t in result.task_breakdown] == [
            TaskStatus.FAILED, TaskStatus.PENDING,
        ]
        assert [t.id for t in result.failed_tasks] == ["task-1"]
        assert len(sink) == 1
        assert sink.events[0].success is False

    @pytest.mark.asyncio
    async def test_decomposition_failure_emits_nothing(self, registry, tracker, sink):
        """A failed planning call propagates and no event is emitted."""
        orchestrator = _orchestrator(
            registry, tracker, sink, overrides={"architect": {"fail_on": ["Analyze"]}}
        )

        with pytest.raises(DecompositionError):
            await orchestrator.orchestrate("Build it")

        assert len(sink) == 0
        assert orchestrator.get_statistics()["total_runs"] == 0

    @pytest.mark.asyncio
    async def test_failing_agent_hook_does_not_abort_run(self, registry, tracker, sink):
        """A raising post_execute hook is logged, the run completes normally."""
        orchestrator = _orchestrator(registry, tracker, sink)

        def broken_hook(agent, task_text, result):
            raise RuntimeError("hook boom")

        orchestrator.pool.get("tester").register_hook("post_execute", broken_hook)

        result = await orchestrator.orchestrate("Fix login bug and add dark mode")

        assert result.success is True
        assert all(t.status is TaskStatus.COMPLETED for t in result.task_breakdown)
        assert orchestrator.pool.get("tester").stats["active_calls"] == 0
        assert len(sink) == 1

    @pytest.mark.asyncio
    async def test_fallback_with_priority(self, registry, tracker):
        """Unstructured planner output yields one task with the caller's priority."""
        orchestrator = _orchestrator(registry, tracker, plan="Sure, will do.")

        result = await orchestrator.orchestrate(
            "Ship release notes", OrchestrateOptions(priority=TaskPriority.HIGH)
        )

        assert len(result.task_breakdown) == 1
        task = result.task_breakdown[0]
        assert task.description == "Ship release notes"
        assert task.priority is TaskPriority.HIGH

    @pytest.mark.asyncio
    async def test_unknown_required_role(self, registry, tracker, sink):
        """Required roles must exist."""
        orchestrator = _orchestrator(registry, tracker, sink)

        with pytest.raises(UnknownRoleError):
            await orchestrator.orchestrate("x", OrchestrateOptions(required_roles=["pm"]))

        assert tracker.calls == []
        assert len(sink) == 0

    @pytest.mark.asyncio
    async def test_empty_goal(self, registry, tracker):
        """Blank goals are rejected before any agent call."""
        orchestrator = _orchestrator(registry, tracker)

        with pytest.raises(ConfigurationError):
            await orchestrator.orchestrate("   ")

        assert tracker.calls == []

    @pytest.mark.asyncio
    async def test_concurrent_call_is_rejected(self, registry, tracker):
        """A second concurrent orchestrate() on one instance raises."""
        orchestrator = _orchestrator(registry, tracker, delay=0.05)

        first = asyncio.create_task(orchestrator.orchestrate("Fix login bug"))
        await asyncio.sleep(0.01)

        with pytest.raises(OrchestratorBusyError):
            await orchestrator.orchestrate("Another goal")

        result = await first
        assert result.success is True

    @pytest.mark.asyncio
    async def test_sequential_runs_are_allowed(self, registry, tracker):
        """Consecutive runs each get fresh tasks."""
        orchestrator = _orchestrator(registry, tracker)

        first = await orchestrator.orchestrate("goal one")
        second = await orchestrator.orchestrate("goal two")

        assert first.session_id != second.session_id
        assert first.task_breakdown[0] is not second.task_breakdown[0]

    @pytest.mark.asyncio
    async def test_failing_sink_does_not_break_run(self, registry, tracker, sink):
        """A broken sink is logged, other sinks still receive the event."""

        class BrokenSink:
            def record(self, event):
                raise OSError("disk full")

        orchestrator = _orchestrator(registry, tracker)
        orchestrator.add_sink(BrokenSink())
        orchestrator.add_sink(sink)

        result = await orchestrator.orchestrate("goal")

        assert result.success is True
        assert len(sink) == 1


# ============================================================================
# Test status and statistics
# ============================================================================


class TestStatusAndStatistics:
    """Tests for team status, history and statistics."""

    @pytest.mark.asyncio
    async def test_team_status(self, registry, tracker):
        """Per-agent stats plus task counts."""
        orchestrator = _orchestrator(registry, tracker)

        await orchestrator.orchestrate("Fix login bug and add dark mode")
        status = orchestrator.get_team_status()

        assert set(status["agents"]) == set(registry.names())
        assert status["agents"]["architect"]["execution_count"] == 1
        assert status["agents"]["tester"]["execution_count"] == 1
        assert status["active_tasks"] == 0
        assert status["completed_tasks"] == 2
        assert status["busy"] is False

    @pytest.mark.asyncio
    async def test_active_tasks_during_run(self, registry, tracker):
        """In-progress tasks are counted while a run is active."""
        orchestrator = _orchestrator(
            registry, tracker,
            strategy=OrchestrationStrategy(type=StrategyType.PARALLEL, max_concurrency=2),
            overrides={"tester": {"delay": 0.1}, "developer": {"delay": 0.1}},
        )

        run = asyncio.create_task(orchestrator.orchestrate("goal"))
        await asyncio.sleep(0.05)
        status = orchestrator.get_team_status()
        await run

        assert status["active_tasks"] == 2
        assert status["busy"] is True

    @pytest.mark.asyncio
    async def test_statistics_and_history(self, registry, tracker):
        """Runs are aggregated into success rate and distributions."""
        orchestrator = _orchestrator(
            registry, tracker, overrides={"developer": {"fail_on": ["dark mode"]}}
        )

        await orchestrator.orchestrate("goal one")
        await orchestrator.orchestrate("goal two", OrchestrateOptions(strategy="parallel"))
        stats = orchestrator.get_statistics()

        assert stats["total_runs"] == 2
        assert stats["successful_runs"] == 0
        assert stats["success_rate"] == 0.0
        assert stats["role_distribution"] == {"tester": 2, "developer": 2}
        assert stats["strategy_distribution"] == {"hierarchical": 1, "parallel": 1}
        assert len(orchestrator.get_history(1)) == 1
        assert orchestrator.get_history(0) == []

    @pytest.mark.asyncio
    async def test_history_limit(self, registry, tracker):
        """Only history_limit runs are kept."""
        pool, _ = make_pool(registry, tracker, plan=PLAN)
        orchestrator = AgentOrchestrator(
            pool, registry=registry, config=OrchestratorConfig(history_limit=2)
        )

        for i in range(3):
            await orchestrator.orchestrate(f"goal {i}", OrchestrateOptions(session_id=f"s{i}"))

        assert [r.session_id for r in orchestrator.get_history()] == ["s1", "s2"]

    def test_empty_statistics(self, registry, tracker):
        """No runs yields zeroed statistics."""
        stats = _orchestrator(registry, tracker).get_statistics()

        assert stats["total_runs"] == 0
        assert stats["success_rate"] == 0.0
        assert stats["average_duration_seconds"] == 0.0


# ============================================================================
# Test with offline agents
# ============================================================================


class TestWithEchoAgents:
    """End-to-end runs with the offline EchoAgent."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("strategy", [s.value for s in StrategyType])
    async def test_every_strategy_succeeds(self, registry, strategy):
        """Each strategy completes the echo-planned goal."""
        orchestrator = AgentOrchestrator(AgentPool.from_registry(registry, EchoAgent))

        result = await orchestrator.orchestrate(
            "Design the API and write tests", OrchestrateOptions(strategy=strategy)
        )

        assert result.success is True
        assert [t.description for t in result.task_breakdown] == [
            "Design the API", "Write tests",
        ]
        assert json.loads(json.dumps(result.to_dict()))["success"] is True
