"""Command Line Interface für den Team-Orchestrator.

Die CLI arbeitet mit Offline-Agents (EchoAgent), damit Zerlegung, Auswahl
und Strategien ohne KI-Anbindung ausprobiert werden können.

Usage:
    python -m src.team_orchestrator.cli run "Fix login bug and add dark mode"
    python -m src.team_orchestrator.cli run --strategy parallel --max-concurrency 2 "..."
    python -m src.team_orchestrator.cli roles
    python -m src.team_orchestrator.cli select "refactor the auth module"
    python -m src.team_orchestrator.cli decompose "Design API then write tests"
    python -m src.team_orchestrator.cli history --db var/team/events.sqlite
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from .agents import AgentPool, EchoAgent
from .config import OrchestratorSettings
from .decomposer import TaskDecomposer
from .errors import OrchestratorError
from .events import EventSink, JsonlEventSink, SqliteEventStore
from .logging_setup import configure_logging
from .models import StrategyType, Task, TaskStatus
from .orchestrator import AgentOrchestrator, OrchestrateOptions, OrchestrationResult
from .roles import RoleRegistry
from .selector import AgentSelector

logger = logging.getLogger(__name__)

STATUS_ICONS = {
    TaskStatus.COMPLETED: "✅",
    TaskStatus.FAILED: "❌",
    TaskStatus.IN_PROGRESS: "⏳",
    TaskStatus.PENDING: "•",
}


def print_header(title: str) -> None:
    """Drucke einen formatierten Header.

    Args:
        title: Der Titel
    """
    width = 60
    print()
    print("=" * width)
    print(f" {title}")
    print("=" * width)
    print()


def print_result(result: OrchestrationResult) -> None:
    status = "✅ SUCCESS" if result.success else "❌ FAILED"
    print(f"Status: {status}")
    print(f"Session: {result.session_id}")
    print(f"Strategy: {result.strategy.type.value}")
    print(f"Duration: {result.duration_seconds:.2f}s")

    print("\nTasks:")
    for task in result.task_breakdown:
        icon = STATUS_ICONS[task.status]
        agent = task.assigned_agent or "-"
        print(f"  {icon} {task.id} [{task.priority.value}] ({agent}) {task.description}")

    print("\nTimeline:")
    for entry in result.timeline:
        print(f"  {entry.timestamp:%H:%M:%S} {entry.agent:<12} {entry.event}")


def _load_registry(settings: OrchestratorSettings, args: argparse.Namespace) -> RoleRegistry:
    roles_file = getattr(args, "roles_file", None)
    if roles_file:
        return RoleRegistry.from_yaml(Path(roles_file))
    return settings.role_registry()


def _build_sinks(settings: OrchestratorSettings, args: argparse.Namespace) -> list[EventSink]:
    sinks: list[EventSink] = []
    db_path = getattr(args, "db", None) or settings.event_db
    if db_path:
        sinks.append(SqliteEventStore(Path(db_path)))
    if settings.event_archive:
        sinks.append(JsonlEventSink(settings.event_archive))
    return sinks


async def cmd_run(args: argparse.Namespace, settings: OrchestratorSettings) -> int:
    """Führe einen Orchestrierungs-Lauf mit Offline-Agents aus.

    Returns:
        Exit-Code (0 = Erfolg)
    """
    registry = _load_registry(settings, args)
    pool = AgentPool.from_registry(registry, EchoAgent)

    policy = settings.strategy
    if args.max_concurrency is not None:
        policy = replace(policy, max_concurrency=args.max_concurrency)
    if args.no_retry:
        policy = replace(policy, retry_on_failure=False)
    if args.no_cross_validation:
        policy = replace(policy, cross_validation=False)

    config = replace(settings.orchestrator_config(), strategy=policy)
    goal = " ".join(args.goal)
    sinks = _build_sinks(settings, args)

    # Ab hier besitzt cmd_run offene Sinks
    try:
        orchestrator = AgentOrchestrator(
            pool, registry=registry, config=config, sinks=sinks
        )
        options = OrchestrateOptions(
            strategy=args.strategy,
            priority=args.priority,
            required_roles=args.require or [],
        )
        result = await orchestrator.orchestrate(goal, options)
    finally:
        for sink in sinks:
            if isinstance(sink, SqliteEventStore):
                sink.close()

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))
    else:
        print_header("Team Orchestration")
        print(f"Goal: {goal}\n")
        print_result(result)

    return 0 if result.success else 1


def cmd_roles(args: argparse.Namespace, settings: OrchestratorSettings) -> int:
    """Liste die verfügbaren Rollen."""
    registry = _load_registry(settings, args)
    print_header("Team Roles")
    for role in registry:
        tags = ", ".join(sorted(role.capability_tags))
        print(f"  • {role.name:<10} {role.title} [{role.specialization.value}]")
        print(f"      {role.description}")
        if tags:
            print(f"      Capabilities: {tags}")
    return 0


def cmd_select(args: argparse.Namespace, settings: OrchestratorSettings) -> int:
    """Zeige Primär- und Sekundärrolle für einen Task-Text."""
    registry = _load_registry(settings, args)
    selector = AgentSelector(registry)
    task = Task(id="task-1", description=" ".join(args.text))

    primary = selector.select_primary(task)
    secondary = selector.select_secondary(task, primary)

    print(f"Task: {task.description}")
    print(f"Primary: {primary}")
    print(f"Secondary: {secondary}")
    return 0


async def cmd_decompose(args: argparse.Namespace, settings: OrchestratorSettings) -> int:
    """Zerlege ein Ziel mit dem Offline-Planer."""
    registry = _load_registry(settings, args)
    pool = AgentPool.from_registry(registry, EchoAgent)
    decomposer = TaskDecomposer(
        registry, pool, timeout_seconds=settings.agent_timeout_seconds
    )

    goal = " ".join(args.goal)
    tasks = await decomposer.decompose(goal)

    print_header("Task Breakdown")
    for task in tasks:
        print(f"  {task.id} [{task.priority.value}] {task.description}")
    return 0


def cmd_history(args: argparse.Namespace, settings: OrchestratorSettings) -> int:
    """Zeige gespeicherte Completion-Events."""
    db_path = args.db or settings.event_db
    if not db_path:
        print("❌ No event database given (use --db or TEAM_EVENT_DB)")
        return 1
    if not Path(db_path).exists():
        print(f"❌ Event database not found: {db_path}")
        return 1

    with SqliteEventStore(Path(db_path)) as store:
        events = store.fetch(args.session) if args.session else store.recent(args.limit)

    print_header("Run History")
    if not events:
        print("No events recorded.")
        return 0
    for event in events:
        icon = "✅" if event["success"] else "❌"
        print(f"  {icon} {event['timestamp']} {event['session_id']} ({event['strategy']})")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Erstelle den CLI Argument Parser.

    Returns:
        Konfigurierter ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="team-orchestrator",
        description="Multi-agent development team orchestrator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s run "Fix login bug and add dark mode"
  %(prog)s run --strategy collaborative "refactor the auth module"
  %(prog)s select "write tests for the parser"
  %(prog)s history --db var/team/events.sqlite
""",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--roles-file",
        help="YAML file with role definitions (default: TEAM_ROLES_FILE or built-in team)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    run_parser = subparsers.add_parser("run", help="Orchestrate a goal with offline agents")
    run_parser.add_argument("goal", nargs="+", help="Goal description")
    run_parser.add_argument(
        "-s", "--strategy",
        choices=[s.value for s in StrategyType],
        help="Execution strategy (default: TEAM_STRATEGY)",
    )
    run_parser.add_argument("--max-concurrency", type=int, help="Parallel batch size")
    run_parser.add_argument(
        "--no-retry",
        action="store_true",
        help="Abort the run on the first task failure",
    )
    run_parser.add_argument(
        "--no-cross-validation",
        action="store_true",
        help="Skip the review pass in collaborative mode",
    )
    run_parser.add_argument("--priority", help="Priority of the fallback task")
    run_parser.add_argument(
        "--require",
        action="append",
        metavar="ROLE",
        help="Role the planner must consider (repeatable)",
    )
    run_parser.add_argument("--db", help="SQLite event store (default: TEAM_EVENT_DB)")
    run_parser.add_argument("--json", action="store_true", help="Print result as JSON")

    subparsers.add_parser("roles", help="List team roles")

    select_parser = subparsers.add_parser("select", help="Show role selection for a task")
    select_parser.add_argument("text", nargs="+", help="Task description")

    decompose_parser = subparsers.add_parser("decompose", help="Break a goal into tasks")
    decompose_parser.add_argument("goal", nargs="+", help="Goal description")

    history_parser = subparsers.add_parser("history", help="Show recorded runs")
    history_parser.add_argument("--db", help="SQLite event store (default: TEAM_EVENT_DB)")
    history_parser.add_argument("--session", help="Only events of this session")
    history_parser.add_argument("--limit", type=int, default=20, help="Number of runs")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI Entry Point.

    Returns:
        Exit-Code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        settings = OrchestratorSettings.from_env()
        configure_logging(
            "DEBUG" if args.verbose else settings.log_level,
            log_file=settings.log_file,
        )

        if args.command == "roles":
            return cmd_roles(args, settings)
        elif args.command == "select":
            return cmd_select(args, settings)
        elif args.command == "history":
            return cmd_history(args, settings)
        elif args.command == "decompose":
            return asyncio.run(cmd_decompose(args, settings))
        elif args.command == "run":
            return asyncio.run(cmd_run(args, settings))
    except (OrchestratorError, FileNotFoundError) as e:
        print(f"❌ {e}")
        logger.debug("CLI command failed", exc_info=True)
        return 2

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
