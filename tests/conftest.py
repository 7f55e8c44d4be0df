from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure repository root is on sys.path so imports like `src.team_orchestrator.*`
# and `tests.mocks.*` work reliably across different pytest/runner configurations.
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from src.team_orchestrator.roles import RoleRegistry
from tests.mocks.scripted_agent import CallTracker


@pytest.fixture
def registry() -> RoleRegistry:
    """Provide the default four-role team."""

    return RoleRegistry.default()


@pytest.fixture
def tracker() -> CallTracker:
    """Provide a fresh call log for scripted agents."""

    return CallTracker()


@pytest.fixture(autouse=True)
def _isolate_team_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep TEAM_* variables of the developer shell out of the tests."""

    for name in (
        "TEAM_STRATEGY",
        "TEAM_MAX_CONCURRENCY",
        "TEAM_RETRY_ON_FAILURE",
        "TEAM_CROSS_VALIDATION",
        "TEAM_AGENT_TIMEOUT_SECONDS",
        "TEAM_ROLES_FILE",
        "TEAM_EVENT_DB",
        "TEAM_EVENT_ARCHIVE",
        "TEAM_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
