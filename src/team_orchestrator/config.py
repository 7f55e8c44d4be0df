"""
config.py
---------
Umgebungs-Konfiguration des Team-Orchestrators.

- Lädt .env (falls vorhanden) und liest die relevanten Variablen.
- Ungültige Werte für Strategie und Zahlen sind Konfigurationsfehler.

Wichtige .env-Variablen:
  TEAM_STRATEGY=sequential|parallel|hierarchical|collaborative  (Default: hierarchical)
  TEAM_MAX_CONCURRENCY=3                       (Default: 3, >= 1)
  TEAM_RETRY_ON_FAILURE=true|false             (Default: true)
  TEAM_CROSS_VALIDATION=true|false             (Default: true)
  TEAM_AGENT_TIMEOUT_SECONDS=300               (Default: 300)
  TEAM_ROLES_FILE=configs/roles.yaml           (optional, YAML-Rollen)
  TEAM_EVENT_DB=var/team/events.sqlite         (optional, SQLite-Event-Store)
  TEAM_EVENT_ARCHIVE=var/team/events.jsonl     (optional, JSONL-Archiv)
  LOG_LEVEL=CRITICAL|ERROR|WARNING|INFO|DEBUG  (Default: INFO)
  TEAM_LOG_FILE=var/logs/team.log              (optional, rotierende Logdatei)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .models import OrchestrationStrategy, StrategyType
from .orchestrator import OrchestratorConfig
from .roles import RoleRegistry

LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}


# --- Helpers -------------------------------------------------------------------
def _get_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    val = env.get(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def _get_choice(env: Mapping[str, str], name: str, choices: set[str], default: str) -> str:
    raw = env.get(name, default).strip().upper()
    return raw if raw in choices else default


def _get_path(env: Mapping[str, str], name: str) -> Optional[Path]:
    raw = env.get(name)
    return Path(raw.strip()) if raw and raw.strip() else None


@dataclass(frozen=True)
class OrchestratorSettings:
    """Aus der Umgebung gelesene Einstellungen."""

    strategy: OrchestrationStrategy = field(default_factory=OrchestrationStrategy)
    agent_timeout_seconds: float = 300.0
    roles_file: Optional[Path] = None
    event_db: Optional[Path] = None
    event_archive: Optional[Path] = None
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OrchestratorSettings:
        """Liest die Einstellungen.

        Args:
            environ: Variablen-Mapping; ohne Angabe wird .env geladen und
                ``os.environ`` verwendet
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        strategy = OrchestrationStrategy(
            type=StrategyType.parse(environ.get("TEAM_STRATEGY", "hierarchical")),
            max_concurrency=_get_int(environ, "TEAM_MAX_CONCURRENCY", 3),
            retry_on_failure=_get_bool(environ, "TEAM_RETRY_ON_FAILURE", True),
            cross_validation=_get_bool(environ, "TEAM_CROSS_VALIDATION", True),
        )
        timeout = _get_float(environ, "TEAM_AGENT_TIMEOUT_SECONDS", 300.0)
        if timeout <= 0:
            raise ConfigurationError(
                f"TEAM_AGENT_TIMEOUT_SECONDS must be > 0, got {timeout}"
            )

        return cls(
            strategy=strategy,
            agent_timeout_seconds=timeout,
            roles_file=_get_path(environ, "TEAM_ROLES_FILE"),
            event_db=_get_path(environ, "TEAM_EVENT_DB"),
            event_archive=_get_path(environ, "TEAM_EVENT_ARCHIVE"),
            log_level=_get_choice(environ, "LOG_LEVEL", LOG_LEVELS, "INFO"),
            log_file=_get_path(environ, "TEAM_LOG_FILE"),
        )

    def orchestrator_config(self) -> OrchestratorConfig:
        return OrchestratorConfig(
            strategy=self.strategy,
            timeout_seconds=self.agent_timeout_seconds,
        )

    def role_registry(self) -> RoleRegistry:
        """Rollen aus TEAM_ROLES_FILE oder das Standard-Team."""
        if self.roles_file is not None:
            return RoleRegistry.from_yaml(self.roles_file)
        return RoleRegistry.default()
