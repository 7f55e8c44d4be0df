"""Exception-Hierarchie für den Team-Orchestrator.

Fehler-Taxonomie:
- Konfigurationsfehler (unbekannte Rolle, ungültige Strategie) → fail fast
- Zerlegungsfehler (Planungs-Agent schlägt fehl) → bricht den Lauf ab
- Task-Fehler (Agent-Aufruf schlägt fehl) → werden pro Task erfasst
- Zustandsfehler (unerlaubter Status-Übergang) → Programmierfehler

Nur Konfigurations- und Zerlegungsfehler erreichen den Aufrufer von
``orchestrate()``. Task-Fehler landen als ``{"error": ...}`` im Task-Ergebnis.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Error-Codes des Orchestrators.

    Code-Bereiche:
        1000-1999:  Konfigurationsfehler (nicht recoverable)
        2000-2999:  Zerlegungsfehler (Lauf wird abgebrochen)
        3000-3999:  Agent-Ausführungsfehler (pro Task recoverable)
        4000-4999:  Interne Fehler (Bugs)
    """

    OK = 0

    CONFIGURATION_ERROR = 1000
    """Allgemeiner Konfigurationsfehler."""

    UNKNOWN_ROLE = 1001
    """Rolle ist nicht in der Registry bzw. im Agent-Pool registriert."""

    INVALID_STRATEGY = 1002
    """Ungültige Strategie-Konfiguration (z.B. max_concurrency < 1)."""

    DECOMPOSITION_FAILED = 2000
    """Planungs-Agent ist fehlgeschlagen."""

    NO_TASKS_PARSED = 2001
    """Antwort des Planungs-Agents enthielt keine erkennbaren Tasks."""

    AGENT_FAILED = 3000
    """Agent-Aufruf hat einen Fehler geliefert."""

    AGENT_TIMEOUT = 3001
    """Agent-Aufruf hat das Zeitlimit überschritten."""

    INTERNAL_ERROR = 4000
    """Unerwarteter interner Fehler."""

    INVALID_TRANSITION = 4001
    """Unerlaubter Task-Statusübergang oder doppelter Schreibzugriff."""

    ORCHESTRATOR_BUSY = 4002
    """Paralleler orchestrate()-Aufruf auf derselben Instanz."""


def error_category(code: ErrorCode | int) -> str:
    """Kategorie-Name für einen Error-Code."""
    code = int(code)
    if code == 0:
        return "OK"
    if 1000 <= code < 2000:
        return "CONFIGURATION"
    if 2000 <= code < 3000:
        return "DECOMPOSITION"
    if 3000 <= code < 4000:
        return "AGENT"
    return "INTERNAL"


class OrchestratorError(Exception):
    """Basis-Exception für alle Orchestrator-Fehler.

    Attributes:
        message: Menschenlesbare Fehlermeldung
        error_code: Numerischer Error-Code (siehe ErrorCode)
        context: Dict mit zusätzlichem Kontext für Debugging

    Example:
        >>> try:
        ...     raise OrchestratorError("Something went wrong")
        ... except OrchestratorError as e:
        ...     log.error(f"[{e.error_code}] {e.message}", extra=e.context)
    """

    default_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        error_code: int | ErrorCode | None = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = int(error_code if error_code is not None else self.default_code)
        self.context = context

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code}, "
            f"context={self.context!r})"
        )

    @property
    def category(self) -> str:
        """Fehler-Kategorie basierend auf error_code."""
        return error_category(self.error_code)

    def to_dict(self) -> dict[str, Any]:
        """Konvertiert die Exception in ein serialisierbares Dict."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "category": self.category,
        }


class ConfigurationError(OrchestratorError):
    """Fehlerhafte Konfiguration (Programmierfehler, nicht recoverable)."""

    default_code = ErrorCode.CONFIGURATION_ERROR


class UnknownRoleError(ConfigurationError):
    """Eine ausgewählte Rolle ist nicht registriert.

    Die Rollen-Tabellen sind per Konstruktion vollständig; tritt dieser
    Fehler auf, wird kein Ersatz-Agent eingesetzt.
    """

    default_code = ErrorCode.UNKNOWN_ROLE

    def __init__(self, role: str, **context: Any) -> None:
        super().__init__(f"Unknown agent role: {role}", role=role, **context)
        self.role = role


class DecompositionError(OrchestratorError):
    """Der Planungs-Agent ist fehlgeschlagen, der Lauf wird abgebrochen."""

    default_code = ErrorCode.DECOMPOSITION_FAILED


class TaskParseError(OrchestratorError):
    """Die Planungs-Antwort enthielt keine erkennbaren Tasks.

    Wird ausschließlich vom TaskDecomposer abgefangen, der daraus den
    Fallback-Task erzeugt.
    """

    default_code = ErrorCode.NO_TASKS_PARSED


class AgentExecutionError(OrchestratorError):
    """Ein Agent-Aufruf ist fehlgeschlagen."""

    default_code = ErrorCode.AGENT_FAILED

    def __init__(self, message: str, agent: str | None = None, **context: Any) -> None:
        if agent:
            context["agent"] = agent
        super().__init__(message, **context)
        self.agent = agent


class AgentTimeoutError(AgentExecutionError):
    """Ein Agent-Aufruf hat das Zeitlimit überschritten."""

    default_code = ErrorCode.AGENT_TIMEOUT


class InvalidTransitionError(OrchestratorError):
    """Unerlaubter Statusübergang eines Tasks oder doppelter Beitrag."""

    default_code = ErrorCode.INVALID_TRANSITION


class OrchestratorBusyError(OrchestratorError):
    """Auf derselben Orchestrator-Instanz läuft bereits eine Orchestrierung."""

    default_code = ErrorCode.ORCHESTRATOR_BUSY
