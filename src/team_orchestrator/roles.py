"""Rollen-Registry des Entwicklerteams.

Statisches Mapping Rollenname → RoleDefinition. Die Registry wird einmal pro
Orchestrator-Instanz erstellt und danach nicht mehr verändert.

Standard-Team:
- architect: System-Design und Planung (übernimmt die Task-Zerlegung)
- developer: Implementierung
- tester: Tests und Qualitätssicherung
- reviewer: Code Review und Verbesserungen
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterator

import yaml

from .errors import ConfigurationError, UnknownRoleError

logger = logging.getLogger(__name__)


class Specialization(Enum):
    """Spezialisierung einer Rolle."""

    PLANNING = "planning"
    CODING = "coding"
    TESTING = "testing"
    REVIEWING = "reviewing"
    DOCUMENTING = "documenting"


@dataclass(frozen=True)
class RoleDefinition:
    """Unveränderliche Definition einer Agent-Rolle.

    Attributes:
        name: Eindeutiger Rollenname (Schlüssel in der Registry)
        title: Anzeigename der Rolle
        description: Kurzbeschreibung der Verantwortlichkeiten
        system_prompt: System-Prompt für den Agent
        capability_tags: Fähigkeiten/Werkzeuge der Rolle
        specialization: Spezialisierungs-Kategorie
    """

    name: str
    title: str
    description: str
    system_prompt: str
    capability_tags: frozenset[str] = field(default_factory=frozenset)
    specialization: Specialization = Specialization.CODING

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "capability_tags": sorted(self.capability_tags),
            "specialization": self.specialization.value,
        }


ARCHITECT_PROMPT = """You are a Senior Software Architect. Your role is to:
- Design system architecture and technical solutions
- Make technology stack decisions
- Define coding standards and best practices
- Create technical specifications and documentation
- Ensure scalability and maintainability

Focus on long-term technical vision and architectural soundness."""

DEVELOPER_PROMPT = """You are a Senior Software Developer. Your role is to:
- Write clean, efficient, and well-documented code
- Implement features according to specifications
- Debug and fix issues
- Optimize performance
- Follow best practices and coding standards

Focus on code quality, functionality, and maintainability."""

TESTER_PROMPT = """You are a Senior QA Engineer. Your role is to:
- Create comprehensive test suites
- Identify edge cases and potential issues
- Ensure code quality and reliability
- Write both unit and integration tests
- Perform code quality analysis

Focus on thorough testing and quality assurance."""

REVIEWER_PROMPT = """You are a Senior Code Reviewer. Your role is to:
- Review code for quality, security, and performance
- Provide constructive feedback and suggestions
- Ensure coding standards are followed
- Identify potential improvements and refactoring opportunities
- Verify that requirements are met

Focus on code quality, security, and best practices."""


DEFAULT_ROLES: tuple[RoleDefinition, ...] = (
    RoleDefinition(
        name="architect",
        title="Software Architect",
        description="Designs system architecture and makes high-level decisions",
        system_prompt=ARCHITECT_PROMPT,
        capability_tags=frozenset({"analyze_code", "generate_plan", "search_memory"}),
        specialization=Specialization.PLANNING,
    ),
    RoleDefinition(
        name="developer",
        title="Senior Developer",
        description="Implements features and writes high-quality code",
        system_prompt=DEVELOPER_PROMPT,
        capability_tags=frozenset({"read_file", "write_file", "run_command", "git_commit"}),
        specialization=Specialization.CODING,
    ),
    RoleDefinition(
        name="tester",
        title="QA Engineer",
        description="Creates comprehensive tests and ensures quality",
        system_prompt=TESTER_PROMPT,
        capability_tags=frozenset({"create_test", "run_tests", "read_file"}),
        specialization=Specialization.TESTING,
    ),
    RoleDefinition(
        name="reviewer",
        title="Code Reviewer",
        description="Reviews code for best practices and improvements",
        system_prompt=REVIEWER_PROMPT,
        capability_tags=frozenset({"read_file", "analyze_code"}),
        specialization=Specialization.REVIEWING,
    ),
)


class RoleRegistry:
    """Registry der verfügbaren Rollen (Reihenfolge = Definitionsreihenfolge).

    Keine dynamische Registrierung: die Rollen werden bei der Konstruktion
    übergeben und sind danach fix.
    """

    def __init__(self, roles: tuple[RoleDefinition, ...] | list[RoleDefinition]) -> None:
        if not roles:
            raise ConfigurationError("Role registry requires at least one role")

        self._roles: dict[str, RoleDefinition] = {}
        for role in roles:
            if role.name in self._roles:
                raise ConfigurationError(f"Duplicate role: {role.name}", role=role.name)
            self._roles[role.name] = role

        logger.debug(f"RoleRegistry initialized with roles: {', '.join(self._roles)}")

    @classmethod
    def default(cls) -> RoleRegistry:
        """Standard-Team aus Architect, Developer, Tester und Reviewer."""
        return cls(DEFAULT_ROLES)

    @classmethod
    def from_yaml(cls, path: Path) -> RoleRegistry:
        """Lädt Rollen aus einer YAML-Datei.

        Format::

            roles:
              - name: architect
                title: Software Architect
                description: ...
                system_prompt: ...
                capability_tags: [analyze_code, generate_plan]
                specialization: planning

        Raises:
            FileNotFoundError: Wenn die Datei nicht existiert
            ConfigurationError: Bei ungültigem Inhalt
        """
        if not path.exists():
            raise FileNotFoundError(f"Role file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoleRegistry:
        """Erstellt die Registry aus einem Dict (z.B. geparstes YAML)."""
        raw_roles = data.get("roles")
        if not isinstance(raw_roles, list):
            raise ConfigurationError("Role configuration requires a 'roles' list")

        roles = [cls._parse_role(entry) for entry in raw_roles]
        return cls(roles)

    @staticmethod
    def _parse_role(entry: dict[str, Any]) -> RoleDefinition:
        """Parst eine einzelne Rolle aus Konfigurationsdaten."""
        if not isinstance(entry, dict) or not entry.get("name"):
            raise ConfigurationError(f"Invalid role entry: {entry!r}")

        name = str(entry["name"]).strip().lower()
        spec_raw = str(entry.get("specialization", Specialization.CODING.value))
        try:
            specialization = Specialization(spec_raw.lower())
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown specialization '{spec_raw}' for role {name}", role=name
            ) from e

        return RoleDefinition(
            name=name,
            title=entry.get("title", name.title()),
            description=entry.get("description", ""),
            system_prompt=entry.get("system_prompt", ""),
            capability_tags=frozenset(entry.get("capability_tags", [])),
            specialization=specialization,
        )

    def get(self, name: str) -> RoleDefinition:
        """Hole eine Rolle nach Name.

        Raises:
            UnknownRoleError: Wenn die Rolle nicht registriert ist
        """
        try:
            return self._roles[name]
        except KeyError:
            raise UnknownRoleError(name, available=list(self._roles)) from None

    def require(self, name: str) -> str:
        """Validiert einen Rollennamen und gibt ihn zurück."""
        self.get(name)
        return name

    def names(self) -> list[str]:
        return list(self._roles)

    def by_specialization(self, specialization: Specialization) -> list[RoleDefinition]:
        return [r for r in self._roles.values() if r.specialization == specialization]

    def planning_role(self) -> RoleDefinition:
        """Die Rolle, die Tasks zerlegt (erste Rolle mit ``planning``).

        Raises:
            ConfigurationError: Wenn keine Planungs-Rolle existiert
        """
        planners = self.by_specialization(Specialization.PLANNING)
        if not planners:
            raise ConfigurationError("No role with specialization 'planning' registered")
        return planners[0]

    def first_other_than(self, name: str) -> str:
        """Erste Rolle (Definitionsreihenfolge), die nicht ``name`` ist."""
        for role_name in self._roles:
            if role_name != name:
                return role_name
        raise ConfigurationError(
            f"No role other than '{name}' registered", role=name
        )

    def __contains__(self, name: object) -> bool:
        return name in self._roles

    def __iter__(self) -> Iterator[RoleDefinition]:
        return iter(self._roles.values())

    def __len__(self) -> int:
        return len(self._roles)
