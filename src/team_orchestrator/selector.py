"""Agent-Auswahl per Entscheidungstabelle.

Die Primärrolle ergibt sich aus der ersten passenden Regel (Substring-Match
auf der kleingeschriebenen Task-Beschreibung). Die Sekundärrolle für den
Collaborative-Modus kommt aus einer festen Zuordnung.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .models import Task
from .roles import RoleRegistry

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "developer"


@dataclass(frozen=True)
class SelectionRule:
    """Eine Zeile der Entscheidungstabelle.

    Attributes:
        name: Name der Regel (für Logging)
        keywords: Schlüsselwörter (Substring, lowercase)
        role: Ziel-Rolle
    """

    name: str
    keywords: tuple[str, ...]
    role: str

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


# Reihenfolge ist relevant: die erste passende Regel gewinnt
DEFAULT_RULES: tuple[SelectionRule, ...] = (
    SelectionRule("design", ("architecture", "design", "plan"), "architect"),
    SelectionRule("quality", ("test", "quality", "bug"), "tester"),
    SelectionRule("review", ("review", "improve", "refactor"), "reviewer"),
)

SECONDARY_ROLES: dict[str, str] = {
    "developer": "reviewer",
    "architect": "developer",
    "tester": "developer",
    "reviewer": "developer",
}


class AgentSelector:
    """Zustandslose Auswahl von Primär- und Sekundärrolle.

    Alle Rollen der Tabellen werden bei der Konstruktion gegen die Registry
    geprüft; eine nicht registrierte Rolle ist ein Konfigurationsfehler
    (UnknownRoleError), bevor ein Task startet.

    Raises:
        UnknownRoleError: Wenn eine Regel-, Default- oder Sekundärrolle fehlt
    """

    def __init__(
        self,
        registry: RoleRegistry,
        rules: tuple[SelectionRule, ...] = DEFAULT_RULES,
        default_role: str = DEFAULT_ROLE,
        secondary_roles: dict[str, str] | None = None,
    ) -> None:
        self.registry = registry
        self.rules = rules
        self.default_role = default_role
        self.secondary_roles = dict(SECONDARY_ROLES if secondary_roles is None else secondary_roles)

        for role in self.table_roles():
            self.registry.require(role)

    def table_roles(self) -> list[str]:
        """Alle Rollen, die Regeln, Default und Sekundär-Tabelle nennen."""
        roles = [rule.role for rule in self.rules]
        roles.append(self.default_role)
        roles.extend(self.secondary_roles.values())
        return list(dict.fromkeys(roles))

    def select_primary(self, task: Task) -> str:
        """Rolle, die den Task ausführt."""
        text = task.description.lower()
        for rule in self.rules:
            if rule.matches(text):
                logger.debug(f"Task {task.id} matched rule '{rule.name}' → {rule.role}")
                return self.registry.require(rule.role)
        return self.registry.require(self.default_role)

    def select_secondary(self, task: Task, primary: str) -> str:
        """Rolle für den Review-Durchlauf im Collaborative-Modus."""
        secondary = self.secondary_roles.get(primary)
        if secondary is None:
            secondary = self.registry.first_other_than(primary)
        logger.debug(f"Task {task.id}: secondary for {primary} → {secondary}")
        return self.registry.require(secondary)
