"""Prompt-Vorlagen des Orchestrators.

Die Texte gehen unverändert an die Agenten. Zerlegungs- und Review-Prompt
sind Teil des Verhaltens: Tests und der Offline-Agent erkennen sie wieder.
"""

from __future__ import annotations

from typing import Iterable

DECOMPOSITION_PREFIX = (
    "Analyze this task and break it down into smaller, manageable subtasks: "
)

DECOMPOSITION_TEMPLATE = (
    DECOMPOSITION_PREFIX
    + """{goal}

Consider:
- Required skills and roles
- Task dependencies
- Priority levels
- Estimated complexity
- Required tools and resources

Available roles: {roles}"""
)

REVIEW_TEMPLATE = "Review and improve this work: {work}\nOriginal task: {task}"


def build_decomposition_prompt(
    goal: str,
    roles: Iterable[str],
    required_roles: Iterable[str] | None = None,
) -> str:
    """Prompt für den Planungs-Agent.

    Args:
        goal: Ursprüngliches Ziel
        roles: Namen aller verfügbaren Rollen
        required_roles: Rollen, die der Aufrufer einbezogen haben möchte
    """
    prompt = DECOMPOSITION_TEMPLATE.format(goal=goal, roles=", ".join(roles))
    required = list(required_roles or [])
    if required:
        prompt += f"\nRequired roles: {', '.join(required)}"
    return prompt


def is_decomposition_prompt(text: str) -> bool:
    return text.startswith(DECOMPOSITION_PREFIX)


def extract_goal(text: str) -> str:
    """Gewinnt das Ziel aus einem Zerlegungs-Prompt zurück."""
    body = text[len(DECOMPOSITION_PREFIX):] if is_decomposition_prompt(text) else text
    return body.split("\n\nConsider:", 1)[0].strip()


def build_review_prompt(work: str, task: str) -> str:
    """Prompt für den zweiten Durchlauf im Collaborative-Modus."""
    return REVIEW_TEMPLATE.format(work=work, task=task)
