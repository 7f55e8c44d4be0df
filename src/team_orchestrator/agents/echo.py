"""Offline-Agent ohne externe KI-Anbindung.

Der EchoAgent wird von der CLI und in Tests verwendet. Er erzeugt
deterministische Antworten, damit ein kompletter Orchestrierungs-Lauf ohne
Netzwerk durchgespielt werden kann.
"""

from __future__ import annotations

import asyncio
import re
from typing import Callable

from ..prompts import extract_goal, is_decomposition_prompt
from ..roles import RoleDefinition, Specialization
from .base import AgentResult, BaseAgent, ExecutionOptions

Responder = Callable[[RoleDefinition, str], str]

_SPLIT_PATTERN = re.compile(r"\s+(?:and|then|und)\s+|[;\n]", re.IGNORECASE)


def plan_goal(goal: str) -> str:
    """Zerlegt ein Ziel an Konjunktionen in ``Task:``-Zeilen."""
    parts = [p.strip(" .") for p in _SPLIT_PATTERN.split(goal)]
    return "\n".join(f"Task: {p[0].upper()}{p[1:]}" for p in parts if p)


def default_responder(role: RoleDefinition, task_text: str) -> str:
    if role.specialization == Specialization.PLANNING and is_decomposition_prompt(task_text):
        return plan_goal(extract_goal(task_text))
    first_line = task_text.strip().splitlines()[0] if task_text.strip() else ""
    return f"[{role.name}] {first_line}"


class EchoAgent(BaseAgent):
    """Agent mit lokal berechneter Antwort.

    Args:
        role: Rolle des Agents
        responder: Optionale Funktion ``(role, task_text) -> output``
        delay_seconds: Künstliche Verzögerung pro Aufruf
    """

    def __init__(
        self,
        role: RoleDefinition,
        responder: Responder | None = None,
        delay_seconds: float = 0.0,
    ) -> None:
        super().__init__(role)
        self._responder = responder or default_responder
        self._delay = delay_seconds

    async def execute(self, task_text: str, options: ExecutionOptions) -> AgentResult:
        if self._delay:
            await asyncio.sleep(self._delay)

        output = self._responder(self.role, task_text)
        return AgentResult(
            agent_name=self.name,
            success=True,
            output=output,
            steps=[{"step": 1, "action": "respond", "reasoning": options.reasoning}],
            metadata={"max_steps": options.max_steps},
        )
