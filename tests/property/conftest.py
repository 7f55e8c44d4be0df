# -*- coding: utf-8 -*-
"""
Hypothesis Konfiguration und gemeinsame Strategien für Property-Tests.
"""
from __future__ import annotations

import string

from hypothesis import HealthCheck, Verbosity, settings
from hypothesis import strategies as st

from src.team_orchestrator.models import TaskPriority

# ══════════════════════════════════════════════════════════════════════════════
# HYPOTHESIS PROFILE CONFIGURATION
# ══════════════════════════════════════════════════════════════════════════════

# Default Profile für normale Test-Runs
settings.register_profile(
    "default",
    max_examples=50,
    verbosity=Verbosity.normal,
    deadline=None,  # asyncio.run pro Beispiel
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)

# CI Profile mit mehr Examples
settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.quiet,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)

# Debug Profile für Fehlersuche
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)

settings.load_profile("default")


# ══════════════════════════════════════════════════════════════════════════════
# CUSTOM STRATEGIES FOR TASKS
# ══════════════════════════════════════════════════════════════════════════════

_WORD_ALPHABET = string.ascii_letters + string.digits


@st.composite
def task_descriptions(draw: st.DrawFn, min_words: int = 1, max_words: int = 5) -> str:
    """Strategy für einzeilige Task-Beschreibungen ohne Marker-Präfix."""
    words = draw(
        st.lists(
            st.text(alphabet=_WORD_ALPHABET, min_size=1, max_size=8),
            min_size=min_words,
            max_size=max_words,
        )
    )
    return " ".join(words)


@st.composite
def task_priorities(draw: st.DrawFn) -> TaskPriority:
    """Strategy für Task-Prioritäten."""
    return draw(st.sampled_from(list(TaskPriority)))
