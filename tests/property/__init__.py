# -*- coding: utf-8 -*-
"""
Property-Based Tests für den Team-Orchestrator.

Diese Tests validieren Invarianten der Ausführungsstrategien:
- Reihenfolge und Nebenläufigkeit
- Zerlegung und Fallback
- Determinismus der Rollenauswahl
"""
