"""Logging-Setup für den Team-Orchestrator.

Konsole plus optional rotierende Logdatei (ConcurrentRotatingFileHandler,
mehrprozess-tauglich). Unter Pytest propagieren die Logs an den Root-Logger,
damit ``caplog`` sie sieht.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from concurrent_log_handler import ConcurrentRotatingFileHandler

LOGGER_NAME = "src.team_orchestrator"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    level: str | int = "INFO",
    log_file: Optional[Path] = None,
    console: Optional[bool] = None,
) -> logging.Logger:
    """Richtet den Paket-Logger ein.

    Args:
        level: Log-Level (Name oder Zahl)
        log_file: Optionaler Pfad für die rotierende Logdatei
        console: Konsolen-Handler erzwingen/unterdrücken (Default: nicht unter Pytest)

    Returns:
        Der konfigurierte Paket-Logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(level)

    # Pytest-Kompatibilität: propagate in Tests aktivieren
    in_pytest = "PYTEST_CURRENT_TEST" in os.environ
    logger.propagate = bool(in_pytest)
    use_console = console if console is not None else not in_pytest

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if use_console:
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(LOG_FORMAT, "%H:%M:%S"))
        ch.setLevel(level)
        logger.addHandler(ch)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = ConcurrentRotatingFileHandler(
            str(log_file),
            maxBytes=10_000_000,
            backupCount=7,
            encoding="utf-8",
        )
        fh.setFormatter(logging.Formatter(FILE_FORMAT, "%Y-%m-%d %H:%M:%S"))
        fh.setLevel(logging.DEBUG)
        logger.addHandler(fh)

    return logger
