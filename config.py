"""
config.py
Runtime settings read from the environment (with defaults next to the code).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

DB_FILE = Path(os.environ.get("COTISATIONS_DB", BASE_DIR / "cotisations.db"))
BACKUP_DIR = Path(os.environ.get("COTISATIONS_BACKUP_DIR", BASE_DIR / "backups"))
CURRENCY = os.environ.get("COTISATIONS_CURRENCY", "GNF")
LOG_LEVEL = os.environ.get("COTISATIONS_LOG_LEVEL", "INFO").upper()

MIN_PASSWORD_LENGTH = 6


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, level or LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
