"""
backup.py
Local JSON backups: backup_YYYY-MM-DD.json holding every table.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from errors import BackupError
from models import Snapshot

logger = logging.getLogger(__name__)

BACKUP_KEYS = ("members", "contributions", "payments", "timestamp")


def create_backup(snapshot: Snapshot, directory: Path) -> Path:
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    now = datetime.now(timezone.utc)
    data = {
        "members": [asdict(m) for m in snapshot.members],
        "contributions": [asdict(c) for c in snapshot.contributions],
        "payments": [asdict(p) for p in snapshot.payments],
        "timestamp": now.isoformat(timespec="seconds"),
    }
    path = directory / f"backup_{now.date().isoformat()}.json"
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Backup written to %s", path)
    return path


def list_backups(directory: Path) -> list[Path]:
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(directory.glob("backup_*.json"), reverse=True)


def load_backup(path: Path) -> dict:
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise BackupError(f"Invalid backup {path.name}: {exc}") from exc
    if not isinstance(data, dict):
        raise BackupError(f"Invalid backup {path.name}: not a JSON object")
    missing = [k for k in BACKUP_KEYS if k not in data]
    if missing:
        raise BackupError(f"Invalid backup {path.name}: missing {', '.join(missing)}")
    return data


def describe_backup(data: dict) -> dict:
    return {
        "Membres": len(data["members"]),
        "Cotisations": len(data["contributions"]),
        "Paiements": len(data["payments"]),
        "Date": data["timestamp"],
    }


def delete_backup(path: Path) -> None:
    Path(path).unlink()
    logger.info("Backup %s deleted", path)
