"""
db.py
SQLite helpers + initialization (creates DB/tables).
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager

import config

DB_FILE = config.DB_FILE


@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def execute_count(sql: str, params: tuple = ()) -> int:
    """Like execute() but returns the number of affected rows."""
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.rowcount


def executemany(sql: str, seq_of_params: list[tuple]) -> None:
    with get_conn() as conn:
        conn.executemany(sql, seq_of_params)


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def _create_tables() -> None:
    execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS membres (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            nom TEXT NOT NULL,
            prenom TEXT NOT NULL,
            telephone TEXT,
            email TEXT,
            created_at TEXT NOT NULL
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS cotisations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            type TEXT NOT NULL,
            description TEXT NOT NULL,
            montant_unitaire REAL NOT NULL CHECK(montant_unitaire > 0),
            date_echeance TEXT,
            created_at TEXT NOT NULL
        )
        """
    )

    # No foreign keys: deleting a member or a contribution leaves its
    # payments in place and joins skip them.
    execute(
        """
        CREATE TABLE IF NOT EXISTS paiements (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            membre_id INTEGER NOT NULL,
            cotisation_id INTEGER NOT NULL,
            payer INTEGER NOT NULL DEFAULT 0 CHECK(payer IN (0, 1)),
            date_paiement TEXT,
            created_at TEXT NOT NULL
        )
        """
    )

    execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS paiements_membre_cotisation
        ON paiements(membre_id, cotisation_id)
        """
    )


def init_db() -> None:
    """
    Initialize the database (idempotent).
    """
    _create_tables()
