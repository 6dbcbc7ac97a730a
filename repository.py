"""
repository.py
Table-level CRUD over SQLite: list / get / create / update / delete.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone

import db
from errors import RepositoryError
from models import Contribution, Member, Payment

logger = logging.getLogger(__name__)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class Repository:
    table: str = ""
    model = None
    columns: tuple[str, ...] = ()

    def _run(self, fn, *args):
        try:
            return fn(*args)
        except sqlite3.Error as exc:
            logger.error("%s: %s", self.table, exc)
            raise RepositoryError(str(exc)) from exc

    def _clean(self, fields: dict) -> dict:
        unknown = set(fields) - set(self.columns)
        if unknown:
            raise ValueError(f"Unknown column(s) for {self.table}: {', '.join(sorted(unknown))}")
        return dict(fields)

    def list(self, order_by: str | None = None, descending: bool = False) -> list:
        sql = f"SELECT * FROM {self.table}"
        if order_by:
            if order_by not in self.columns + ("id", "created_at"):
                raise ValueError(f"Cannot order {self.table} by {order_by!r}")
            sql += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}, id ASC"
        rows = self._run(db.fetch_all, sql)
        return [self.model.from_row(r) for r in rows]

    def get(self, row_id: int):
        row = self._run(db.fetch_one, f"SELECT * FROM {self.table} WHERE id = ?", (row_id,))
        return self.model.from_row(row) if row else None

    def create(self, fields: dict):
        values = self._clean(fields)
        values["created_at"] = now_iso()
        cols = ", ".join(values)
        marks = ",".join("?" for _ in values)
        row_id = self._run(
            db.execute,
            f"INSERT INTO {self.table}({cols}) VALUES({marks})",
            tuple(values.values()),
        )
        logger.info("Created %s #%s", self.table, row_id)
        return self.get(row_id)

    def update(self, row_id: int, fields: dict) -> None:
        values = self._clean(fields)
        if not values:
            return
        assignments = ", ".join(f"{c}=?" for c in values)
        count = self._run(
            db.execute_count,
            f"UPDATE {self.table} SET {assignments} WHERE id=?",
            tuple(values.values()) + (row_id,),
        )
        if count == 0:
            raise RepositoryError(f"No row with id {row_id} in {self.table}")
        logger.info("Updated %s #%s", self.table, row_id)

    def delete(self, row_id: int) -> None:
        self._run(db.execute, f"DELETE FROM {self.table} WHERE id = ?", (row_id,))
        logger.info("Deleted %s #%s", self.table, row_id)

    def delete_all(self) -> None:
        replace_tables([(self, [])])

    def replace_rows(self, conn, rows: list[dict]) -> int:
        """Wipe the table and insert rows with their original ids, on the caller's connection."""
        cols = ("id",) + self.columns + ("created_at",)
        params = [tuple(r.get(c) if c != "created_at" else (r.get(c) or now_iso()) for c in cols) for r in rows]
        conn.execute(f"DELETE FROM {self.table}")
        if params:
            conn.executemany(
                f"INSERT INTO {self.table}({', '.join(cols)}) VALUES({','.join('?' for _ in cols)})",
                params,
            )
        return len(params)

    def replace_all(self, rows: list[dict]) -> None:
        replace_tables([(self, rows)])


def replace_tables(replacements) -> None:
    """
    Replace the content of several tables in a single transaction
    (backup restore, reset). If any statement fails nothing is committed.
    """
    try:
        with db.get_conn() as conn:
            counts = [(repo.table, repo.replace_rows(conn, rows)) for repo, rows in replacements]
    except sqlite3.Error as exc:
        logger.error("Replace of %s rolled back: %s", ", ".join(r.table for r, _ in replacements), exc)
        raise RepositoryError(str(exc)) from exc
    for table, n in counts:
        logger.info("Restored %d row(s) into %s", n, table)


class MemberRepository(Repository):
    table = "membres"
    model = Member
    columns = ("nom", "prenom", "telephone", "email")


class ContributionRepository(Repository):
    table = "cotisations"
    model = Contribution
    columns = ("type", "description", "montant_unitaire", "date_echeance")


class PaymentRepository(Repository):
    table = "paiements"
    model = Payment
    columns = ("membre_id", "cotisation_id", "payer", "date_paiement")

    def create(self, fields: dict) -> Payment:
        """
        Insert a payment, or overwrite the existing row for the same
        (membre_id, cotisation_id) pair (last write wins).
        """
        values = self._clean(fields)
        self._run(
            db.execute,
            """
            INSERT INTO paiements(membre_id, cotisation_id, payer, date_paiement, created_at)
            VALUES(?,?,?,?,?)
            ON CONFLICT(membre_id, cotisation_id)
            DO UPDATE SET payer=excluded.payer, date_paiement=excluded.date_paiement
            """,
            (
                values["membre_id"],
                values["cotisation_id"],
                int(bool(values.get("payer"))),
                values.get("date_paiement"),
                now_iso(),
            ),
        )
        row = self._run(
            db.fetch_one,
            "SELECT * FROM paiements WHERE membre_id = ? AND cotisation_id = ?",
            (values["membre_id"], values["cotisation_id"]),
        )
        logger.info("Saved paiements #%s", row["id"])
        return Payment.from_row(row)

    def update(self, row_id: int, fields: dict) -> None:
        values = dict(fields)
        if "payer" in values:
            values["payer"] = int(bool(values["payer"]))
        super().update(row_id, values)

    def list_detailed(self) -> list[dict]:
        """Payments joined with their member and contribution (None when deleted)."""
        rows = self._run(
            db.fetch_all,
            """
            SELECT p.id, p.membre_id, p.cotisation_id, p.payer, p.date_paiement, p.created_at,
                   m.nom, m.prenom, m.telephone,
                   c.type, c.description, c.montant_unitaire, c.date_echeance
            FROM paiements p
            LEFT JOIN membres m ON m.id = p.membre_id
            LEFT JOIN cotisations c ON c.id = p.cotisation_id
            ORDER BY p.date_paiement DESC, p.id DESC
            """,
        )
        result = []
        for r in rows:
            d = dict(r)
            d["payer"] = bool(d["payer"])
            result.append(d)
        return result
