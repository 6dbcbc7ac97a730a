"""
models.py
Domain records (members, contributions, payments) and derived views.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


def _opt(row: Mapping[str, Any], key: str):
    # sqlite3.Row has no .get()
    return row[key] if key in row.keys() else None


@dataclass(frozen=True)
class Member:
    id: int
    nom: str
    prenom: str
    telephone: str | None = None
    email: str | None = None
    created_at: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.nom} {self.prenom}".strip()

    @classmethod
    def from_row(cls, row) -> "Member":
        return cls(
            id=int(row["id"]),
            nom=row["nom"],
            prenom=row["prenom"],
            telephone=_opt(row, "telephone"),
            email=_opt(row, "email"),
            created_at=_opt(row, "created_at"),
        )


@dataclass(frozen=True)
class Contribution:
    id: int
    type: str
    description: str
    montant_unitaire: float
    date_echeance: str | None = None  # ISO date, None = no due date
    created_at: str | None = None

    @classmethod
    def from_row(cls, row) -> "Contribution":
        return cls(
            id=int(row["id"]),
            type=row["type"],
            description=row["description"],
            montant_unitaire=row["montant_unitaire"],
            date_echeance=_opt(row, "date_echeance"),
            created_at=_opt(row, "created_at"),
        )


@dataclass(frozen=True)
class Payment:
    id: int
    membre_id: int
    cotisation_id: int
    payer: bool
    date_paiement: str | None = None  # always None when payer is False
    created_at: str | None = None

    @classmethod
    def from_row(cls, row) -> "Payment":
        return cls(
            id=int(row["id"]),
            membre_id=int(row["membre_id"]),
            cotisation_id=int(row["cotisation_id"]),
            payer=bool(row["payer"]),
            date_paiement=_opt(row, "date_paiement"),
            created_at=_opt(row, "created_at"),
        )


@dataclass(frozen=True)
class User:
    id: int
    email: str
    created_at: str


# ---------- Derived views (never persisted) ----------

@dataclass(frozen=True)
class PaymentStatus:
    member: Member
    paid: bool
    payment_id: int | None = None
    payment_date: str | None = None


@dataclass(frozen=True)
class PaymentSummary:
    total_members: int = 0
    total_paid: int = 0
    total_unpaid: int = 0
    total_amount_collected: float = 0
    total_amount_due: float = 0

    @property
    def payment_rate(self) -> float:
        """Share of members who paid, as a percentage (0 when there are no members)."""
        if self.total_members == 0:
            return 0.0
        return self.total_paid / self.total_members * 100


@dataclass(frozen=True)
class Rollup:
    total_collected: float = 0
    payment_rate: float = 0.0


# ---------- Upsert decision ----------

@dataclass(frozen=True)
class CreatePayment:
    fields: dict

    def apply(self, repo) -> Payment:
        return repo.create(self.fields)


@dataclass(frozen=True)
class UpdatePayment:
    payment_id: int
    fields: dict

    def apply(self, repo) -> Payment:
        repo.update(self.payment_id, self.fields)
        return repo.get(self.payment_id)


# ---------- Snapshot ----------

@dataclass(frozen=True)
class Snapshot:
    members: tuple[Member, ...] = ()
    contributions: tuple[Contribution, ...] = ()
    payments: tuple[Payment, ...] = ()
