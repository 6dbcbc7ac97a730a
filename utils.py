"""
utils.py
Validation, dates, formatting, search, CSV exports, sample data.
"""

from __future__ import annotations

import re
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timedelta

import pandas as pd

import config

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MONTHS_FR = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]

MEMBER_COLUMNS = ["id", "nom", "prenom", "telephone", "email", "created_at"]
CONTRIBUTION_COLUMNS = ["id", "type", "description", "montant_unitaire", "date_echeance", "created_at"]
PAYMENT_COLUMNS = ["id", "membre_id", "cotisation_id", "payer", "date_paiement", "created_at"]


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value)


# ---------- Validation ----------

def validate_member_inputs(nom: str, prenom: str, telephone: str | None = None, email: str | None = None) -> list[str]:
    errors: list[str] = []
    if not (nom or "").strip():
        errors.append("Le nom est obligatoire.")
    if not (prenom or "").strip():
        errors.append("Le prénom est obligatoire.")
    if telephone and telephone.strip() and not re.fullmatch(r"[+\d][\d\s.-]*", telephone.strip()):
        errors.append("Le numéro de téléphone n'est pas valide.")
    if email and email.strip() and not EMAIL_RE.match(email.strip()):
        errors.append("L'adresse email n'est pas valide.")
    return errors


def validate_contribution_inputs(type_: str, description: str, montant, date_echeance: str | None = None) -> list[str]:
    errors: list[str] = []
    if not (type_ or "").strip() or not (description or "").strip() or not str(montant if montant is not None else "").strip():
        errors.append("Le type, la description et le montant sont obligatoires.")
    else:
        try:
            value = float(montant)
            if not value > 0:
                errors.append("Le montant doit être un nombre positif.")
        except (TypeError, ValueError):
            errors.append("Le montant doit être un nombre positif.")
    if date_echeance and date_echeance.strip():
        try:
            parse_iso(date_echeance.strip())
        except ValueError:
            errors.append("La date d'échéance doit être au format AAAA-MM-JJ.")
    return errors


def validate_payment_date(value: str) -> list[str]:
    try:
        parse_timestamp(value)
    except (TypeError, ValueError):
        return ["La date de paiement n'est pas valide."]
    return []


# ---------- Formatting ----------

def format_amount(amount: float, currency: str | None = None) -> str:
    """10000 -> '10 000 GNF' (no decimals)."""
    text = f"{round(amount):,}".replace(",", " ")
    return f"{text} {currency or config.CURRENCY}"


def format_date(value: str | date) -> str:
    d = parse_timestamp(value) if isinstance(value, str) else value
    return f"{d.day:02d} {MONTHS_FR[d.month - 1]} {d.year}"


def format_datetime(value: str | datetime) -> str:
    d = parse_timestamp(value) if isinstance(value, str) else value
    return f"{format_date(d)} à {d.hour:02d}:{d.minute:02d}"


# ---------- Search ----------

def _matches(member, query: str) -> bool:
    q = query.strip().lower()
    if not q:
        return True
    return q in member.full_name.lower() or q in (member.telephone or "").lower()


def filter_members(members, query: str) -> list:
    return [m for m in members if _matches(m, query)]


def filter_statuses(statuses, query: str) -> list:
    return [s for s in statuses if _matches(s.member, query)]


# ---------- Exports ----------

def _records(rows) -> list[dict]:
    return [asdict(r) if is_dataclass(r) else dict(r) for r in rows]


def to_dataframe(rows, columns: list[str]) -> pd.DataFrame:
    records = _records(rows)
    if not records:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(records)


def members_to_csv_bytes(rows) -> bytes:
    return to_dataframe(rows, MEMBER_COLUMNS).to_csv(index=False).encode("utf-8")


def contributions_to_csv_bytes(rows) -> bytes:
    return to_dataframe(rows, CONTRIBUTION_COLUMNS).to_csv(index=False).encode("utf-8")


def payments_to_csv_bytes(rows) -> bytes:
    return to_dataframe(rows, PAYMENT_COLUMNS).to_csv(index=False).encode("utf-8")


# ---------- Sample data ----------

def insert_sample_data(store) -> None:
    """
    Insert 3 members, 2 contributions and a few payments
    (safe to run multiple times: adds new rows each time).
    """
    today = date.today()

    members = [
        store.add_member("Diallo", "Mamadou", "620000001", "mamadou.diallo@example.com"),
        store.add_member("Camara", "Fatoumata", "620000002", None),
        store.add_member("Bah", "Ibrahima", None, None),
    ]

    monthly = store.add_contribution(
        "Mensuelle", "Cotisation du mois", 10000, (today + timedelta(days=15)).isoformat()
    )
    event = store.add_contribution("Événement", "Fête annuelle", 5000, None)

    store.set_payment_status(members[0].id, monthly.id, True)
    store.set_payment_status(members[1].id, monthly.id, True)
    store.set_payment_status(members[0].id, event.id, True)
