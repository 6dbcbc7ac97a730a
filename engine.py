"""
engine.py
Payment reconciliation: per-member status, per-contribution summary,
the create-or-update decision for a status toggle, and global totals.

Everything here is a pure function over already-fetched rows, except
set_payment_status() which hands the planned write to a repository.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable, Sequence

from models import (
    Contribution,
    CreatePayment,
    Member,
    Payment,
    PaymentStatus,
    PaymentSummary,
    Rollup,
    UpdatePayment,
)


def _payments_by_member(payments: Iterable[Payment], contribution_id: int) -> dict[int, Payment]:
    lookup: dict[int, Payment] = {}
    for p in payments:
        if p.cotisation_id == contribution_id:
            # first row wins if a pair was ever duplicated
            lookup.setdefault(p.membre_id, p)
    return lookup


def resolve_statuses(
    members: Sequence[Member], payments: Iterable[Payment], contribution_id: int
) -> list[PaymentStatus]:
    """One PaymentStatus per member, in the members' order."""
    lookup = _payments_by_member(payments, contribution_id)
    statuses = []
    for m in members:
        p = lookup.get(m.id)
        if p is None:
            statuses.append(PaymentStatus(member=m, paid=False))
        else:
            statuses.append(
                PaymentStatus(
                    member=m,
                    paid=p.payer,
                    payment_id=p.id,
                    payment_date=p.date_paiement if p.payer else None,
                )
            )
    return statuses


def summarize(
    members: Sequence[Member], payments: Iterable[Payment], contribution: Contribution | None
) -> PaymentSummary:
    if contribution is None:
        return PaymentSummary()

    statuses = resolve_statuses(members, payments, contribution.id)
    total = len(members)
    paid = sum(1 for s in statuses if s.paid)
    unpaid = total - paid
    unit = contribution.montant_unitaire
    return PaymentSummary(
        total_members=total,
        total_paid=paid,
        total_unpaid=unpaid,
        total_amount_collected=paid * unit,
        total_amount_due=unpaid * unit,
    )


def plan_payment_write(
    existing_payment_id: int | None,
    member_id: int,
    contribution_id: int,
    paid: bool,
    explicit_date: str | None = None,
    now: datetime | None = None,
) -> CreatePayment | UpdatePayment:
    """
    Decide how a status toggle is written.

    Marking a payment unpaid always clears its date, even when a date is given.
    Marking it paid uses explicit_date, or the current UTC time.
    """
    if paid:
        when = explicit_date or (now or datetime.now(timezone.utc)).isoformat(timespec="seconds")
    else:
        when = None

    if existing_payment_id is not None:
        return UpdatePayment(
            payment_id=existing_payment_id,
            fields={"payer": paid, "date_paiement": when},
        )
    return CreatePayment(
        fields={
            "membre_id": member_id,
            "cotisation_id": contribution_id,
            "payer": paid,
            "date_paiement": when,
        }
    )


def set_payment_status(
    repo,
    existing_payment_id: int | None,
    member_id: int,
    contribution_id: int,
    paid: bool,
    explicit_date: str | None = None,
) -> Payment:
    # RepositoryError propagates as-is; callers refetch afterwards
    write = plan_payment_write(existing_payment_id, member_id, contribution_id, paid, explicit_date)
    return write.apply(repo)


def find_contribution(contributions: Iterable[Contribution], contribution_id: int | None) -> Contribution | None:
    if contribution_id is None:
        return None
    return next((c for c in contributions if c.id == contribution_id), None)


def rollup(
    members: Sequence[Member], contributions: Sequence[Contribution], payments: Sequence[Payment]
) -> Rollup:
    total_collected = sum(
        summarize(members, payments, c).total_amount_collected for c in contributions
    )

    possible = len(contributions) * len(members)
    if possible == 0:
        return Rollup(total_collected=total_collected, payment_rate=0.0)

    member_ids = {m.id for m in members}
    contribution_ids = {c.id for c in contributions}
    paid_pairs = {
        (p.membre_id, p.cotisation_id)
        for p in payments
        if p.payer and p.membre_id in member_ids and p.cotisation_id in contribution_ids
    }
    return Rollup(total_collected=total_collected, payment_rate=len(paid_pairs) / possible * 100)


def _due_key(c: Contribution) -> tuple[int, date]:
    if not c.date_echeance:
        return (0, date.min)
    return (1, datetime.fromisoformat(c.date_echeance).date())


def sort_contributions(contributions: Iterable[Contribution]) -> list[Contribution]:
    """Latest due date first; contributions without a due date last."""
    return sorted(contributions, key=_due_key, reverse=True)


def latest_contribution(contributions: Iterable[Contribution]) -> Contribution | None:
    ordered = sort_contributions(contributions)
    return ordered[0] if ordered else None
