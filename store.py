"""
store.py
Holds the latest snapshot of members / contributions / payments and runs
every user action: validate, write through a repository, then refetch.
"""

from __future__ import annotations

import logging

import engine
import utils
from errors import ValidationError
from models import Contribution, Member, Payment, PaymentStatus, PaymentSummary, Rollup, Snapshot
from repository import ContributionRepository, MemberRepository, PaymentRepository, replace_tables

logger = logging.getLogger(__name__)


class Store:
    def __init__(
        self,
        members: MemberRepository | None = None,
        contributions: ContributionRepository | None = None,
        payments: PaymentRepository | None = None,
    ):
        self.members_repo = members or MemberRepository()
        self.contributions_repo = contributions or ContributionRepository()
        self.payments_repo = payments or PaymentRepository()
        self.snapshot = Snapshot()

    # ---------- Snapshot ----------

    def refresh(self) -> Snapshot:
        """Refetch the three tables; the snapshot is swapped only if all succeed."""
        members = tuple(self.members_repo.list(order_by="nom"))
        contributions = tuple(self.contributions_repo.list(order_by="date_echeance", descending=True))
        payments = tuple(self.payments_repo.list())

        member_ids = {m.id for m in members}
        contribution_ids = {c.id for c in contributions}
        orphans = [
            p.id for p in payments
            if p.membre_id not in member_ids or p.cotisation_id not in contribution_ids
        ]
        if orphans:
            logger.warning("%d payment(s) reference a deleted member or contribution: %s", len(orphans), orphans)

        self.snapshot = Snapshot(members=members, contributions=contributions, payments=payments)
        return self.snapshot

    # ---------- Members ----------

    def _member_fields(self, nom: str, prenom: str, telephone: str | None = None, email: str | None = None) -> dict:
        errors = utils.validate_member_inputs(nom, prenom, telephone, email)
        if errors:
            raise ValidationError(errors)
        return {
            "nom": nom.strip(),
            "prenom": prenom.strip(),
            "telephone": (telephone or "").strip() or None,
            "email": (email or "").strip() or None,
        }

    def add_member(self, nom: str, prenom: str, telephone: str | None = None, email: str | None = None) -> Member:
        member = self.members_repo.create(self._member_fields(nom, prenom, telephone, email))
        self.refresh()
        return member

    def update_member(self, member_id: int, nom: str, prenom: str, telephone: str | None = None, email: str | None = None) -> None:
        self.members_repo.update(member_id, self._member_fields(nom, prenom, telephone, email))
        self.refresh()

    def delete_member(self, member_id: int) -> None:
        # payments of the member are kept; joins skip them
        self.members_repo.delete(member_id)
        self.refresh()

    # ---------- Contributions ----------

    def _contribution_fields(self, type_: str, description: str, montant, date_echeance: str | None = None) -> dict:
        errors = utils.validate_contribution_inputs(type_, description, montant, date_echeance)
        if errors:
            raise ValidationError(errors)
        return {
            "type": type_.strip(),
            "description": description.strip(),
            "montant_unitaire": float(montant),
            "date_echeance": (date_echeance or "").strip() or None,
        }

    def add_contribution(self, type_: str, description: str, montant, date_echeance: str | None = None) -> Contribution:
        contribution = self.contributions_repo.create(
            self._contribution_fields(type_, description, montant, date_echeance)
        )
        self.refresh()
        return contribution

    def update_contribution(self, contribution_id: int, type_: str, description: str, montant, date_echeance: str | None = None) -> None:
        self.contributions_repo.update(
            contribution_id, self._contribution_fields(type_, description, montant, date_echeance)
        )
        self.refresh()

    def delete_contribution(self, contribution_id: int) -> None:
        self.contributions_repo.delete(contribution_id)
        self.refresh()

    # ---------- Payments ----------

    def existing_payment_id(self, member_id: int, contribution_id: int) -> int | None:
        for p in self.snapshot.payments:
            if p.membre_id == member_id and p.cotisation_id == contribution_id:
                return p.id
        return None

    def set_payment_status(
        self,
        member_id: int,
        contribution_id: int,
        paid: bool,
        payment_date: str | None = None,
        payment_id: int | None = None,
    ) -> Payment:
        if paid and payment_date:
            errors = utils.validate_payment_date(payment_date)
            if errors:
                raise ValidationError(errors)

        if payment_id is None:
            payment_id = self.existing_payment_id(member_id, contribution_id)

        payment = engine.set_payment_status(
            self.payments_repo, payment_id, member_id, contribution_id, paid, payment_date
        )
        logger.info(
            "Member #%s marked %s for contribution #%s",
            member_id, "paid" if paid else "unpaid", contribution_id,
        )
        self.refresh()
        return payment

    # ---------- Derived views ----------

    def contribution(self, contribution_id: int | None) -> Contribution | None:
        return engine.find_contribution(self.snapshot.contributions, contribution_id)

    def statuses(self, contribution_id: int) -> list[PaymentStatus]:
        return engine.resolve_statuses(self.snapshot.members, self.snapshot.payments, contribution_id)

    def summary(self, contribution_id: int | None) -> PaymentSummary:
        return engine.summarize(
            self.snapshot.members, self.snapshot.payments, self.contribution(contribution_id)
        )

    def rollup(self) -> Rollup:
        s = self.snapshot
        return engine.rollup(s.members, s.contributions, s.payments)

    def latest_contribution(self) -> Contribution | None:
        return engine.latest_contribution(self.snapshot.contributions)

    def default_contribution(self, selected_id: int | None = None) -> Contribution | None:
        """The selected contribution if it still exists, else the latest one."""
        return self.contribution(selected_id) or self.latest_contribution()

    # ---------- Bulk ----------

    def reset(self) -> None:
        replace_tables([(self.payments_repo, []), (self.contributions_repo, []), (self.members_repo, [])])
        logger.info("All data deleted")
        self.refresh()

    def restore(self, data: dict) -> None:
        """Replace every table with the backup content, all or nothing."""
        replace_tables([
            (self.members_repo, data["members"]),
            (self.contributions_repo, data["contributions"]),
            (self.payments_repo, data["payments"]),
        ])
        self.refresh()
