"""
reports.py
Printable reports (global or per contribution) as pandas tables,
rendered to HTML or CSV for download.
"""

from __future__ import annotations

import csv
import html
import io
from dataclasses import dataclass, field
from datetime import date

import pandas as pd

import engine
import utils
from models import Contribution, Snapshot


@dataclass
class ReportDocument:
    title: str
    summary: dict[str, str]
    sections: dict[str, pd.DataFrame] = field(default_factory=dict)
    generated_on: date = field(default_factory=date.today)


def _members_frame(members) -> pd.DataFrame:
    df = utils.to_dataframe(members, utils.MEMBER_COLUMNS)
    df = df[["nom", "prenom", "telephone", "email", "created_at"]].rename(
        columns={
            "nom": "Nom",
            "prenom": "Prénom",
            "telephone": "Téléphone",
            "email": "Email",
            "created_at": "Date d'inscription",
        }
    )
    df["Date d'inscription"] = [utils.format_date(v) if v else "" for v in df["Date d'inscription"]]
    return df


def _joined_payments(snapshot: Snapshot) -> list[dict]:
    """Same shape as PaymentRepository.list_detailed(), built from the snapshot."""
    members = {m.id: m for m in snapshot.members}
    contributions = {c.id: c for c in snapshot.contributions}
    rows = []
    for p in snapshot.payments:
        m = members.get(p.membre_id)
        c = contributions.get(p.cotisation_id)
        rows.append({
            "id": p.id,
            "payer": p.payer,
            "date_paiement": p.date_paiement,
            "nom": m.nom if m else None,
            "prenom": m.prenom if m else None,
            "type": c.type if c else None,
            "montant_unitaire": c.montant_unitaire if c else None,
        })
    return rows


def _payments_frame(detailed: list[dict]) -> pd.DataFrame:
    columns = ["Membre", "Type de cotisation", "Montant", "Statut", "Date de paiement"]
    rows = [
        {
            "Membre": f"{r['nom']} {r['prenom']}".strip(),
            "Type de cotisation": r["type"],
            "Montant": utils.format_amount(r["montant_unitaire"]),
            "Statut": "Payé" if r["payer"] else "Non payé",
            "Date de paiement": utils.format_date(r["date_paiement"]) if r["payer"] and r["date_paiement"] else "",
        }
        for r in detailed
        # member or contribution deleted since
        if r["nom"] is not None and r["type"] is not None
    ]
    return pd.DataFrame(rows, columns=columns)


def _contributions_frame(snapshot: Snapshot) -> pd.DataFrame:
    rows = []
    for c in engine.sort_contributions(snapshot.contributions):
        s = engine.summarize(snapshot.members, snapshot.payments, c)
        rows.append({
            "Type": c.type,
            "Description": c.description,
            "Montant": utils.format_amount(c.montant_unitaire),
            "Échéance": utils.format_date(c.date_echeance) if c.date_echeance else "",
            "Payé": f"{s.total_paid}/{s.total_members}",
            "Collecté": utils.format_amount(s.total_amount_collected),
            "Restant": utils.format_amount(s.total_amount_due),
        })
    return pd.DataFrame(rows, columns=["Type", "Description", "Montant", "Échéance", "Payé", "Collecté", "Restant"])


def _statuses_frame(snapshot: Snapshot, contribution: Contribution) -> pd.DataFrame:
    rows = [
        {
            "Membre": s.member.full_name,
            "Téléphone": s.member.telephone or "",
            "Statut": "Payé" if s.paid else "Non payé",
            "Date de paiement": utils.format_date(s.payment_date) if s.payment_date else "",
        }
        for s in engine.resolve_statuses(snapshot.members, snapshot.payments, contribution.id)
    ]
    return pd.DataFrame(rows, columns=["Membre", "Téléphone", "Statut", "Date de paiement"])


def build_report(
    snapshot: Snapshot,
    contribution: Contribution | None = None,
    detailed_payments: list[dict] | None = None,
) -> ReportDocument:
    """
    Global report when contribution is None, else the report of one contribution.
    detailed_payments are rows from PaymentRepository.list_detailed(); when
    omitted they are joined from the snapshot.
    """
    if contribution is None:
        r = engine.rollup(snapshot.members, snapshot.contributions, snapshot.payments)
        return ReportDocument(
            title="Rapport des cotisations",
            summary={
                "Membres": str(len(snapshot.members)),
                "Cotisations": str(len(snapshot.contributions)),
                "Total collecté": utils.format_amount(r.total_collected),
                "Taux de paiement": f"{r.payment_rate:.0f}%",
            },
            sections={
                "Cotisations": _contributions_frame(snapshot),
                "Membres": _members_frame(snapshot.members),
                "Paiements": _payments_frame(
                    _joined_payments(snapshot) if detailed_payments is None else detailed_payments
                ),
            },
        )

    s = engine.summarize(snapshot.members, snapshot.payments, contribution)
    summary = {
        "Type": contribution.type,
        "Description": contribution.description,
        "Montant unitaire": utils.format_amount(contribution.montant_unitaire),
    }
    if contribution.date_echeance:
        summary["Échéance"] = utils.format_date(contribution.date_echeance)
    summary.update({
        "Membres ayant payé": f"{s.total_paid}/{s.total_members}",
        "Montant collecté": utils.format_amount(s.total_amount_collected),
        "Montant restant": utils.format_amount(s.total_amount_due),
        "Taux de paiement": f"{s.payment_rate:.0f}%",
    })
    return ReportDocument(
        title=f"Rapport - {contribution.type}",
        summary=summary,
        sections={"Paiements": _statuses_frame(snapshot, contribution)},
    )


def render_html(doc: ReportDocument) -> str:
    parts = [
        "<html><head><meta charset='utf-8'>",
        f"<title>{html.escape(doc.title)}</title>",
        "<style>body{font-family:sans-serif}table{border-collapse:collapse;width:100%}"
        "th,td{border:1px solid #ddd;padding:6px;text-align:left}th{background:#f1f5f9}</style>",
        "</head><body>",
        f"<h1>{html.escape(doc.title)}</h1>",
        f"<p>Date d'export: {utils.format_date(doc.generated_on)}</p>",
        "<ul>",
    ]
    parts += [f"<li><b>{html.escape(k)}</b>: {html.escape(v)}</li>" for k, v in doc.summary.items()]
    parts.append("</ul>")
    for name, df in doc.sections.items():
        parts.append(f"<h2>{html.escape(name)}</h2>")
        parts.append(df.to_html(index=False, na_rep="", border=0))
    parts.append("</body></html>")
    return "\n".join(parts)


def render_csv(doc: ReportDocument) -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=";", lineterminator="\n")
    writer.writerow([doc.title])
    writer.writerows(doc.summary.items())
    for name, df in doc.sections.items():
        writer.writerow([])
        writer.writerow([name])
        df.to_csv(buf, index=False, sep=";")
    return buf.getvalue().encode("utf-8")
