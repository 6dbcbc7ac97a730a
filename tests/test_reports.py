import csv
import io

import reports
from factories import make_contribution, make_member, paid, unpaid
from models import Snapshot


def _snapshot():
    members = (make_member(1, "Diallo", "Aminata"), make_member(2, "Bah", "Oumar"))
    contributions = (make_contribution(10, montant=10000, due="2025-01-31"), make_contribution(20, montant=5000))
    payments = (paid(1, 1, 10, when="2025-01-15"), paid(2, 1, 20))
    return Snapshot(members=members, contributions=contributions, payments=payments)


def test_global_report():
    doc = reports.build_report(_snapshot())
    assert doc.summary["Total collecté"] == "15 000 GNF"
    assert doc.summary["Taux de paiement"] == "50%"
    assert list(doc.sections) == ["Cotisations", "Membres", "Paiements"]
    assert list(doc.sections["Cotisations"]["Payé"]) == ["1/2", "1/2"]


def test_contribution_report():
    snapshot = _snapshot()
    doc = reports.build_report(snapshot, snapshot.contributions[0])
    assert doc.summary["Montant collecté"] == "10 000 GNF"
    assert doc.summary["Montant restant"] == "10 000 GNF"
    table = doc.sections["Paiements"]
    assert list(table["Statut"]) == ["Payé", "Non payé"]
    assert list(table["Date de paiement"]) == ["15 janvier 2025", ""]


def test_render_html_escapes_and_includes_tables():
    snapshot = _snapshot()
    doc = reports.build_report(snapshot, snapshot.contributions[0])
    doc.title = "<Rapport>"
    out = reports.render_html(doc)
    assert "&lt;Rapport&gt;" in out
    assert "<table" in out
    assert "Diallo Aminata" in out


def test_render_csv():
    out = reports.render_csv(reports.build_report(_snapshot())).decode("utf-8")
    assert out.startswith("Rapport des cotisations\n")
    assert "Membres;2" in out


def test_global_report_payments_section_skips_deleted_links():
    snapshot = _snapshot()
    orphan = paid(3, 99, 10)
    snapshot = Snapshot(
        members=snapshot.members,
        contributions=snapshot.contributions,
        payments=snapshot.payments + (orphan, unpaid(4, 2, 10)),
    )
    table = reports.build_report(snapshot).sections["Paiements"]

    assert list(table.columns) == ["Membre", "Type de cotisation", "Montant", "Statut", "Date de paiement"]
    assert list(table["Membre"]) == ["Diallo Aminata", "Diallo Aminata", "Bah Oumar"]
    assert list(table["Statut"]) == ["Payé", "Payé", "Non payé"]
    assert table.loc[0, "Montant"] == "10 000 GNF"
    assert table.loc[0, "Date de paiement"] == "15 janvier 2025"
    assert table.loc[2, "Date de paiement"] == ""


def test_global_report_uses_joined_rows(store):
    m = store.add_member("Sow", "Awa")
    c = store.add_contribution("Mensuelle", "Mars", 1000, "2025-03-31")
    store.set_payment_status(m.id, c.id, True, "2025-03-02")
    store.set_payment_status(999, c.id, True)

    doc = reports.build_report(store.snapshot, detailed_payments=store.payments_repo.list_detailed())

    table = doc.sections["Paiements"]
    assert list(table["Membre"]) == ["Sow Awa"]
    assert list(table["Date de paiement"]) == ["02 mars 2025"]
    members = doc.sections["Membres"]
    assert members.loc[0, "Date d'inscription"] != ""


def test_render_csv_quotes_separators():
    snapshot = _snapshot()
    contribution = make_contribution(30, montant=100, type="Fête; repas", description="ligne 1\nligne 2")
    doc = reports.build_report(snapshot, contribution)

    rows = list(csv.reader(io.StringIO(reports.render_csv(doc).decode("utf-8")), delimiter=";"))

    assert rows[1] == ["Type", "Fête; repas"]
    assert rows[2] == ["Description", "ligne 1\nligne 2"]
