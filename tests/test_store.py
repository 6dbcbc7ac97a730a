from dataclasses import asdict

import pytest

from errors import RepositoryError, ValidationError


@pytest.fixture
def populated(store):
    a = store.add_member("Diallo", "Aminata", "620000001")
    b = store.add_member("Bah", "Oumar")
    c = store.add_member("Camara", "Sekou", email="sekou@example.com")
    x = store.add_contribution("Mensuelle", "Janvier", "10000", "2025-01-31")
    y = store.add_contribution("Événement", "Fête", 5000)
    return store, (a, b, c), (x, y)


def test_refresh_orders_snapshot(populated):
    store, _, (x, y) = populated
    assert [m.nom for m in store.snapshot.members] == ["Bah", "Camara", "Diallo"]
    assert [c.id for c in store.snapshot.contributions] == [x.id, y.id]


def test_toggle_creates_then_updates(populated):
    store, (a, _, _), (x, _) = populated

    first = store.set_payment_status(a.id, x.id, True)
    second = store.set_payment_status(a.id, x.id, True)

    assert first.id == second.id
    assert len(store.snapshot.payments) == 1
    assert store.summary(x.id).total_paid == 1


def test_marking_unpaid_clears_date(populated):
    store, (a, _, _), (x, _) = populated
    store.set_payment_status(a.id, x.id, True, "2025-01-10")
    payment = store.set_payment_status(a.id, x.id, False, "2025-01-01")

    assert payment.payer is False
    assert payment.date_paiement is None
    status = next(s for s in store.statuses(x.id) if s.member.id == a.id)
    assert status.paid is False
    assert status.payment_id == payment.id


def test_explicit_payment_date_is_kept(populated):
    store, (a, _, _), (x, _) = populated
    payment = store.set_payment_status(a.id, x.id, True, "2025-01-10")
    assert payment.date_paiement == "2025-01-10"


def test_invalid_payment_date_never_reaches_repository(populated):
    store, (a, _, _), (x, _) = populated
    with pytest.raises(ValidationError):
        store.set_payment_status(a.id, x.id, True, "le 10 janvier")
    assert store.snapshot.payments == ()


def test_summary_and_rollup(populated):
    store, (a, b, _), (x, y) = populated
    store.set_payment_status(a.id, x.id, True)
    store.set_payment_status(b.id, x.id, True)
    store.set_payment_status(a.id, y.id, True)

    s = store.summary(x.id)
    assert (s.total_members, s.total_paid, s.total_unpaid) == (3, 2, 1)
    assert s.total_amount_collected == 20000
    assert s.total_amount_due == 10000

    r = store.rollup()
    assert r.total_collected == 25000
    assert r.payment_rate == pytest.approx(50.0)


def test_unknown_contribution_summary_is_zero(populated):
    store, _, _ = populated
    assert store.summary(987654).total_members == 0


def test_deleting_member_keeps_payments_but_skips_them(populated):
    store, (a, _, _), (x, _) = populated
    store.set_payment_status(a.id, x.id, True)
    store.delete_member(a.id)

    assert len(store.snapshot.payments) == 1
    s = store.summary(x.id)
    assert s.total_members == 2
    assert s.total_paid == 0


def test_default_contribution(populated):
    store, _, (x, y) = populated
    assert store.default_contribution(None).id == x.id
    assert store.default_contribution(y.id).id == y.id
    store.delete_contribution(y.id)
    assert store.default_contribution(y.id).id == x.id


@pytest.mark.parametrize(
    "args",
    [
        ("", "Fête", 100, None),
        ("Type", "Fête", 0, None),
        ("Type", "Fête", "abc", None),
        ("Type", "Fête", 100, "31/01/2025"),
    ],
)
def test_contribution_validation(store, args):
    with pytest.raises(ValidationError):
        store.add_contribution(*args)
    assert store.snapshot.contributions == ()


def test_member_validation(store):
    with pytest.raises(ValidationError) as excinfo:
        store.add_member(" ", "Aminata", email="not-an-email")
    assert len(excinfo.value.errors) == 2


def test_update_member_strips_optional_fields(populated):
    store, (a, _, _), _ = populated
    store.update_member(a.id, "Diallo", "Aminata", "  ", "")
    member = next(m for m in store.snapshot.members if m.id == a.id)
    assert member.telephone is None
    assert member.email is None


def test_repository_error_leaves_snapshot_untouched(populated, monkeypatch):
    store, (a, _, _), (x, _) = populated
    before = store.snapshot

    def boom(fields):
        raise RepositoryError("database is locked")

    monkeypatch.setattr(store.payments_repo, "create", boom)
    with pytest.raises(RepositoryError, match="database is locked"):
        store.set_payment_status(a.id, x.id, True)
    assert store.snapshot is before


def test_reset_and_restore(populated):
    store, (a, _, _), (x, _) = populated
    store.set_payment_status(a.id, x.id, True)
    data = {
        "members": [asdict(m) for m in store.snapshot.members],
        "contributions": [asdict(c) for c in store.snapshot.contributions],
        "payments": [asdict(p) for p in store.snapshot.payments],
    }
    before = store.snapshot

    store.reset()
    assert store.snapshot.members == ()
    assert store.snapshot.payments == ()

    store.restore(data)
    assert store.snapshot.members == before.members
    assert store.snapshot.contributions == before.contributions
    assert store.snapshot.payments == before.payments


def test_failed_restore_keeps_previous_data(populated):
    store, (a, _, _), (x, _) = populated
    store.set_payment_status(a.id, x.id, True)
    before = store.snapshot
    data = {
        "members": [{"id": 1, "nom": "New", "prenom": "Member"}],
        "contributions": [{"id": 1, "type": "T", "description": "d", "montant_unitaire": 100}],
        "payments": [
            {"id": 1, "membre_id": 1, "cotisation_id": 1, "payer": True, "date_paiement": "2025-01-01"},
            {"id": 2, "membre_id": 1, "cotisation_id": 1, "payer": False, "date_paiement": None},
        ],
    }

    with pytest.raises(RepositoryError, match="UNIQUE"):
        store.restore(data)

    store.refresh()
    assert store.snapshot.members == before.members
    assert store.snapshot.contributions == before.contributions
    assert store.snapshot.payments == before.payments
