import app
from errors import RepositoryError


def _seed(store):
    m = store.add_member("Sow", "Awa")
    c = store.add_contribution("Mensuelle", "Mars", 1000, "2025-03-31")
    return m, c


def test_toggle_callback_writes_status(store):
    m, c = _seed(store)
    key = f"paid_{c.id}_{m.id}"
    session = {key: True}

    app.apply_toggle(store, session, key, m.id, c.id, None, "2025-03-02")

    assert session[key] is True
    assert app.PAYMENT_ERROR_KEY not in session
    assert store.summary(c.id).total_paid == 1


def test_failed_toggle_is_not_replayed(store, monkeypatch):
    m, c = _seed(store)
    key = f"paid_{c.id}_{m.id}"
    session = {key: True}

    def boom(fields):
        raise RepositoryError("database is locked")

    monkeypatch.setattr(store.payments_repo, "create", boom)
    app.apply_toggle(store, session, key, m.id, c.id, None, None)

    assert key not in session
    assert isinstance(session[app.PAYMENT_ERROR_KEY], RepositoryError)
    assert store.summary(c.id).total_paid == 0
