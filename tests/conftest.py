import pytest

import db
from models import Contribution, Member
from store import Store


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point every connection at a fresh SQLite file with the tables created."""
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "test.db")
    db.init_db()
    return tmp_path / "test.db"


@pytest.fixture
def store(temp_db):
    s = Store()
    s.refresh()
    return s


@pytest.fixture
def members():
    return [
        Member(id=1, nom="Diallo", prenom="Aminata", telephone="620000001"),
        Member(id=2, nom="Bah", prenom="Oumar"),
        Member(id=3, nom="Camara", prenom="Sekou", email="sekou@example.com"),
    ]


@pytest.fixture
def contribution_x():
    return Contribution(id=10, type="Mensuelle", description="Janvier", montant_unitaire=10000, date_echeance="2025-01-31")


@pytest.fixture
def contribution_y():
    return Contribution(id=20, type="Événement", description="Fête", montant_unitaire=5000)
