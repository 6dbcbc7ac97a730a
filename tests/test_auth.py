import pytest

import auth
from errors import AuthError, ValidationError


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    real_gensalt = auth.bcrypt.gensalt
    monkeypatch.setattr(auth.bcrypt, "gensalt", lambda rounds=12: real_gensalt(rounds=4))


def test_sign_up_then_sign_in(temp_db):
    result = auth.sign_up("Tresorier@Example.com ", "secret123")
    assert result.requires_confirmation is False
    assert result.user.email == "tresorier@example.com"

    assert auth.sign_in("tresorier@example.com", "secret123") is True
    assert auth.sign_in("tresorier@example.com", "wrong") is False
    assert auth.sign_in("nobody@example.com", "secret123") is False


def test_sign_up_rejects_bad_input(temp_db):
    with pytest.raises(ValidationError) as excinfo:
        auth.sign_up("not-an-email", "123")
    assert len(excinfo.value.errors) == 2


def test_sign_up_rejects_duplicate(temp_db):
    auth.sign_up("a@example.com", "secret123")
    with pytest.raises(ValidationError):
        auth.sign_up("A@example.com", "other-secret")


def test_session_helpers(temp_db):
    session = {}
    assert auth.is_authenticated(session) is False

    auth.sign_up("a@example.com", "secret123")
    session[auth.SESSION_KEY] = "a@example.com"
    assert auth.get_current_user(session).email == "a@example.com"
    assert auth.is_authenticated(session) is True

    auth.sign_out(session)
    assert auth.get_current_user(session) is None


def test_long_password_is_truncated_consistently():
    pw = "é" * 50  # 100 bytes in UTF-8
    hashed = auth.hash_password(pw)
    assert auth.verify_password(pw, hashed)
    assert auth.verify_password(pw[:36], hashed)


def test_update_profile(temp_db):
    auth.sign_up("a@example.com", "secret123")

    with pytest.raises(AuthError):
        auth.update_profile("a@example.com", "wrong", new_password="newsecret")

    user = auth.update_profile("a@example.com", "secret123", new_email="b@example.com", new_password="newsecret")
    assert user.email == "b@example.com"
    assert auth.sign_in("b@example.com", "newsecret")
    assert not auth.sign_in("a@example.com", "secret123")


def test_update_profile_email_only_keeps_password(temp_db):
    auth.sign_up("a@example.com", "secret123")
    auth.update_profile("a@example.com", "secret123", new_email="c@example.com")
    assert auth.sign_in("c@example.com", "secret123")


def test_update_profile_rejects_taken_email(temp_db):
    auth.sign_up("a@example.com", "secret123")
    auth.sign_up("b@example.com", "secret123")
    with pytest.raises(ValidationError):
        auth.update_profile("a@example.com", "secret123", new_email="b@example.com")
