"""
auth.py
Email/password accounts (bcrypt hashing, sign-in, sign-up, profile update).
Session state is whatever mapping the UI hands in (st.session_state).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import bcrypt

import config
import db
from errors import AuthError, ValidationError
from models import User
from utils import EMAIL_RE

logger = logging.getLogger(__name__)

SESSION_KEY = "user_email"


@dataclass(frozen=True)
class SignUpResult:
    user: User
    requires_confirmation: bool = False


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str) -> str:
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(secret, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))


def _normalize(email: str) -> str:
    return (email or "").strip().lower()


def _credential_errors(email: str, password: str | None) -> list[str]:
    """password=None skips the password check (email-only profile change)."""
    errors = []
    if not EMAIL_RE.match(email):
        errors.append("L'adresse email n'est pas valide.")
    if password is not None and len(password) < config.MIN_PASSWORD_LENGTH:
        errors.append(f"Le mot de passe doit contenir au moins {config.MIN_PASSWORD_LENGTH} caractères.")
    return errors


def get_user_by_email(email: str):
    return db.fetch_one("SELECT * FROM users WHERE email = ?", (_normalize(email),))


def _to_user(row) -> User:
    return User(id=int(row["id"]), email=row["email"], created_at=row["created_at"])


def sign_in(email: str, password: str) -> bool:
    user = get_user_by_email(email)
    if not user:
        return False
    ok = verify_password(password, user["password_hash"])
    if not ok:
        logger.info("Failed sign-in for %s", _normalize(email))
    return ok


def sign_up(email: str, password: str) -> SignUpResult:
    email = _normalize(email)
    errors = _credential_errors(email, password or "")
    if not errors and get_user_by_email(email):
        errors.append("Un compte existe déjà avec cette adresse email.")
    if errors:
        raise ValidationError(errors)

    now = datetime.now(timezone.utc).isoformat(timespec="seconds")
    user_id = db.execute(
        "INSERT INTO users(email, password_hash, created_at) VALUES(?,?,?)",
        (email, hash_password(password), now),
    )
    logger.info("Account created for %s", email)
    # local accounts are usable immediately
    return SignUpResult(user=User(id=user_id, email=email, created_at=now), requires_confirmation=False)


def sign_out(session) -> None:
    session[SESSION_KEY] = None


def get_current_user(session) -> User | None:
    email = session.get(SESSION_KEY)
    if not email:
        return None
    row = get_user_by_email(email)
    return _to_user(row) if row else None


def is_authenticated(session) -> bool:
    return get_current_user(session) is not None


def update_profile(
    email: str,
    current_password: str,
    new_email: str | None = None,
    new_password: str | None = None,
) -> User:
    row = get_user_by_email(email)
    if not row or not verify_password(current_password or "", row["password_hash"]):
        raise AuthError("Mot de passe actuel incorrect.")

    target_email = _normalize(new_email) if new_email else row["email"]
    errors = _credential_errors(target_email, new_password or None)
    if target_email != row["email"] and get_user_by_email(target_email):
        errors.append("Un compte existe déjà avec cette adresse email.")
    if errors:
        raise ValidationError(errors)

    password_hash = hash_password(new_password) if new_password else row["password_hash"]
    db.execute(
        "UPDATE users SET email = ?, password_hash = ? WHERE id = ?",
        (target_email, password_hash, row["id"]),
    )
    logger.info("Profile updated for user #%s", row["id"])
    return User(id=int(row["id"]), email=target_email, created_at=row["created_at"])
