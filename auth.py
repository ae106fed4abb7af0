"""
auth.py
Authentication utilities (bcrypt hashing, verify, login, password reset) and
the cached copy of the signed-in user.
"""

from __future__ import annotations

import logging
from dataclasses import replace

import bcrypt

import config
from models import FailureKind, Failure, Outcome, Store, StoreDelta, Success, User

_logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


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
    """
    Returns a bcrypt hash as a UTF-8 string.
    """
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(secret, salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    secret = _to_bcrypt_secret(password)
    stored = password_hash.encode("utf-8")
    return bcrypt.checkpw(secret, stored)


def default_password() -> str:
    return config.DEFAULT_PASSWORD


def validate_password(new_password: str, confirm: str | None = None) -> list[str]:
    errors: list[str] = []
    if len(new_password or "") < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if confirm is not None and new_password != confirm:
        errors.append("Passwords do not match.")
    return errors


def with_password(user: User, new_password: str) -> User:
    return replace(user, password_hash=hash_password(new_password))


class Session:
    """
    The signed-in user as seen by the host. Holds a copy of the user, so it must
    be refreshed after every store change that may touch that user (e.g. credits).
    """

    def __init__(self, user: User | None = None):
        self.user = user

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def refresh(self, store: Store) -> None:
        if self.user is None:
            return
        # A deleted account ends the session
        self.user = store.user(self.user.id)

    def logout(self) -> None:
        self.user = None


def login(store: Store, email: str, password: str) -> Session | None:
    user = store.user_by_email(email)
    if not user:
        _logger.warning("Login failed: unknown email %s", email)
        return None
    if not verify_password(password, user.password_hash):
        _logger.warning("Login failed: wrong password for %s", email)
        return None
    return Session(user)


def reset_password(store: Store, email: str, phone: str, new_password: str,
                   confirm: str | None = None) -> Outcome:
    """
    Self-service recovery: the email and phone on file must both match.
    """
    errors = validate_password(new_password, confirm)
    if errors:
        return Failure(FailureKind.INVALID_INPUT, " ".join(errors))

    user = store.user_by_email(email)
    if not user or user.phone.strip() != (phone or "").strip():
        _logger.warning("Password reset verification failed for %s", email)
        return Failure(FailureKind.USER_NOT_FOUND, "Verification failed.")

    updated = with_password(user, new_password)
    return Success("Password updated. You can log in now.", StoreDelta(users=(updated,)))
