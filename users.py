"""
users.py
Account management: admin add/edit/delete, self-service registration, profile edits.
Credits are never set here after creation; the ledger owns them.
"""

from __future__ import annotations

import logging
from dataclasses import fields, replace

import auth
import utils
from models import (
    Failure,
    FailureKind,
    Outcome,
    Role,
    Store,
    StoreDelta,
    Success,
    Trainee,
    User,
    make_user,
)

_logger = logging.getLogger(__name__)


def _email_taken(store: Store, email: str, exclude_id: str | None = None) -> bool:
    existing = store.user_by_email(email)
    return existing is not None and existing.id != exclude_id


def add_user(store: Store, name: str, email: str, phone: str, role: Role = Role.TRAINEE,
             password: str | None = None, ids: utils.IdGenerator = utils.new_id) -> Outcome:
    """
    Create an account. Trainees start with 0 credits; a missing password falls
    back to the default one.
    """
    errors = utils.validate_user_inputs(name, email, phone)
    if errors:
        return Failure(FailureKind.INVALID_INPUT, " ".join(errors))
    if _email_taken(store, email):
        return Failure(FailureKind.DUPLICATE_EMAIL, "An account with this email already exists.")

    user = make_user(
        Role(role),
        id=ids(),
        name=name.strip(),
        email=email.strip(),
        phone=phone.strip(),
        password_hash=auth.hash_password(password or auth.default_password()),
    )
    _logger.info("User %s created with role %s", user.id, user.role.value)
    return Success("User created.", StoreDelta(users=(user,)))


def register_trainee(store: Store, name: str, email: str, phone: str, password: str,
                     ids: utils.IdGenerator = utils.new_id) -> Outcome:
    errors = auth.validate_password(password)
    if errors:
        return Failure(FailureKind.INVALID_INPUT, " ".join(errors))
    return add_user(store, name, email, phone, Role.TRAINEE, password, ids)


def update_profile(store: Store, user_id: str, name: str | None = None, email: str | None = None,
                   phone: str | None = None, password: str | None = None) -> Outcome:
    user = store.user(user_id)
    if not user:
        return Failure(FailureKind.USER_NOT_FOUND, "User not found.")

    name = user.name if name is None else name
    email = user.email if email is None else email
    phone = user.phone if phone is None else phone
    errors = utils.validate_user_inputs(name, email, phone)
    if password is not None:
        errors += auth.validate_password(password)
    if errors:
        return Failure(FailureKind.INVALID_INPUT, " ".join(errors))
    if _email_taken(store, email, exclude_id=user.id):
        return Failure(FailureKind.DUPLICATE_EMAIL, "An account with this email already exists.")

    updated = replace(user, name=name.strip(), email=email.strip(), phone=phone.strip())
    if password is not None:
        updated = auth.with_password(updated, password)
    return Success("Profile updated successfully!", StoreDelta(users=(updated,)))


def change_role(store: Store, user_id: str, role: Role) -> Outcome:
    """
    Admin role change. Becoming a trainee starts at 0 credits; leaving the
    trainee role drops the balance.
    """
    user = store.user(user_id)
    if not user:
        return Failure(FailureKind.USER_NOT_FOUND, "User not found.")
    role = Role(role)
    if user.role == role:
        return Success("Role unchanged.")
    base = {f.name: getattr(user, f.name) for f in fields(User)}
    converted = make_user(role, **base)
    _logger.info("User %s role changed %s -> %s", user.id, user.role.value, role.value)
    return Success("Role updated.", StoreDelta(users=(converted,)))


def delete_user(store: Store, user_id: str) -> Outcome:
    """
    Remove an account with its attendance and payment history.
    """
    user = store.user(user_id)
    if not user:
        return Failure(FailureKind.USER_NOT_FOUND, "User not found.")
    record_ids = frozenset(r.id for r in store.records_for_trainee(user_id))
    payment_ids = frozenset(p.id for p in store.payments_for_trainee(user_id))
    _logger.info("User %s deleted (%d records, %d payments)", user_id, len(record_ids), len(payment_ids))
    return Success(
        "User deleted.",
        StoreDelta(
            removed_user_ids=frozenset({user_id}),
            removed_record_ids=record_ids,
            removed_payment_ids=payment_ids,
        ),
    )


def trainee_balance(store: Store, user_id: str) -> int | None:
    user = store.user(user_id)
    return user.credits if isinstance(user, Trainee) else None
