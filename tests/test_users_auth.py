from dataclasses import replace

import auth
import engine
import ledger
import users
from models import Admin, FailureKind, Method, Role, Store, Trainee, Trainer


def test_add_trainee_starts_with_zero_credits_and_default_password(store, ids):
    out = users.add_user(store, "New Person", "new@gym.com", "555-9", Role.TRAINEE, ids=ids)
    after = store.apply(out.delta)
    created = after.user("t-1")
    assert isinstance(created, Trainee)
    assert created.credits == 0
    assert auth.verify_password(auth.default_password(), created.password_hash)


def test_add_trainer_has_no_balance(store, ids):
    after = store.apply(users.add_user(store, "Coach Two", "c2@gym.com", "555-8", Role.TRAINER, "secret1", ids).delta)
    created = after.user("t-1")
    assert isinstance(created, Trainer)
    assert not hasattr(created, "credits")
    assert users.trainee_balance(after, "t-1") is None


def test_email_is_unique_ignoring_case(store):
    out = users.add_user(store, "Dup", "ALEX@gym.com", "1")
    assert out.kind == FailureKind.DUPLICATE_EMAIL


def test_add_user_validates_inputs(store):
    out = users.add_user(store, "", "not-an-email", "")
    assert out.kind == FailureKind.INVALID_INPUT


def test_register_requires_reasonable_password(store):
    out = users.register_trainee(store, "Sam", "sam@gym.com", "1", "123")
    assert out.kind == FailureKind.INVALID_INPUT
    assert users.register_trainee(store, "Sam", "sam@gym.com", "1", "123456").ok


def test_update_profile_never_touches_credits(store):
    out = users.update_profile(store, "u1", name="Alex D.", email="alexd@gym.com")
    after = store.apply(out.delta)
    u = after.user("u1")
    assert (u.name, u.email, u.credits) == ("Alex D.", "alexd@gym.com", 3)


def test_update_profile_email_clash(store):
    assert users.update_profile(store, "u1", email="Coach@gym.com").kind == FailureKind.DUPLICATE_EMAIL
    assert users.update_profile(store, "nobody", name="x").kind == FailureKind.USER_NOT_FOUND


def test_change_role(store):
    after = store.apply(users.change_role(store, "tr1", Role.TRAINEE).delta)
    assert users.trainee_balance(after, "tr1") == 0
    back = after.apply(users.change_role(after, "tr1", Role.ADMIN).delta)
    assert isinstance(back.user("tr1"), Admin)
    assert users.change_role(store, "u1", Role.TRAINEE).delta.users == ()


def test_delete_user_removes_history(store, now):
    booked = store.apply(engine.check_in(store, "c1", "u1", Method.SELF, now).delta)
    paid = booked.apply(ledger.purchase(booked, "u1", "p1", now).delta)

    after = paid.apply(users.delete_user(paid, "u1").delta)
    assert after.user("u1") is None
    assert after.records_for_trainee("u1") == []
    assert after.payments_for_trainee("u1") == []


def _with_password(store, password):
    hashed = auth.hash_password(password)
    return Store(users=tuple(replace(u, password_hash=hashed) for u in store.users),
                 classes=store.classes, packages=store.packages)


def test_login_by_email_ignoring_case(store):
    s = _with_password(store, "secret1")
    session = auth.login(s, "ALEX@Gym.com", "secret1")
    assert session.is_authenticated
    assert session.user.id == "u1"


def test_login_failures(store):
    s = _with_password(store, "secret1")
    assert auth.login(s, "alex@gym.com", "wrong") is None
    assert auth.login(s, "nobody@gym.com", "secret1") is None


def test_reset_password_needs_matching_phone(store):
    assert auth.reset_password(store, "alex@gym.com", "000", "newpass1").kind == FailureKind.USER_NOT_FOUND
    assert auth.reset_password(store, "alex@gym.com", "555-0102", "newpass1", "other").kind == FailureKind.INVALID_INPUT

    out = auth.reset_password(store, "Alex@gym.com", "555-0102", "newpass1", "newpass1")
    after = store.apply(out.delta)
    assert auth.login(after, "alex@gym.com", "newpass1") is not None


def test_session_refresh_follows_ledger(store, now):
    session = auth.Session(store.user("u1"))
    after = store.apply(engine.check_in(store, "c1", "u1", Method.QR, now).delta)
    assert session.user.credits == 3
    session.refresh(after)
    assert session.user.credits == 2


def test_session_ends_when_account_deleted(store):
    session = auth.Session(store.user("u1"))
    session.refresh(store.apply(users.delete_user(store, "u1").delta))
    assert not session.is_authenticated


def test_long_passwords_are_truncated_consistently():
    long_pw = "x" * 100
    hashed = auth.hash_password(long_pw)
    assert auth.verify_password("x" * 72, hashed)
