import sqlite3
from datetime import datetime

import pytest

import config
import db
import engine
import ledger
from models import Method, Trainee


@pytest.fixture
def db_file(tmp_path, monkeypatch):
    path = tmp_path / "gym.db"
    monkeypatch.setattr(config, "DB_FILE", path)
    return path


def test_save_then_load_returns_same_store(db_file, store, now):
    booked = store.apply(engine.check_in(store, "c1", "u1", Method.QR, now).delta)
    paid = booked.apply(ledger.purchase(booked, "u1", "p2", now).delta)

    db.save_store(paid)
    loaded = db.load_store()

    assert loaded == paid
    assert isinstance(loaded.user("u1"), Trainee)
    assert loaded.trainee("u1").credits == 27


def test_last_save_wins(db_file, store, now):
    db.save_store(store)
    booked = store.apply(engine.check_in(store, "c1", "u1", Method.SELF, now).delta)
    db.save_store(booked)
    db.save_store(store)
    assert db.load_store().attendance == ()


def test_load_empty_database(db_file):
    loaded = db.load_store()
    assert loaded.users == () and loaded.classes == ()


def test_init_db_seeds_demo_store_once(db_file):
    db.init_db(datetime(2024, 6, 1, 8, 0))
    first = db.load_store()
    assert {u.email for u in first.users} == {"admin@gym.com", "trainer@gym.com", "trainee@gym.com"}
    assert len(first.classes) == 2
    assert len(first.packages) == 3

    db.init_db()
    assert db.load_store() == first


def test_table_rejects_duplicate_booking(db_file, store):
    db.save_store(store)
    with pytest.raises(sqlite3.IntegrityError):
        with db.get_conn() as conn:
            for rid in ("r1", "r2"):
                conn.execute(
                    "INSERT INTO attendance(id, class_id, trainee_id, timestamp, method) VALUES(?,?,?,?,?)",
                    (rid, "c1", "u1", 0, "SELF"),
                )
