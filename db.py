"""
db.py
SQLite snapshot persistence for the store (creates tables, seeds demo data,
saves/loads whole snapshots; the last save wins).
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime

import config
import utils
from models import (
    AttendanceClass,
    AttendanceRecord,
    CreditPackage,
    Method,
    PaymentRecord,
    Role,
    Store,
    Trainee,
    make_user,
)

_logger = logging.getLogger(__name__)


@contextmanager
def get_conn():
    conn = sqlite3.connect(config.DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def _create_tables(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            role TEXT NOT NULL CHECK(role IN ('ADMIN','TRAINER','TRAINEE')),
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE COLLATE NOCASE,
            phone TEXT NOT NULL,
            password_hash TEXT NOT NULL,
            credits INTEGER CHECK(credits IS NULL OR credits >= 0)
        );

        CREATE TABLE IF NOT EXISTS classes (
            id TEXT PRIMARY KEY,
            trainer_id TEXT NOT NULL,
            name TEXT NOT NULL,
            location TEXT NOT NULL,
            date TEXT NOT NULL,
            time TEXT NOT NULL,
            qr_secret TEXT NOT NULL,
            created_at INTEGER NOT NULL
        );

        CREATE TABLE IF NOT EXISTS attendance (
            id TEXT PRIMARY KEY,
            class_id TEXT NOT NULL,
            trainee_id TEXT NOT NULL,
            timestamp INTEGER NOT NULL,
            method TEXT NOT NULL CHECK(method IN ('QR','MANUAL','STAFF','SELF')),
            UNIQUE(class_id, trainee_id)
        );

        CREATE TABLE IF NOT EXISTS payments (
            id TEXT PRIMARY KEY,
            trainee_id TEXT NOT NULL,
            amount REAL NOT NULL,
            credits INTEGER NOT NULL,
            timestamp INTEGER NOT NULL,
            status TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS packages (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            credits INTEGER NOT NULL,
            price REAL NOT NULL
        );
        """
    )


def init_db(now: datetime | None = None) -> None:
    """
    Initialize the database.
    - Create tables
    - Seed the demo store if there are no users yet
    """
    with get_conn() as conn:
        _create_tables(conn)

    if not fetch_one("SELECT id FROM users LIMIT 1"):
        _logger.info("Empty database at %s, seeding demo data", config.DB_FILE)
        save_store(utils.sample_store(now))


def save_store(store: Store) -> None:
    """
    Replace every table with the snapshot, in one transaction. Row order is kept.
    """
    with get_conn() as conn:
        _create_tables(conn)
        for table in ("users", "classes", "attendance", "payments", "packages"):
            conn.execute(f"DELETE FROM {table}")

        conn.executemany(
            "INSERT INTO users(id, role, name, email, phone, password_hash, credits) VALUES(?,?,?,?,?,?,?)",
            [
                (u.id, u.role.value, u.name, u.email, u.phone, u.password_hash,
                 u.credits if isinstance(u, Trainee) else None)
                for u in store.users
            ],
        )
        conn.executemany(
            """
            INSERT INTO classes(id, trainer_id, name, location, date, time, qr_secret, created_at)
            VALUES(?,?,?,?,?,?,?,?)
            """,
            [(c.id, c.trainer_id, c.name, c.location, c.date, c.time, c.qr_secret, c.created_at) for c in store.classes],
        )
        conn.executemany(
            "INSERT INTO attendance(id, class_id, trainee_id, timestamp, method) VALUES(?,?,?,?,?)",
            [(r.id, r.class_id, r.trainee_id, r.timestamp, r.method.value) for r in store.attendance],
        )
        conn.executemany(
            "INSERT INTO payments(id, trainee_id, amount, credits, timestamp, status) VALUES(?,?,?,?,?,?)",
            [(p.id, p.trainee_id, p.amount, p.credits, p.timestamp, p.status) for p in store.payments],
        )
        conn.executemany(
            "INSERT INTO packages(id, name, credits, price) VALUES(?,?,?,?)",
            [(p.id, p.name, p.credits, p.price) for p in store.packages],
        )
    _logger.info(
        "Saved store: %d users, %d classes, %d records, %d payments",
        len(store.users), len(store.classes), len(store.attendance), len(store.payments),
    )


def load_store() -> Store:
    with get_conn() as conn:
        _create_tables(conn)

    users = tuple(
        make_user(
            Role(r["role"]),
            id=r["id"],
            name=r["name"],
            email=r["email"],
            phone=r["phone"],
            password_hash=r["password_hash"],
            credits=r["credits"],
        )
        for r in fetch_all("SELECT * FROM users ORDER BY rowid")
    )
    classes = tuple(
        AttendanceClass(
            id=r["id"],
            trainer_id=r["trainer_id"],
            name=r["name"],
            location=r["location"],
            date=r["date"],
            time=r["time"],
            qr_secret=r["qr_secret"],
            created_at=int(r["created_at"]),
        )
        for r in fetch_all("SELECT * FROM classes ORDER BY rowid")
    )
    attendance = tuple(
        AttendanceRecord(
            id=r["id"],
            class_id=r["class_id"],
            trainee_id=r["trainee_id"],
            timestamp=int(r["timestamp"]),
            method=Method(r["method"]),
        )
        for r in fetch_all("SELECT * FROM attendance ORDER BY rowid")
    )
    payments = tuple(
        PaymentRecord(
            id=r["id"],
            trainee_id=r["trainee_id"],
            amount=float(r["amount"]),
            credits=int(r["credits"]),
            timestamp=int(r["timestamp"]),
            status=r["status"],
        )
        for r in fetch_all("SELECT * FROM payments ORDER BY rowid")
    )
    packages = tuple(
        CreditPackage(id=r["id"], name=r["name"], credits=int(r["credits"]), price=float(r["price"]))
        for r in fetch_all("SELECT * FROM packages ORDER BY rowid")
    )
    return Store(users=users, classes=classes, attendance=attendance, payments=payments, packages=packages)
