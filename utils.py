"""
utils.py
IDs, dates, validation, reports/exports, sample data.
"""

from __future__ import annotations

import itertools
import re
import secrets
import string
import uuid
from datetime import date, datetime, time, timedelta
from typing import Callable

import pandas as pd

import auth
from models import (
    Admin,
    AttendanceClass,
    AttendanceRecord,
    CreditPackage,
    Method,
    PaymentRecord,
    Store,
    Trainee,
    Trainer,
)

IdGenerator = Callable[[], str]

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


# ---------- IDs ----------

def new_id() -> str:
    return uuid.uuid4().hex[:9]


class IdSequence:
    """
    Deterministic id generator: prefix-1, prefix-2, ...
    """

    def __init__(self, prefix: str = "id"):
        self.prefix = prefix
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"


def new_qr_secret() -> str:
    alphabet = string.ascii_uppercase + string.digits
    return "AE-" + "".join(secrets.choice(alphabet) for _ in range(6))


# ---------- Dates ----------

def parse_iso(d: str) -> date:
    # Only the extended YYYY-MM-DD form; dates are compared as strings
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", d or ""):
        raise ValueError(f"Invalid date: {d!r}")
    return date.fromisoformat(d)


def parse_hhmm(t: str) -> time:
    if not re.fullmatch(r"\d{2}:\d{2}", t or ""):
        raise ValueError(f"Invalid time: {t!r}")
    return time.fromisoformat(t)


def to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def from_millis(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000)


def local_naive(moment: datetime) -> datetime:
    """
    Session times are naive local wall-clock times; aware datetimes are
    converted to local time and stripped of tzinfo.
    """
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


def minutes_until(start: datetime, now: datetime) -> float:
    return (start - now) / timedelta(minutes=1)


# ---------- Validation ----------

def validate_class_inputs(name: str, location: str, date_iso: str, time_hhmm: str) -> list[str]:
    errors: list[str] = []
    if not (name or "").strip():
        errors.append("Class name is required.")
    if not (location or "").strip():
        errors.append("Location is required.")
    try:
        parse_iso(date_iso)
    except (TypeError, ValueError):
        errors.append("Date must be a valid ISO date (YYYY-MM-DD).")
    try:
        parse_hhmm(time_hhmm)
    except (TypeError, ValueError):
        errors.append("Time must be a valid 24h time (HH:MM).")
    return errors


def validate_package_inputs(name: str, credits, price) -> list[str]:
    errors: list[str] = []
    if not (name or "").strip():
        errors.append("Package name is required.")
    try:
        if int(credits) <= 0:
            errors.append("Credits must be greater than 0.")
    except (TypeError, ValueError):
        errors.append("Credits must be a whole number.")
    try:
        if float(price) < 0:
            errors.append("Price cannot be negative.")
    except (TypeError, ValueError):
        errors.append("Price must be numeric.")
    return errors


def validate_user_inputs(name: str, email: str, phone: str) -> list[str]:
    errors: list[str] = []
    if not (name or "").strip():
        errors.append("Name is required.")
    if not EMAIL_RE.match((email or "").strip()):
        errors.append("A valid email is required.")
    if not (phone or "").strip():
        errors.append("Phone is required.")
    return errors


# ---------- Reports ----------

def total_revenue(store: Store) -> float:
    return float(sum(p.amount for p in store.payments))


def attendance_frame(store: Store) -> pd.DataFrame:
    rows = []
    for r in store.attendance:
        cls = store.klass(r.class_id)
        trainee = store.user(r.trainee_id)
        rows.append({
            "id": r.id,
            "class_id": r.class_id,
            "class_name": cls.name if cls else None,
            "date": cls.date if cls else None,
            "time": cls.time if cls else None,
            "trainee_id": r.trainee_id,
            "trainee_name": trainee.name if trainee else None,
            "method": r.method.value,
            "checked_in_at": from_millis(r.timestamp).isoformat(timespec="seconds"),
        })
    columns = ["id", "class_id", "class_name", "date", "time", "trainee_id", "trainee_name", "method", "checked_in_at"]
    return pd.DataFrame(rows, columns=columns)


def payments_frame(store: Store) -> pd.DataFrame:
    rows = [
        {
            "id": p.id,
            "trainee_id": p.trainee_id,
            "amount": p.amount,
            "credits": p.credits,
            "status": p.status,
            "paid_at": from_millis(p.timestamp).isoformat(timespec="seconds"),
        }
        for p in store.payments
    ]
    return pd.DataFrame(rows, columns=["id", "trainee_id", "amount", "credits", "status", "paid_at"])


def attendance_to_csv_bytes(store: Store) -> bytes:
    return attendance_frame(store).to_csv(index=False).encode("utf-8")


def payments_to_csv_bytes(store: Store) -> bytes:
    return payments_frame(store).to_csv(index=False).encode("utf-8")


def revenue_summary_by_month(store: Store) -> pd.DataFrame:
    df = payments_frame(store)
    if df.empty:
        return pd.DataFrame(columns=["month", "revenue"])
    df["month"] = df["paid_at"].str.slice(0, 7)
    out = df.groupby("month", as_index=False)["amount"].sum().rename(columns={"amount": "revenue"})
    return out.sort_values("month", ascending=False).reset_index(drop=True)


def attendance_by_class(store: Store, limit: int = 5) -> pd.DataFrame:
    """
    Attendee count for the `limit` most recently created classes, oldest first.
    """
    recent = list(store.classes[:limit])[::-1]
    rows = [{"class_id": c.id, "name": c.name[:10], "count": len(store.records_for_class(c.id))} for c in recent]
    return pd.DataFrame(rows, columns=["class_id", "name", "count"])


def trainee_history(store: Store, trainee_id: str) -> pd.DataFrame:
    df = attendance_frame(store)
    return df[df["trainee_id"] == trainee_id].reset_index(drop=True)


# ---------- Sample data ----------

def sample_store(now: datetime | None = None, ids: IdGenerator = new_id) -> Store:
    """
    Demo store: one account per role, a few packages and two upcoming classes.
    All demo accounts use the default password.
    """
    now = now or datetime.now()
    pw = auth.hash_password(auth.default_password())
    admin = Admin(id=ids(), name="Gym Admin", email="admin@gym.com", phone="555-0100", password_hash=pw)
    trainer = Trainer(id=ids(), name="Coach Sam", email="trainer@gym.com", phone="555-0101", password_hash=pw)
    trainee = Trainee(id=ids(), name="Alex Doe", email="trainee@gym.com", phone="555-0102", password_hash=pw, credits=4)

    packages = (
        CreditPackage(id=ids(), name="Starter", credits=5, price=25.0),
        CreditPackage(id=ids(), name="Regular", credits=10, price=45.0),
        CreditPackage(id=ids(), name="Pro", credits=25, price=100.0),
    )

    created = to_millis(now)
    morning = (now + timedelta(hours=1)).replace(second=0, microsecond=0)
    evening = (now + timedelta(hours=6)).replace(second=0, microsecond=0)
    classes = (
        AttendanceClass(id=ids(), trainer_id=trainer.id, name="HIIT Blast", location="Studio A",
                        date=morning.date().isoformat(), time=morning.strftime("%H:%M"),
                        qr_secret=new_qr_secret(), created_at=created),
        AttendanceClass(id=ids(), trainer_id=trainer.id, name="Evening Yoga", location="Studio B",
                        date=evening.date().isoformat(), time=evening.strftime("%H:%M"),
                        qr_secret=new_qr_secret(), created_at=created),
    )

    payment = PaymentRecord(id=ids(), trainee_id=trainee.id, amount=25.0, credits=5, timestamp=created)
    record = AttendanceRecord(id=ids(), class_id=classes[1].id, trainee_id=trainee.id,
                              timestamp=created, method=Method.SELF)

    return Store(
        users=(admin, trainer, trainee),
        classes=classes,
        attendance=(record,),
        payments=(payment,),
        packages=packages,
    )
