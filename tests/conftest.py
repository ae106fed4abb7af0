from datetime import datetime

import pytest

import config
from models import Admin, AttendanceClass, CreditPackage, Store, Trainee, Trainer
from utils import IdSequence

CLASS_DAY = "2024-06-01"


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    monkeypatch.setattr(config, "BCRYPT_ROUNDS", 4)
    monkeypatch.setattr(config, "CHECKIN_GRACE_MINUTES", 15)
    monkeypatch.setattr(config, "CANCELLATION_LOCK_MINUTES", 30)
    monkeypatch.setattr(config, "BOOKING_VISIBILITY_MINUTES", 30)
    monkeypatch.setattr(config, "ENFORCE_QR_SECRET", True)
    monkeypatch.setattr(config, "QR_MAX_AGE_MINUTES", None)


@pytest.fixture
def ids():
    return IdSequence("t")


@pytest.fixture
def now():
    # 14 minutes before the 10:00 classes
    return datetime(2024, 6, 1, 9, 46)


@pytest.fixture
def store():
    return Store(
        users=(
            Admin(id="a1", name="Admin", email="admin@gym.com", phone="555-0100", password_hash="x"),
            Trainer(id="tr1", name="Coach Sam", email="coach@gym.com", phone="555-0101", password_hash="x"),
            Trainee(id="u1", name="Alex Doe", email="alex@gym.com", phone="555-0102", password_hash="x", credits=3),
            Trainee(id="u2", name="Bo Broke", email="bo@gym.com", phone="555-0103", password_hash="x", credits=0),
        ),
        classes=(
            AttendanceClass(id="c1", trainer_id="tr1", name="Yoga", location="Studio A",
                            date=CLASS_DAY, time="10:00", qr_secret="AE-YOGA01", created_at=0),
            AttendanceClass(id="c2", trainer_id="tr1", name="Spin", location="Studio B",
                            date=CLASS_DAY, time="10:00", qr_secret="AE-SPIN01", created_at=0),
            AttendanceClass(id="c3", trainer_id="tr1", name="Pilates", location="Studio A",
                            date=CLASS_DAY, time="12:00", qr_secret="AE-PILA01", created_at=0),
        ),
        packages=(
            CreditPackage(id="p1", name="Starter", credits=5, price=25.0),
            CreditPackage(id="p2", name="Pro", credits=25, price=100.0),
        ),
    )
