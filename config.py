"""
config.py
Settings for the booking ledger (time windows, QR policy, storage).
Values can be overridden through environment variables or a local .env file.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _int_or_none(value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    return int(value)


DB_FILE = Path(os.getenv("GYM_DB_FILE") or Path(__file__).with_name("gym.db"))

# Time windows (minutes), all measured against the session's scheduled start
CHECKIN_GRACE_MINUTES = int(os.getenv("GYM_CHECKIN_GRACE_MINUTES", "15"))
CANCELLATION_LOCK_MINUTES = int(os.getenv("GYM_CANCELLATION_LOCK_MINUTES", "30"))
BOOKING_VISIBILITY_MINUTES = int(os.getenv("GYM_BOOKING_VISIBILITY_MINUTES", "30"))

# QR check-in hardening
ENFORCE_QR_SECRET = os.getenv("GYM_ENFORCE_QR_SECRET", "1") == "1"
QR_MAX_AGE_MINUTES = _int_or_none(os.getenv("GYM_QR_MAX_AGE_MINUTES"))

# Accounts
DEFAULT_PASSWORD = os.getenv("GYM_DEFAULT_PASSWORD", "password123")
BCRYPT_ROUNDS = int(os.getenv("GYM_BCRYPT_ROUNDS", "12"))
