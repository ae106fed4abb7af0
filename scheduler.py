"""
scheduler.py
Class session create/update/delete, QR payloads and schedule queries.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime, timedelta

import config
import engine
import utils
from models import AttendanceClass, Failure, FailureKind, Outcome, Store, StoreDelta, Success

_logger = logging.getLogger(__name__)


def session_key(name: str, date_iso: str, time_hhmm: str, location: str) -> tuple[str, str, str, str]:
    """
    Identity used for duplicate detection: name and location ignore case and
    surrounding spaces, date and time must match exactly.
    """
    return (name.strip().lower(), date_iso, time_hhmm, location.strip().lower())


def find_duplicate(store: Store, name: str, date_iso: str, time_hhmm: str, location: str,
                   exclude_id: str | None = None) -> AttendanceClass | None:
    key = session_key(name, date_iso, time_hhmm, location)
    for c in store.classes:
        if c.id != exclude_id and session_key(c.name, c.date, c.time, c.location) == key:
            return c
    return None


def _duplicate_failure() -> Failure:
    return Failure(FailureKind.DUPLICATE_SESSION, "A class with identical details already exists at this date and time.")


def create_class(store: Store, trainer_id: str, name: str, location: str, date_iso: str, time_hhmm: str,
                 now: datetime, ids: utils.IdGenerator = utils.new_id) -> Outcome:
    errors = utils.validate_class_inputs(name, location, date_iso, time_hhmm)
    if errors:
        return Failure(FailureKind.INVALID_INPUT, " ".join(errors))
    if find_duplicate(store, name, date_iso, time_hhmm, location):
        return _duplicate_failure()

    cls = AttendanceClass(
        id=ids(),
        trainer_id=trainer_id,
        name=name.strip(),
        location=location.strip(),
        date=date_iso,
        time=time_hhmm,
        qr_secret=utils.new_qr_secret(),
        created_at=utils.to_millis(now),
    )
    _logger.info("Class %s created: %s on %s at %s", cls.id, cls.name, cls.date, cls.time)
    return Success("Class created.", StoreDelta(classes=(cls,)))


def update_class(store: Store, class_id: str, **changes) -> Outcome:
    """
    Edit name/location/date/time/trainer_id. The QR secret and id never change.
    """
    cls = store.klass(class_id)
    if not cls:
        return Failure(FailureKind.CLASS_NOT_FOUND, "Class not found.")

    allowed = {"name", "location", "date", "time", "trainer_id"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Cannot update class fields: {sorted(unknown)}")

    name = changes.get("name", cls.name)
    location = changes.get("location", cls.location)
    date_iso = changes.get("date", cls.date)
    time_hhmm = changes.get("time", cls.time)

    errors = utils.validate_class_inputs(name, location, date_iso, time_hhmm)
    if errors:
        return Failure(FailureKind.INVALID_INPUT, " ".join(errors))
    if find_duplicate(store, name, date_iso, time_hhmm, location, exclude_id=cls.id):
        return _duplicate_failure()

    if (date_iso, time_hhmm) != (cls.date, cls.time):
        moved = replace(cls, date=date_iso, time=time_hhmm)
        for record in store.records_for_class(cls.id):
            other = engine.find_conflict(moved, record.trainee_id, store)
            if other:
                return Failure(
                    FailureKind.SCHEDULE_CONFLICT,
                    f"A booked trainee is already in '{other.name}' on {other.date} at {other.time}.",
                )

    updated = replace(
        cls,
        name=name.strip(),
        location=location.strip(),
        date=date_iso,
        time=time_hhmm,
        trainer_id=changes.get("trainer_id", cls.trainer_id),
    )
    _logger.info("Class %s updated", cls.id)
    return Success("Class updated.", StoreDelta(classes=(updated,)))


def delete_class(store: Store, class_id: str) -> Outcome:
    """
    Remove the class together with every attendance record pointing at it.
    Removed bookings are not refunded.
    """
    cls = store.klass(class_id)
    if not cls:
        return Failure(FailureKind.CLASS_NOT_FOUND, "Class not found.")
    record_ids = frozenset(r.id for r in store.records_for_class(class_id))
    _logger.info("Class %s deleted with %d attendance record(s)", class_id, len(record_ids))
    return Success(
        "Class deleted.",
        StoreDelta(removed_class_ids=frozenset({class_id}), removed_record_ids=record_ids),
    )


# ---------- QR ----------

def qr_payload(cls: AttendanceClass, now: datetime) -> str:
    return json.dumps({"cid": cls.id, "sec": cls.qr_secret, "t": utils.to_millis(now)})


# ---------- Queries ----------

def bookable_classes(store: Store, now: datetime) -> list[AttendanceClass]:
    """
    Sessions still offered for booking: not started more than
    BOOKING_VISIBILITY_MINUTES ago, soonest first.
    """
    cutoff = utils.local_naive(now) - timedelta(minutes=config.BOOKING_VISIBILITY_MINUTES)
    return sorted((c for c in store.classes if c.starts_at >= cutoff), key=lambda c: c.starts_at)


def classes_for_trainer(store: Store, trainer_id: str) -> list[AttendanceClass]:
    return [c for c in store.classes if c.trainer_id == trainer_id]


def attendee_count(store: Store, class_id: str) -> int:
    return len(store.records_for_class(class_id))
