"""
engine.py
Booking/attendance decisions: check-in, cancellation, toggle and QR check-in.

Every decision is a pure function of (request, store snapshot, now). On success
the returned outcome carries a StoreDelta; the host applies it and persists.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

import config
import ledger
import utils
from models import (
    STAFF_METHODS,
    AttendanceClass,
    AttendanceRecord,
    CheckIn,
    Failure,
    FailureKind,
    Method,
    Outcome,
    Request,
    SelfCancel,
    StaffRemove,
    Store,
    StoreDelta,
    Success,
)

_logger = logging.getLogger(__name__)


def decide(request: Request, store: Store, now: datetime, ids: utils.IdGenerator = utils.new_id) -> Outcome:
    """
    `now` is compared against naive local session times; an aware value is
    converted to local time first.
    """
    now = utils.local_naive(now)
    if isinstance(request, CheckIn):
        outcome = _check_in(request, store, now, ids)
    elif isinstance(request, SelfCancel):
        outcome = _cancel(request.class_id, request.trainee_id, store, now, enforce_lock=True)
    elif isinstance(request, StaffRemove):
        outcome = _cancel(request.class_id, request.trainee_id, store, now, enforce_lock=False)
    else:
        raise TypeError(f"Unsupported request: {request!r}")

    if outcome.ok:
        _logger.info("%s accepted for class=%s trainee=%s", type(request).__name__,
                     request.class_id, request.trainee_id)
    else:
        _logger.warning("%s rejected for class=%s trainee=%s: %s", type(request).__name__,
                        request.class_id, request.trainee_id, outcome.kind.value)
    return outcome


# ---------- Check-in ----------

def earliest_check_in(cls: AttendanceClass) -> datetime:
    return cls.starts_at - timedelta(minutes=config.CHECKIN_GRACE_MINUTES)


def find_conflict(cls: AttendanceClass, trainee_id: str, store: Store) -> AttendanceClass | None:
    """
    Another booked class of the trainee in the same date+time slot as `cls`.
    """
    for record in store.records_for_trainee(trainee_id):
        if record.class_id == cls.id:
            continue
        other = store.klass(record.class_id)
        if other and other.date == cls.date and other.time == cls.time:
            return other
    return None


def _check_in(request: CheckIn, store: Store, now: datetime, ids: utils.IdGenerator) -> Outcome:
    # Checks run in a fixed order; the first failure is reported
    cls = store.klass(request.class_id)
    if not cls:
        return Failure(FailureKind.CLASS_NOT_FOUND, "Class not found.")

    trainee = store.trainee(request.trainee_id)
    if not trainee:
        return Failure(FailureKind.TRAINEE_NOT_FOUND, "Trainee not found.")

    earliest = earliest_check_in(cls)
    if now < earliest:
        return Failure(
            FailureKind.TOO_EARLY,
            f"This class hasn't started yet. You can check in starting at {earliest:%H:%M}, "
            f"{config.CHECKIN_GRACE_MINUTES} minutes before the scheduled time ({cls.time}).",
        )

    other = find_conflict(cls, trainee.id, store)
    if other:
        return Failure(
            FailureKind.SCHEDULE_CONFLICT,
            f"You are already booked into '{other.name}' on {other.date} at {other.time}.",
        )

    if store.record_for(cls.id, trainee.id):
        return Failure(FailureKind.ALREADY_CHECKED_IN, "Already checked in for this session!")

    if trainee.credits <= 0:
        return Failure(FailureKind.INSUFFICIENT_CREDITS, "Insufficient credits! Please top up in the shop.")

    record = AttendanceRecord(
        id=ids(),
        class_id=cls.id,
        trainee_id=trainee.id,
        timestamp=utils.to_millis(now),
        method=Method(request.method),
    )
    return Success(
        "Successfully checked in! Enjoy your session.",
        StoreDelta(users=(ledger.adjust(trainee, -1),), added_records=(record,)),
    )


# ---------- Cancellation ----------

def _cancel(class_id: str, trainee_id: str, store: Store, now: datetime, enforce_lock: bool) -> Outcome:
    record = store.record_for(class_id, trainee_id)
    if not record:
        return Failure(FailureKind.NOT_CHECKED_IN, "You are not booked into this session.")

    if enforce_lock:
        cls = store.klass(class_id)
        if not cls:
            return Failure(FailureKind.CLASS_NOT_FOUND, "Class not found.")
        remaining = utils.minutes_until(cls.starts_at, now)
        if remaining <= config.CANCELLATION_LOCK_MINUTES:
            return Failure(
                FailureKind.CANCELLATION_LOCKED,
                f"Bookings can't be cancelled within {config.CANCELLATION_LOCK_MINUTES} minutes "
                f"of the start time ({cls.time}). Please contact staff.",
            )

    trainee = store.trainee(trainee_id)
    users = (ledger.adjust(trainee, +1),) if trainee else ()
    return Success(
        "Booking cancelled. 1 credit refunded.",
        StoreDelta(users=users, removed_record_ids=frozenset({record.id})),
    )


# ---------- Convenience entry points ----------

def check_in(store: Store, class_id: str, trainee_id: str, method: Method, now: datetime,
             ids: utils.IdGenerator = utils.new_id) -> Outcome:
    return decide(CheckIn(class_id, trainee_id, Method(method)), store, now, ids)


def self_cancel(store: Store, class_id: str, trainee_id: str, now: datetime) -> Outcome:
    return decide(SelfCancel(class_id, trainee_id), store, now)


def staff_remove(store: Store, class_id: str, trainee_id: str, now: datetime) -> Outcome:
    return decide(StaffRemove(class_id, trainee_id), store, now)


def toggle_attendance(store: Store, class_id: str, trainee_id: str, method: Method, now: datetime,
                      ids: utils.IdGenerator = utils.new_id) -> Outcome:
    """
    Absent -> check in with `method`. Present -> remove the booking; staff
    methods (STAFF/MANUAL) skip the cancellation lock, QR/SELF do not.
    """
    method = Method(method)
    if not store.record_for(class_id, trainee_id):
        return decide(CheckIn(class_id, trainee_id, method), store, now, ids)
    if method in STAFF_METHODS:
        return decide(StaffRemove(class_id, trainee_id), store, now)
    return decide(SelfCancel(class_id, trainee_id), store, now)


# ---------- QR check-in ----------

@dataclass(frozen=True)
class QrPayload:
    class_id: str
    secret: str | None
    rendered_at: int | None  # epoch millis


def parse_qr_payload(text: str) -> QrPayload | None:
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    cid = data.get("cid")
    if not isinstance(cid, str) or not cid:
        return None
    sec = data.get("sec")
    t = data.get("t")
    return QrPayload(
        class_id=cid,
        secret=sec if isinstance(sec, str) else None,
        rendered_at=t if isinstance(t, int) and not isinstance(t, bool) else None,
    )


def check_in_from_qr(store: Store, text: str, trainee_id: str, now: datetime,
                     ids: utils.IdGenerator = utils.new_id) -> Outcome:
    now = utils.local_naive(now)
    payload = parse_qr_payload(text)
    if payload is None:
        _logger.warning("Unreadable QR payload from trainee=%s", trainee_id)
        return Failure(FailureKind.INVALID_QR, "Invalid QR Code structure.")

    cls = store.klass(payload.class_id)
    if cls:
        if config.ENFORCE_QR_SECRET and payload.secret != cls.qr_secret:
            _logger.warning("QR secret mismatch for class=%s trainee=%s", cls.id, trainee_id)
            return Failure(FailureKind.INVALID_QR, "This QR code does not belong to this class.")
        if config.QR_MAX_AGE_MINUTES is not None:
            max_age = timedelta(minutes=config.QR_MAX_AGE_MINUTES)
            if payload.rendered_at is None or now - utils.from_millis(payload.rendered_at) > max_age:
                return Failure(FailureKind.INVALID_QR, "This QR code has expired. Ask your trainer to refresh it.")

    return decide(CheckIn(payload.class_id, trainee_id, Method.QR), store, now, ids)
