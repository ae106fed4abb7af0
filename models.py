"""
models.py
Domain types: user profiles, sessions, attendance/payment records, packages,
engine requests and outcomes, and the immutable store snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from enum import Enum
from typing import ClassVar, Iterable, Union


class Role(str, Enum):
    ADMIN = "ADMIN"
    TRAINER = "TRAINER"
    TRAINEE = "TRAINEE"


class Method(str, Enum):
    QR = "QR"
    MANUAL = "MANUAL"
    STAFF = "STAFF"
    SELF = "SELF"


# Methods used by gym staff; removal through these skips the cancellation lock
STAFF_METHODS = frozenset({Method.STAFF, Method.MANUAL})


class FailureKind(str, Enum):
    CLASS_NOT_FOUND = "ClassNotFound"
    TRAINEE_NOT_FOUND = "TraineeNotFound"
    TOO_EARLY = "TooEarly"
    SCHEDULE_CONFLICT = "ScheduleConflict"
    ALREADY_CHECKED_IN = "AlreadyCheckedIn"
    INSUFFICIENT_CREDITS = "InsufficientCredits"
    NOT_CHECKED_IN = "NotCheckedIn"
    CANCELLATION_LOCKED = "CancellationLocked"
    DUPLICATE_SESSION = "DuplicateSession"
    INVALID_INPUT = "InvalidInput"
    INVALID_QR = "InvalidQr"
    DUPLICATE_EMAIL = "DuplicateEmail"
    USER_NOT_FOUND = "UserNotFound"
    PACKAGE_NOT_FOUND = "PackageNotFound"


# ---------- Users (one profile type per role) ----------

@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str  # login identifier, unique ignoring case
    phone: str
    password_hash: str

    role: ClassVar[Role]


@dataclass(frozen=True)
class Admin(User):
    role: ClassVar[Role] = Role.ADMIN


@dataclass(frozen=True)
class Trainer(User):
    role: ClassVar[Role] = Role.TRAINER


@dataclass(frozen=True)
class Trainee(User):
    credits: int = 0

    role: ClassVar[Role] = Role.TRAINEE


USER_TYPES: dict[Role, type[User]] = {
    Role.ADMIN: Admin,
    Role.TRAINER: Trainer,
    Role.TRAINEE: Trainee,
}


def make_user(role: Role, **fields) -> User:
    """
    Build the profile type for `role`. A `credits` value is kept only for trainees.
    """
    credits = fields.pop("credits", None)
    cls = USER_TYPES[Role(role)]
    if cls is Trainee:
        return Trainee(credits=int(credits or 0), **fields)
    return cls(**fields)


# ---------- Sessions, records, catalog ----------

@dataclass(frozen=True)
class AttendanceClass:
    id: str
    trainer_id: str
    name: str
    location: str
    date: str  # YYYY-MM-DD
    time: str  # HH:MM, 24h local time
    qr_secret: str
    created_at: int  # epoch millis

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(date.fromisoformat(self.date), time.fromisoformat(self.time))


@dataclass(frozen=True)
class AttendanceRecord:
    id: str
    class_id: str
    trainee_id: str
    timestamp: int  # epoch millis
    method: Method


@dataclass(frozen=True)
class PaymentRecord:
    id: str
    trainee_id: str
    amount: float
    credits: int
    timestamp: int
    status: str = "SUCCESS"


@dataclass(frozen=True)
class CreditPackage:
    id: str
    name: str
    credits: int
    price: float


# ---------- Engine requests ----------

@dataclass(frozen=True)
class CheckIn:
    class_id: str
    trainee_id: str
    method: Method = Method.SELF


@dataclass(frozen=True)
class SelfCancel:
    class_id: str
    trainee_id: str


@dataclass(frozen=True)
class StaffRemove:
    class_id: str
    trainee_id: str


Request = Union[CheckIn, SelfCancel, StaffRemove]


# ---------- Store snapshot + delta ----------

@dataclass(frozen=True)
class StoreDelta:
    users: tuple[User, ...] = ()  # inserted or replaced by id
    classes: tuple[AttendanceClass, ...] = ()
    packages: tuple[CreditPackage, ...] = ()
    added_records: tuple[AttendanceRecord, ...] = ()
    added_payments: tuple[PaymentRecord, ...] = ()
    removed_record_ids: frozenset[str] = frozenset()
    removed_payment_ids: frozenset[str] = frozenset()
    removed_class_ids: frozenset[str] = frozenset()
    removed_user_ids: frozenset[str] = frozenset()
    removed_package_ids: frozenset[str] = frozenset()


def _upsert(existing: tuple, items: Iterable, removed: frozenset[str], prepend: bool) -> tuple:
    items = list(items)
    by_id = {i.id: i for i in items}
    kept = [by_id.pop(e.id, e) for e in existing if e.id not in removed]
    new = [i for i in items if i.id in by_id]
    return tuple(new + kept) if prepend else tuple(kept + new)


@dataclass(frozen=True)
class Store:
    """
    Snapshot of everything the engine reads. Never mutated: `apply` returns a new store.
    Newest classes, records and payments come first.
    """

    users: tuple[User, ...] = ()
    classes: tuple[AttendanceClass, ...] = ()
    attendance: tuple[AttendanceRecord, ...] = ()
    payments: tuple[PaymentRecord, ...] = ()
    packages: tuple[CreditPackage, ...] = ()

    def user(self, user_id: str) -> User | None:
        return next((u for u in self.users if u.id == user_id), None)

    def user_by_email(self, email: str) -> User | None:
        needle = email.strip().lower()
        return next((u for u in self.users if u.email.lower() == needle), None)

    def trainee(self, user_id: str) -> Trainee | None:
        u = self.user(user_id)
        return u if isinstance(u, Trainee) else None

    def trainees(self) -> list[Trainee]:
        return [u for u in self.users if isinstance(u, Trainee)]

    def klass(self, class_id: str) -> AttendanceClass | None:
        return next((c for c in self.classes if c.id == class_id), None)

    def package(self, package_id: str) -> CreditPackage | None:
        return next((p for p in self.packages if p.id == package_id), None)

    def record_for(self, class_id: str, trainee_id: str) -> AttendanceRecord | None:
        return next(
            (r for r in self.attendance if r.class_id == class_id and r.trainee_id == trainee_id),
            None,
        )

    def records_for_trainee(self, trainee_id: str) -> list[AttendanceRecord]:
        return [r for r in self.attendance if r.trainee_id == trainee_id]

    def records_for_class(self, class_id: str) -> list[AttendanceRecord]:
        return [r for r in self.attendance if r.class_id == class_id]

    def payments_for_trainee(self, trainee_id: str) -> list[PaymentRecord]:
        return [p for p in self.payments if p.trainee_id == trainee_id]

    def apply(self, delta: StoreDelta) -> Store:
        return replace(
            self,
            users=_upsert(self.users, delta.users, delta.removed_user_ids, prepend=False),
            classes=_upsert(self.classes, delta.classes, delta.removed_class_ids, prepend=True),
            packages=_upsert(self.packages, delta.packages, delta.removed_package_ids, prepend=False),
            attendance=_upsert(self.attendance, delta.added_records, delta.removed_record_ids, prepend=True),
            payments=_upsert(self.payments, delta.added_payments, delta.removed_payment_ids, prepend=True),
        )


# ---------- Outcomes ----------

@dataclass(frozen=True)
class Success:
    message: str
    delta: StoreDelta = field(default_factory=StoreDelta)

    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str

    ok: ClassVar[bool] = False


Outcome = Union[Success, Failure]
