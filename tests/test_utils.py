from datetime import datetime

import ledger
import engine
import packages
import utils
from models import FailureKind, Method


def test_id_sequence_is_deterministic():
    gen = utils.IdSequence("x")
    assert [gen(), gen(), gen()] == ["x-1", "x-2", "x-3"]


def test_new_id_and_secret_shapes():
    assert len(utils.new_id()) == 9
    secret = utils.new_qr_secret()
    assert secret.startswith("AE-") and secret[3:].isalnum() and secret[3:].isupper()


def test_millis_round_trip():
    moment = datetime(2024, 6, 1, 9, 46, 30)
    assert utils.from_millis(utils.to_millis(moment)) == moment


def test_minutes_until():
    assert utils.minutes_until(datetime(2024, 6, 1, 10, 0), datetime(2024, 6, 1, 9, 40)) == 20


def _busy_store(store, now):
    s = store
    s = s.apply(ledger.purchase(s, "u1", "p1", datetime(2024, 5, 20, 12, 0)).delta)
    s = s.apply(ledger.purchase(s, "u2", "p2", datetime(2024, 6, 1, 8, 0)).delta)
    s = s.apply(engine.check_in(s, "c1", "u1", Method.QR, now).delta)
    s = s.apply(engine.check_in(s, "c3", "u2", Method.MANUAL, datetime(2024, 6, 1, 11, 50)).delta)
    return s


def test_revenue_reports(store, now):
    s = _busy_store(store, now)
    assert utils.total_revenue(s) == 125.0
    summary = utils.revenue_summary_by_month(s)
    assert summary.to_dict("records") == [
        {"month": "2024-06", "revenue": 100.0},
        {"month": "2024-05", "revenue": 25.0},
    ]


def test_revenue_summary_empty(store):
    assert list(utils.revenue_summary_by_month(store).columns) == ["month", "revenue"]
    assert utils.revenue_summary_by_month(store).empty


def test_attendance_by_class(store, now):
    s = _busy_store(store, now)
    counts = utils.attendance_by_class(s)
    assert counts["class_id"].tolist() == ["c3", "c2", "c1"]
    assert counts["count"].tolist() == [1, 0, 1]


def test_trainee_history_and_csv(store, now):
    s = _busy_store(store, now)
    history = utils.trainee_history(s, "u2")
    assert history["class_name"].tolist() == ["Pilates"]
    assert history["method"].tolist() == ["MANUAL"]

    csv = utils.attendance_to_csv_bytes(s).decode("utf-8")
    assert csv.splitlines()[0].startswith("id,class_id,class_name")
    assert len(csv.splitlines()) == 3
    assert utils.payments_to_csv_bytes(s).decode("utf-8").splitlines()[0] == "id,trainee_id,amount,credits,status,paid_at"


def test_package_catalog_crud(store, ids):
    created = store.apply(packages.create_package(store, "Mega", "50", "180", ids).delta)
    assert created.package("t-1").credits == 50

    updated = created.apply(packages.update_package(created, "t-1", price=170).delta)
    assert updated.package("t-1").price == 170.0
    assert updated.package("t-1").name == "Mega"

    removed = updated.apply(packages.delete_package(updated, "t-1").delta)
    assert removed.package("t-1") is None


def test_package_validation(store):
    out = packages.create_package(store, "", 0, -1)
    assert out.kind == FailureKind.INVALID_INPUT
    assert "Credits must be greater than 0." in out.message
    assert packages.update_package(store, "zzz", name="x").kind == FailureKind.PACKAGE_NOT_FOUND
    assert packages.delete_package(store, "zzz").kind == FailureKind.PACKAGE_NOT_FOUND


def test_catalog_changes_leave_balances_alone(store):
    after = store.apply(packages.delete_package(store, "p1").delta)
    assert after.trainee("u1").credits == 3


def test_class_validation_handles_non_string_values():
    errors = utils.validate_class_inputs("Yoga", "Studio A", 20240601, 1000)
    assert "Date must be a valid ISO date (YYYY-MM-DD)." in errors
    assert "Time must be a valid 24h time (HH:MM)." in errors
