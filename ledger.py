"""
ledger.py
Credit ledger: the only place a trainee's credit balance changes.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime

import utils
from models import FailureKind, Failure, Outcome, PaymentRecord, Store, StoreDelta, Success, Trainee

_logger = logging.getLogger(__name__)


def adjust(trainee: Trainee, delta: int) -> Trainee:
    """
    Return a copy of `trainee` with `delta` credits applied, floored at zero.
    Never reports insufficiency: callers check the balance before debiting.
    """
    return replace(trainee, credits=max(0, trainee.credits + int(delta)))


def purchase(store: Store, trainee_id: str, package_id: str, now: datetime,
             ids: utils.IdGenerator = utils.new_id) -> Outcome:
    """
    Buy a credit package: append a SUCCESS payment and top up the balance.
    """
    trainee = store.trainee(trainee_id)
    if not trainee:
        return Failure(FailureKind.TRAINEE_NOT_FOUND, "Trainee not found.")
    package = store.package(package_id)
    if not package:
        return Failure(FailureKind.PACKAGE_NOT_FOUND, "Credit package not found.")

    payment = PaymentRecord(
        id=ids(),
        trainee_id=trainee.id,
        amount=float(package.price),
        credits=package.credits,
        timestamp=utils.to_millis(now),
        status="SUCCESS",
    )
    updated = adjust(trainee, package.credits)
    _logger.info("Trainee %s bought %s (+%d credits, %.2f)", trainee.id, package.name, package.credits, package.price)
    return Success(
        f"Purchase successful! {package.credits} credits added to your balance.",
        StoreDelta(users=(updated,), added_payments=(payment,)),
    )
