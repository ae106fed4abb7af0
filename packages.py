"""
packages.py
Credit package catalog (admin CRUD). Catalog changes never touch balances.
"""

from __future__ import annotations

from dataclasses import replace

import utils
from models import CreditPackage, Failure, FailureKind, Outcome, Store, StoreDelta, Success


def create_package(store: Store, name: str, credits, price, ids: utils.IdGenerator = utils.new_id) -> Outcome:
    errors = utils.validate_package_inputs(name, credits, price)
    if errors:
        return Failure(FailureKind.INVALID_INPUT, " ".join(errors))
    package = CreditPackage(id=ids(), name=name.strip(), credits=int(credits), price=float(price))
    return Success("Package created.", StoreDelta(packages=(package,)))


def update_package(store: Store, package_id: str, name: str | None = None, credits=None, price=None) -> Outcome:
    package = store.package(package_id)
    if not package:
        return Failure(FailureKind.PACKAGE_NOT_FOUND, "Credit package not found.")
    name = package.name if name is None else name
    credits = package.credits if credits is None else credits
    price = package.price if price is None else price

    errors = utils.validate_package_inputs(name, credits, price)
    if errors:
        return Failure(FailureKind.INVALID_INPUT, " ".join(errors))
    updated = replace(package, name=name.strip(), credits=int(credits), price=float(price))
    return Success("Package updated.", StoreDelta(packages=(updated,)))


def delete_package(store: Store, package_id: str) -> Outcome:
    # Past payments keep their own amount/credits, so nothing cascades
    if not store.package(package_id):
        return Failure(FailureKind.PACKAGE_NOT_FOUND, "Credit package not found.")
    return Success("Package deleted.", StoreDelta(removed_package_ids=frozenset({package_id})))
