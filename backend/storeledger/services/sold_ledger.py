# Overview: Entry-level rules for a product's sold ledger.

"""
Sold-Record Ledger

Checks a candidate ledger entry against the product and the product's
current ledger before anything is written. The caller must hold the
product lock (see concurrency.lock_for_update) while the ledger it passes
in is read, checked and written, otherwise two writers can both pass the
duplicate and stock checks.

Checks never mutate; they raise from ``storeledger.errors``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Sequence

from ..errors import (
    DuplicateEntryError,
    InsufficientStockError,
    InvalidDateError,
    NotFoundError,
)
from ..money import Quantity
from ..time_utils import to_iso_date


@dataclass(frozen=True)
class SaleCandidate:
    product_id: int
    category_id: int
    total_sold_out: int
    sold_on: date


def find_duplicate(ledger: Iterable, candidate: SaleCandidate, exclude_id: int | None = None):
    for sold in ledger:
        if exclude_id is not None and sold.id == exclude_id:
            continue
        if (
            sold.product_id == candidate.product_id
            and sold.category_id == candidate.category_id
            and sold.sold_on == candidate.sold_on
        ):
            return sold
    return None


def check_candidate(product, ledger: Iterable, candidate: SaleCandidate, *, exclude_id: int | None = None) -> None:
    """
    Validate a new or edited entry (appendOrReplace).

    exclude_id is the id of the entry being edited, which must not count
    as its own duplicate.
    """
    Quantity.positive(candidate.total_sold_out)

    duplicate = find_duplicate(ledger, candidate, exclude_id=exclude_id)
    if duplicate is not None:
        raise DuplicateEntryError(
            "A record already exists for the selected product, category, and date.",
            details={
                "sold_id": duplicate.id,
                "product_id": candidate.product_id,
                "category_id": candidate.category_id,
                "sold_on": to_iso_date(candidate.sold_on),
            },
        )

    stocked_on = product.created_at.date()
    if candidate.sold_on < stocked_on:
        raise InvalidDateError(
            "Sale date cannot be earlier than the product's creation date",
            details={
                "sold_on": to_iso_date(candidate.sold_on),
                "product_created_on": to_iso_date(stocked_on),
            },
        )


def sold_total(ledger: Iterable, exclude_id: int | None = None) -> int:
    return sum(s.total_sold_out for s in ledger if exclude_id is None or s.id != exclude_id)


def remaining(product, ledger: Iterable) -> int:
    """Units left on the shelf according to the ledger itself."""
    return product.quantity - sold_total(ledger)


def quantity_delta(old, new_total_sold_out: int) -> int:
    """Signed change in units sold when ``old`` is edited to ``new_total_sold_out``."""
    return new_total_sold_out - old.total_sold_out


def check_stock(product, ledger: Sequence, requested: int, *, old=None) -> None:
    """
    Fail with InsufficientStockError unless ``requested`` units fit.

    When editing, ``old`` is the entry being replaced: its units go back on
    the shelf first, so the most the edit may ask for is remain + old.
    """
    remain = remaining(product, ledger)
    max_allowed = remain + (old.total_sold_out if old is not None else 0)
    if requested > max_allowed:
        raise InsufficientStockError(
            f"Insufficient stock: at most {max_allowed} units can be sold",
            details={
                "product_id": product.id,
                "requested": requested,
                "remain_quantity": remain,
                "max_allowed": max_allowed,
            },
        )


def remove(ledger: list, sold_id: int):
    """Take ``sold_id`` out of ``ledger`` and return it."""
    for index, sold in enumerate(ledger):
        if sold.id == sold_id:
            return ledger.pop(index)
    raise NotFoundError("Sold record not found", details={"sold_id": sold_id})
