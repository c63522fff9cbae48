# Overview: Service-layer operations for sold records; the ledger half of the Product Aggregate Store.

"""
Sold Records Service

recordSale / editSale / deleteSale. Each one is a single unit of work:

    lock product -> read full ledger -> ledger checks -> write record
    -> replay ledger (recalculation) -> write aggregates -> commit

The product row lock serializes writers of the same product; writers of
different products never wait on each other. Any failure rolls the record
and the aggregates back together (see concurrency.run_with_retry).
"""

from __future__ import annotations

from datetime import date, datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import DuplicateEntryError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Category, Product, SoldRecord
from ..time_utils import parse_iso_date, to_iso_date
from . import sold_ledger
from .concurrency import begin_write, run_with_retry
from .products_service import load_ledger, load_product
from .recalculation import apply_recalculation


def coerce_sold_on(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError("sold_on must be an ISO-8601 date", details={"sold_on": value})


def resolve_category_id(store_id: int, product: Product, category_id) -> int:
    """The product's current category unless the caller names another of this store."""
    if category_id is None:
        return product.category_id
    exists = db.session.query(Category.id).filter_by(id=category_id, store_id=store_id).first()
    if exists is None:
        raise NotFoundError("Category not found", details={"category_id": category_id})
    return category_id


def flush_sold(sold: SoldRecord) -> None:
    """Flush a new or edited record; a unique-key race surfaces as DuplicateEntryError."""
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEntryError(
            "A record already exists for the selected product, category, and date.",
            details={
                "product_id": sold.product_id,
                "category_id": sold.category_id,
                "sold_on": to_iso_date(sold.sold_on),
            },
        )


def _load_sold(store_id: int, sold_id: int) -> SoldRecord:
    sold = (
        db.session.query(SoldRecord)
        .join(Product, Product.id == SoldRecord.product_id)
        .filter(SoldRecord.id == sold_id, Product.store_id == store_id)
        .first()
    )
    if sold is None:
        raise NotFoundError("Sold record not found", details={"sold_id": sold_id})
    return sold


def record_sale(
    store_id: int,
    product_id: int,
    *,
    total_sold_out: int,
    sold_on,
    category_id: int | None = None,
) -> SoldRecord:
    def _op():
        begin_write()
        product = load_product(store_id, product_id, lock=True)
        ledger = load_ledger(product.id)

        candidate = sold_ledger.SaleCandidate(
            product_id=product.id,
            category_id=resolve_category_id(store_id, product, category_id),
            total_sold_out=total_sold_out,
            sold_on=coerce_sold_on(sold_on),
        )
        sold_ledger.check_candidate(product, ledger, candidate)
        sold_ledger.check_stock(product, ledger, candidate.total_sold_out)

        sold = SoldRecord(
            product_id=candidate.product_id,
            category_id=candidate.category_id,
            sold_on=candidate.sold_on,
            total_sold_out=candidate.total_sold_out,
        )
        db.session.add(sold)
        flush_sold(sold)

        apply_recalculation(product, ledger + [sold])
        db.session.commit()

        current_app.logger.info(
            "record_sale sold_id=%s product_id=%s units=%s sold_on=%s",
            sold.id, product.id, sold.total_sold_out, to_iso_date(sold.sold_on),
        )
        return sold

    return run_with_retry(_op)


def edit_sale(
    store_id: int,
    sold_id: int,
    *,
    total_sold_out: int | None = None,
    category_id: int | None = None,
    sold_on=None,
) -> SoldRecord:
    """
    Change the units, category or date of a sale.

    The stock bound is remain + the record's current units, since those
    units go back on the shelf before the new figure is taken off.
    """
    def _op():
        begin_write()
        sold = _load_sold(store_id, sold_id)
        product = load_product(store_id, sold.product_id, lock=True)
        ledger = load_ledger(product.id)

        new_total = sold.total_sold_out if total_sold_out is None else total_sold_out
        candidate = sold_ledger.SaleCandidate(
            product_id=product.id,
            category_id=(
                sold.category_id if category_id is None
                else resolve_category_id(store_id, product, category_id)
            ),
            total_sold_out=new_total,
            sold_on=sold.sold_on if sold_on is None else coerce_sold_on(sold_on),
        )
        sold_ledger.check_candidate(product, ledger, candidate, exclude_id=sold.id)
        delta = sold_ledger.quantity_delta(sold, candidate.total_sold_out)
        if delta > 0:
            sold_ledger.check_stock(product, ledger, candidate.total_sold_out, old=sold)

        sold.total_sold_out = candidate.total_sold_out
        sold.category_id = candidate.category_id
        sold.sold_on = candidate.sold_on
        flush_sold(sold)

        apply_recalculation(product, ledger)
        db.session.commit()

        current_app.logger.info(
            "edit_sale sold_id=%s product_id=%s delta=%s sold_on=%s",
            sold.id, product.id, delta, to_iso_date(sold.sold_on),
        )
        return sold

    return run_with_retry(_op)


def delete_sale(store_id: int, sold_id: int) -> Product:
    """Remove a sale; returns the product with its recalculated aggregates."""
    def _op():
        begin_write()
        sold = _load_sold(store_id, sold_id)
        product = load_product(store_id, sold.product_id, lock=True)
        ledger = load_ledger(product.id)

        removed = sold_ledger.remove(ledger, sold_id)
        db.session.delete(removed)
        db.session.flush()

        apply_recalculation(product, ledger)
        db.session.commit()

        current_app.logger.info("delete_sale sold_id=%s product_id=%s", sold_id, product.id)
        return product

    return run_with_retry(_op)


def get_sale(store_id: int, sold_id: int) -> SoldRecord:
    return _load_sold(store_id, sold_id)


def list_sales(
    store_id: int,
    *,
    product_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Sold records of a store, newest first. start/end are inclusive dates.
    """
    base_query = (
        db.session.query(SoldRecord)
        .join(Product, Product.id == SoldRecord.product_id)
        .filter(Product.store_id == store_id)
    )
    if product_id is not None:
        base_query = base_query.filter(SoldRecord.product_id == product_id)
    if start is not None:
        base_query = base_query.filter(SoldRecord.sold_on >= start)
    if end is not None:
        base_query = base_query.filter(SoldRecord.sold_on <= end)
    base_query = base_query.order_by(SoldRecord.sold_on.desc(), SoldRecord.id.desc())

    if page is None:
        solds = base_query.all()
        return {"items": [s.to_dict() for s in solds], "count": len(solds)}

    per_page = min(per_page or 20, 100)
    page = max(page, 1)
    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    solds = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [s.to_dict() for s in solds],
        "count": len(solds),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
