# Overview: Service-layer operations for products; the static half of the Product Aggregate Store.

"""
Products Service

A product's static facts (price, capital, quantity, tax, created_at) are
written here. Its derived figures are not: every write that touches a
static the engine reads re-runs the full ledger replay in the same unit of
work, so a product is never visible with aggregates computed from stale
inputs.

All functions take the store_id that already passed the ownership check.
"""
from __future__ import annotations

from flask import current_app

from ..errors import InsufficientStockError, InvalidDateError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Category, Product, SoldRecord
from ..time_utils import to_iso_date
from ..validation import enforce_rules_product
from .concurrency import begin_write, lock_for_update, run_with_retry
from .recalculation import apply_recalculation
from .sold_ledger import sold_total

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "category_id",
    "price_cents",
    "capital_cents",
    "quantity",
    "tax_bps",
    "created_at",
}

# Inputs of the recalculation engine
RECALC_FIELDS = {"price_cents", "capital_cents", "quantity", "tax_bps"}


def apply_product_patch(p: Product, patch: dict) -> set[str]:
    """Copy allowed fields onto ``p``; returns the names that actually changed."""
    changed = set()
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        if getattr(p, k) != v:
            setattr(p, k, v)
            changed.add(k)
    return changed


def _require_category(store_id: int, category_id) -> Category:
    if category_id is None:
        raise ValidationError("category_id is required")
    category = db.session.query(Category).filter_by(id=category_id, store_id=store_id).first()
    if category is None:
        raise NotFoundError("Category not found", details={"category_id": category_id})
    return category


def load_product(store_id: int, product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id, store_id=store_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def load_ledger(product_id: int) -> list[SoldRecord]:
    return (
        db.session.query(SoldRecord)
        .filter(SoldRecord.product_id == product_id)
        .order_by(SoldRecord.sold_on.asc(), SoldRecord.id.asc())
        .all()
    )


def get_product(store_id: int, product_id: int) -> Product:
    return load_product(store_id, product_id)


def list_products(
    store_id: int,
    *,
    category_id: int | None = None,
    in_stock_only: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Store-scoped product listing with optional pagination.

    Args:
        category_id: only products of this category
        in_stock_only: only products with remain_quantity > 0
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)
    """
    base_query = db.session.query(Product).filter(Product.store_id == store_id)
    if category_id is not None:
        base_query = base_query.filter(Product.category_id == category_id)
    if in_stock_only:
        base_query = base_query.filter(Product.remain_quantity > 0)
    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def create_product(store_id: int, *, patch: dict) -> Product:
    """
    Create a product from a validated patch and give it baseline aggregates
    (nothing sold, remain == quantity, profit == -capital).
    """
    patch = {k: v for k, v in patch.items() if v is not None}

    def _op():
        for field in ("name", "price_cents", "quantity"):
            if patch.get(field) is None:
                raise ValidationError(f"{field} is required")
        enforce_rules_product(patch)
        _require_category(store_id, patch.get("category_id"))

        p = Product(store_id=store_id)
        p.capital_cents = 0
        p.tax_bps = 0
        apply_product_patch(p, patch)
        apply_recalculation(p, [])

        db.session.add(p)
        db.session.commit()
        current_app.logger.info("product created id=%s store_id=%s", p.id, store_id)
        return p

    return run_with_retry(_op)


def update_product(store_id: int, product_id: int, *, patch: dict) -> Product:
    """
    editProductStatics.

    Raises:
        InsufficientStockError: quantity lowered below the units already sold
        InvalidDateError: created_at moved past the earliest sale
    """
    def _op():
        enforce_rules_product(patch)
        begin_write()
        p = load_product(store_id, product_id, lock=True)
        ledger = load_ledger(p.id)

        if patch.get("category_id") is not None:
            _require_category(store_id, patch["category_id"])

        sold = sold_total(ledger)
        if patch.get("quantity") is not None and patch["quantity"] < sold:
            raise InsufficientStockError(
                "Quantity cannot be lower than the units already sold",
                details={"product_id": p.id, "quantity": patch["quantity"], "sold_out_quantity": sold},
            )

        if patch.get("created_at") is not None and ledger:
            first_sale = ledger[0].sold_on
            if patch["created_at"].date() > first_sale:
                raise InvalidDateError(
                    "Product creation date cannot be later than its first sale",
                    details={
                        "created_on": to_iso_date(patch["created_at"].date()),
                        "first_sold_on": to_iso_date(first_sale),
                    },
                )

        changed = apply_product_patch(p, patch)
        if changed & RECALC_FIELDS:
            apply_recalculation(p, ledger)

        db.session.commit()
        current_app.logger.info(
            "product updated id=%s changed=%s", p.id, ",".join(sorted(changed)) or "-"
        )
        return p

    return run_with_retry(_op)


def delete_product(store_id: int, product_id: int) -> None:
    """Hard delete; the sold ledger goes with it."""
    def _op():
        begin_write()
        p = load_product(store_id, product_id, lock=True)
        db.session.delete(p)
        db.session.commit()
        current_app.logger.info("product deleted id=%s store_id=%s", product_id, store_id)

    run_with_retry(_op)


def recalculate_product(product_id: int, store_id: int | None = None) -> Product:
    """
    Replay the ledger of one product and persist the result.

    Recalculation is idempotent, so this is safe to run at any time to
    repair aggregates written by something other than this service.
    """
    def _op():
        begin_write()
        query = db.session.query(Product).filter_by(id=product_id)
        if store_id is not None:
            query = query.filter_by(store_id=store_id)
        p = lock_for_update(query).first()
        if p is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})

        apply_recalculation(p, load_ledger(p.id))
        db.session.commit()
        current_app.logger.info("product recalculated id=%s", p.id)
        return p

    return run_with_retry(_op)
