# Overview: Bulk imports of sales, products and categories from spreadsheet-style rows.

"""
Import Service

Rows arrive already parsed (CSV / JSON / XLSX parsing lives in the route)
but loosely typed: numbers may be strings and money may carry currency
symbols or thousands separators, the way a spreadsheet export yields them.

Semantics:
- import_sales: rows are applied in file order inside one unit of work.
  A row that duplicates (product, category, day) is skipped and counted;
  every other error aborts the whole batch. Each affected product is
  recalculated once, after the last row.
- import_products / import_categories: all or nothing. A duplicate aborts
  the batch with ConflictError.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from datetime import date, datetime
from typing import Any

from flask import current_app

from ..errors import ConflictError, DuplicateEntryError, LedgerError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Category, Product, SoldRecord
from ..time_utils import parse_iso_datetime, to_iso_date
from ..validation import enforce_rules_product
from . import sold_ledger
from .concurrency import begin_write, lock_for_update, run_with_retry
from .products_service import load_ledger
from .recalculation import apply_recalculation
from .sold_service import coerce_sold_on, flush_sold

_NUMERIC_NOISE = re.compile(r"[^0-9.,\-]+")
# "10.000", "1,000,000": one separator kind, every group exactly three digits
_THOUSANDS_GROUPED = re.compile(r"-?\d{1,3}([.,])\d{3}(?:\1\d{3})*")


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _normalize_number(raw: str) -> str:
    """
    Reduce a spreadsheet number ("Rp 10.000", "1.234,56", "12.50") to a
    plain decimal string.

    With both separators present, the last one is the decimal mark. A lone
    separator splitting three-digit groups is a thousands separator;
    otherwise it is the decimal mark.
    """
    text = _NUMERIC_NOISE.sub("", raw).lstrip(".,")
    if "." in text and "," in text:
        decimal_mark = "." if text.rfind(".") > text.rfind(",") else ","
        grouping = "," if decimal_mark == "." else "."
        return text.replace(grouping, "").replace(decimal_mark, ".")
    if _THOUSANDS_GROUPED.fullmatch(text):
        return text.replace(".", "").replace(",", "")
    return text.replace(",", ".")


def _to_decimal(value: Any, field_name: str) -> Decimal | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    text = _normalize_number(str(value))
    if not text:
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"{field_name} must be a number", details={field_name: value})


def _to_int(value: Any, field_name: str) -> int | None:
    number = _to_decimal(value, field_name)
    if number is None:
        return None
    if number != number.to_integral_value():
        raise ValidationError(f"{field_name} must be a whole number", details={field_name: value})
    return int(number)


def _to_cents(value: Any, field_name: str) -> int | None:
    """Major currency units ("Rp 10.000", "12.50", 12.5, "1,000") to integer cents."""
    number = _to_decimal(value, field_name)
    if number is None:
        return None
    return int((number * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _to_bps(value: Any, field_name: str) -> int | None:
    """A tax percentage ("10", "10%", 7.5) to basis points."""
    number = _to_decimal(value, field_name)
    if number is None:
        return None
    return int((number * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _to_datetime(value: Any, field_name: str):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        dt = parse_iso_datetime(str(value))
    except ValueError:
        dt = None
    if dt is None:
        raise ValidationError(f"{field_name} must be an ISO-8601 date", details={field_name: value})
    return dt


def _pick(row: dict, *names: str):
    for name in names:
        if row.get(name) not in (None, ""):
            return row[name]
    return None


def _row_error(exc: LedgerError, row_number: int) -> LedgerError:
    exc.details = {**exc.details, "row": row_number}
    return exc


def _categories_by_name(store_id: int) -> dict[str, Category]:
    rows = db.session.query(Category).filter(Category.store_id == store_id).all()
    return {c.name: c for c in rows}


def _category_for_row(store_id: int, row: dict, by_name: dict[str, Category]) -> Category | None:
    category_id = _to_int(_pick(row, "category_id", "categoryId"), "category_id")
    if category_id is not None:
        category = db.session.query(Category).filter_by(id=category_id, store_id=store_id).first()
        if category is None:
            raise NotFoundError("Category not found", details={"category_id": category_id})
        return category
    name = _to_text(_pick(row, "category_name", "category"))
    if name is None:
        return None
    category = by_name.get(name)
    if category is None:
        raise NotFoundError("Category not found", details={"category_name": name})
    return category


@dataclass
class SaleImportResult:
    imported: int = 0
    skipped: int = 0
    skipped_rows: list[dict] = field(default_factory=list)
    product_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "skipped_rows": self.skipped_rows,
            "product_ids": self.product_ids,
        }


def _resolve_sale_product(store_id: int, row: dict, by_name: dict[str, Category]) -> tuple[int, int | None]:
    """Returns (product_id, category_id or None)."""
    category = _category_for_row(store_id, row, by_name)
    product_id = _to_int(_pick(row, "product_id", "productId"), "product_id")
    if product_id is not None:
        return product_id, category.id if category else None

    name = _to_text(_pick(row, "product_name", "product", "name"))
    if name is None:
        raise ValidationError("product_id or product_name is required")
    if category is None:
        raise ValidationError("category_name is required with product_name")

    matches = (
        db.session.query(Product.id)
        .filter(Product.store_id == store_id, Product.name == name, Product.category_id == category.id)
        .order_by(Product.id.asc())
        .all()
    )
    if not matches:
        raise NotFoundError(
            "Product not found",
            details={"product_name": name, "category_name": category.name},
        )
    if len(matches) > 1:
        raise ValidationError(
            "Product name is ambiguous in this category; use product_id",
            details={"product_name": name, "product_ids": [m[0] for m in matches]},
        )
    return matches[0][0], category.id


def import_sales(store_id: int, rows: list[dict]) -> SaleImportResult:
    """bulkImportSales over one store."""
    if not isinstance(rows, list):
        raise ValidationError("rows must be a list")

    def _op():
        begin_write()
        by_name = _categories_by_name(store_id)

        # resolve every row first so the product locks can be taken in id order
        resolved = []
        for number, row in enumerate(rows, start=1):
            if not isinstance(row, dict):
                raise ValidationError("Each row must be an object", details={"row": number})
            try:
                product_id, category_id = _resolve_sale_product(store_id, row, by_name)
                total_sold_out = _to_int(_pick(row, "total_sold_out", "totalSoldOut", "quantity"), "total_sold_out")
                if total_sold_out is None:
                    raise ValidationError("total_sold_out is required")
                raw_date = _pick(row, "sold_on", "createdAt", "created_at", "date")
                if raw_date is None:
                    raise ValidationError("sold_on is required")
                sold_on = coerce_sold_on(raw_date)
            except LedgerError as exc:
                raise _row_error(exc, number)
            resolved.append((number, product_id, category_id, total_sold_out, sold_on))

        products: dict[int, Product] = {}
        ledgers: dict[int, list[SoldRecord]] = {}
        for product_id in sorted({r[1] for r in resolved}):
            product = lock_for_update(
                db.session.query(Product).filter_by(id=product_id, store_id=store_id)
            ).first()
            if product is None:
                number = next(r[0] for r in resolved if r[1] == product_id)
                raise NotFoundError("Product not found", details={"product_id": product_id, "row": number})
            products[product_id] = product
            ledgers[product_id] = load_ledger(product_id)

        result = SaleImportResult()
        for number, product_id, category_id, total_sold_out, sold_on in resolved:
            product = products[product_id]
            ledger = ledgers[product_id]
            candidate = sold_ledger.SaleCandidate(
                product_id=product_id,
                category_id=category_id if category_id is not None else product.category_id,
                total_sold_out=total_sold_out,
                sold_on=sold_on,
            )
            try:
                sold_ledger.check_candidate(product, ledger, candidate)
            except DuplicateEntryError as exc:
                result.skipped += 1
                result.skipped_rows.append({"row": number, **exc.details})
                continue
            except LedgerError as exc:
                raise _row_error(exc, number)

            try:
                sold_ledger.check_stock(product, ledger, candidate.total_sold_out)
            except LedgerError as exc:
                raise _row_error(exc, number)

            sold = SoldRecord(
                product_id=product_id,
                category_id=candidate.category_id,
                sold_on=candidate.sold_on,
                total_sold_out=candidate.total_sold_out,
            )
            db.session.add(sold)
            flush_sold(sold)
            ledger.append(sold)
            result.imported += 1

        for product_id, product in products.items():
            apply_recalculation(product, ledgers[product_id])
        result.product_ids = sorted(products)

        db.session.commit()
        current_app.logger.info(
            "import_sales store_id=%s imported=%s skipped=%s products=%s",
            store_id, result.imported, result.skipped, len(products),
        )
        return result

    return run_with_retry(_op)


def import_products(store_id: int, rows: list[dict]) -> dict:
    """
    Create products from rows of name / category / price / capital /
    quantity / tax / created_at. Duplicate (name, category, created day)
    within the store or the file aborts the batch.
    """
    if not isinstance(rows, list):
        raise ValidationError("rows must be a list")

    def _op():
        begin_write()
        by_name = _categories_by_name(store_id)
        seen = {
            (p.name, p.category_id, p.created_at.date())
            for p in db.session.query(Product).filter(Product.store_id == store_id).all()
        }

        created = []
        for number, row in enumerate(rows, start=1):
            if not isinstance(row, dict):
                raise ValidationError("Each row must be an object", details={"row": number})
            try:
                category = _category_for_row(store_id, row, by_name)
                if category is None:
                    raise ValidationError("category_name is required")
                name = _to_text(_pick(row, "name", "product_name"))
                if name is None:
                    raise ValidationError("name is required")

                price = row.get("price_cents")
                price_cents = _to_int(price, "price_cents") if price not in (None, "") else _to_cents(_pick(row, "price", "pricePerPiece"), "price")
                capital = row.get("capital_cents")
                capital_cents = _to_int(capital, "capital_cents") if capital not in (None, "") else _to_cents(_pick(row, "capital"), "capital")
                tax = row.get("tax_bps")
                tax_bps = _to_int(tax, "tax_bps") if tax not in (None, "") else _to_bps(_pick(row, "tax"), "tax")

                patch = {
                    "name": name,
                    "category_id": category.id,
                    "price_cents": price_cents,
                    "capital_cents": capital_cents or 0,
                    "quantity": _to_int(_pick(row, "quantity"), "quantity"),
                    "tax_bps": tax_bps or 0,
                }
                if patch["price_cents"] is None:
                    raise ValidationError("price is required")
                if patch["quantity"] is None:
                    raise ValidationError("quantity is required")
                enforce_rules_product(patch)

                created_at = _to_datetime(_pick(row, "created_at", "createdAt"), "created_at")
                if created_at is not None:
                    patch["created_at"] = created_at

                product = Product(store_id=store_id, **patch)
                db.session.add(product)
                db.session.flush()

                key = (product.name, product.category_id, product.created_at.date())
                if key in seen:
                    raise ConflictError(
                        f'A product with the name "{name}", category, and date already exists.',
                        details={"name": name, "category_id": category.id, "created_on": to_iso_date(key[2])},
                    )
                seen.add(key)
            except LedgerError as exc:
                raise _row_error(exc, number)

            apply_recalculation(product, [])
            created.append(product)

        db.session.commit()
        current_app.logger.info("import_products store_id=%s created=%s", store_id, len(created))
        return {"created": len(created), "items": [p.to_dict() for p in created]}

    return run_with_retry(_op)


def import_categories(store_id: int, rows: list[dict]) -> dict:
    if not isinstance(rows, list):
        raise ValidationError("rows must be a list")

    def _op():
        begin_write()
        taken = set(_categories_by_name(store_id))

        created = []
        for number, row in enumerate(rows, start=1):
            name = _to_text(_pick(row, "name", "category_name")) if isinstance(row, dict) else None
            if name is None:
                raise ValidationError("name is required", details={"row": number})
            if len(name) > 120:
                raise ValidationError("name exceeds max length 120", details={"row": number})
            if name in taken:
                raise ConflictError(
                    f'A category with the name "{name}" already exists.',
                    details={"name": name, "row": number},
                )
            taken.add(name)
            category = Category(store_id=store_id, name=name)
            db.session.add(category)
            created.append(category)

        db.session.commit()
        current_app.logger.info("import_categories store_id=%s created=%s", store_id, len(created))
        return {"created": len(created), "items": [c.to_dict() for c in created]}

    return run_with_retry(_op)
