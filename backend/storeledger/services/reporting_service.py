# Overview: Read-only store dashboards computed from product aggregates and sold records.

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Category, Product, SoldRecord, Store, User
from ..time_utils import parse_iso_date, to_iso_date

GROUP_BY_CHOICES = ("day", "week", "month")


def _parse_range(start, end) -> tuple[date | None, date | None]:
    try:
        start_d = parse_iso_date(start) if isinstance(start, str) else start
        end_d = parse_iso_date(end) if isinstance(end, str) else end
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 dates")
    if start_d and end_d and start_d > end_d:
        raise ValidationError("start must not be after end")
    return start_d, end_d


def _period_key(day: date, group_by: str) -> str:
    if group_by == "day":
        return day.isoformat()
    if group_by == "week":
        year, week, _ = day.isocalendar()
        return f"{year}-W{week:02d}"
    return f"{day.year}-{day.month:02d}"


def store_summary(store_id: int) -> dict:
    """
    Totals over every product of the store.

    unrealized_revenue_cents is what the stock still on the shelf would
    gross at its current price.
    """
    store = db.session.query(Store).filter_by(id=store_id).first()
    if store is None:
        raise NotFoundError("Store not found", details={"store_id": store_id})

    row = db.session.query(
        func.count(Product.id),
        func.coalesce(func.sum(Product.quantity), 0),
        func.coalesce(func.sum(Product.remain_quantity), 0),
        func.coalesce(func.sum(Product.sold_out_quantity), 0),
        func.coalesce(func.sum(Product.capital_cents), 0),
        func.coalesce(func.sum(Product.gross_income_cents), 0),
        func.coalesce(func.sum(Product.income_cents), 0),
        func.coalesce(func.sum(Product.gross_profit_cents), 0),
        func.coalesce(func.sum(Product.profit_cents), 0),
        func.coalesce(func.sum(Product.remain_quantity * Product.price_cents), 0),
    ).filter(Product.store_id == store_id).one()

    category_count = db.session.query(func.count(Category.id)).filter(Category.store_id == store_id).scalar()

    return {
        "store": store.to_dict(),
        "product_count": int(row[0]),
        "category_count": int(category_count or 0),
        "quantity": int(row[1]),
        "remain_quantity": int(row[2]),
        "sold_out_quantity": int(row[3]),
        "capital_cents": int(row[4]),
        "gross_income_cents": int(row[5]),
        "income_cents": int(row[6]),
        "gross_profit_cents": int(row[7]),
        "profit_cents": int(row[8]),
        "unrealized_revenue_cents": int(row[9]),
    }


def product_performance(store_id: int) -> list[dict]:
    """Per product: what has been realized so far against what is still on the shelf."""
    products = (
        db.session.query(Product)
        .filter(Product.store_id == store_id)
        .order_by(Product.gross_income_cents.desc(), Product.id.asc())
        .all()
    )
    return [
        {
            "product_id": p.id,
            "name": p.name,
            "category_id": p.category_id,
            "sold_out_quantity": p.sold_out_quantity,
            "remain_quantity": p.remain_quantity,
            "realized_gross_cents": p.gross_income_cents,
            "realized_income_cents": p.income_cents,
            "unrealized_gross_cents": p.remain_quantity * p.price_cents,
            "profit_cents": p.profit_cents,
        }
        for p in products
    ]


def sales_timeseries(store_id: int, *, group_by: str = "day", start=None, end=None) -> dict:
    if group_by not in GROUP_BY_CHOICES:
        raise ValidationError("group_by must be day, week, or month")
    start_d, end_d = _parse_range(start, end)

    query = (
        db.session.query(SoldRecord.sold_on, SoldRecord.total_sold_out, SoldRecord.income_cents)
        .join(Product, Product.id == SoldRecord.product_id)
        .filter(Product.store_id == store_id)
    )
    if start_d:
        query = query.filter(SoldRecord.sold_on >= start_d)
    if end_d:
        query = query.filter(SoldRecord.sold_on <= end_d)

    buckets: dict[str, dict] = {}
    for sold_on, units, income in query.order_by(SoldRecord.sold_on.asc(), SoldRecord.id.asc()):
        key = _period_key(sold_on, group_by)
        bucket = buckets.setdefault(
            key, {"period": key, "records": 0, "units_sold": 0, "income_cents": 0}
        )
        bucket["records"] += 1
        bucket["units_sold"] += units
        bucket["income_cents"] += income

    return {
        "group_by": group_by,
        "start": to_iso_date(start_d),
        "end": to_iso_date(end_d),
        "items": list(buckets.values()),
    }


def admin_overview() -> list[dict]:
    """Every store with its owner and summary."""
    stores = (
        db.session.query(Store, User)
        .join(User, User.id == Store.user_id)
        .order_by(Store.id.asc())
        .all()
    )
    overview = []
    for store, owner in stores:
        summary = store_summary(store.id)
        summary["owner"] = {"id": owner.id, "username": owner.username, "email": owner.email}
        overview.append(summary)
    return overview
