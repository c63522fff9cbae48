# Overview: Pytest coverage for bulk sale, product and category imports.

"""
Import tests.

Sale imports skip duplicate (product, category, day) rows and abort on
anything else; product and category imports are all or nothing.
"""

from datetime import date, datetime

import pytest

from storeledger.errors import (
    ConflictError,
    InsufficientStockError,
    NonPositiveQuantityError,
    NotFoundError,
    ValidationError,
)
from storeledger.extensions import db
from storeledger.models import Category, Product, SoldRecord
from storeledger.services import import_service, sold_service

from conftest import DAY_1


def _reload(product_id):
    db.session.expire_all()
    return db.session.get(Product, product_id)


class TestImportSales:
    def test_duplicate_row_is_skipped(self, db_session, store, product):
        sold_service.record_sale(store.id, product.id, total_sold_out=5, sold_on=DAY_1)

        result = import_service.import_sales(store.id, [
            {"product_id": product.id, "total_sold_out": "3", "sold_on": "2024-01-02"},
            {"product_id": product.id, "total_sold_out": "4", "sold_on": "2024-01-03"},
            {"product_id": str(product.id), "total_sold_out": 6, "sold_on": "2024-01-05"},
        ])

        assert result.imported == 2
        assert result.skipped == 1
        assert result.skipped_rows[0]["row"] == 1
        p = _reload(product.id)
        assert p.sold_out_quantity == 15
        assert p.remain_quantity == 85

    def test_zero_quantity_on_existing_day_aborts(self, db_session, store, product):
        sold_service.record_sale(store.id, product.id, total_sold_out=5, sold_on=DAY_1)

        with pytest.raises(NonPositiveQuantityError) as exc:
            import_service.import_sales(store.id, [
                {"product_id": product.id, "total_sold_out": 4, "sold_on": "2024-01-03"},
                {"product_id": product.id, "total_sold_out": 0, "sold_on": "2024-01-02"},
            ])

        assert exc.value.details["row"] == 2
        assert db_session.query(SoldRecord).count() == 1
        assert _reload(product.id).sold_out_quantity == 5

    def test_repeated_row_in_file_is_skipped(self, db_session, store, product):
        row = {"product_id": product.id, "total_sold_out": 2, "sold_on": "2024-01-02"}
        result = import_service.import_sales(store.id, [row, dict(row)])
        assert (result.imported, result.skipped) == (1, 1)

    def test_cumulative_snapshots_follow_date_not_file_order(self, db_session, store, product):
        import_service.import_sales(store.id, [
            {"product_id": product.id, "total_sold_out": 30, "sold_on": "2024-01-03"},
            {"product_id": product.id, "total_sold_out": 20, "sold_on": "2024-01-02"},
        ])
        db.session.expire_all()
        by_day = {s.sold_on: s.net_profit_cents for s in db_session.query(SoldRecord).all()}
        assert by_day[date(2024, 1, 2)] == -32_000
        assert by_day[date(2024, 1, 3)] == -5_000

    def test_resolves_product_by_name_and_category(self, db_session, store, product, category):
        result = import_service.import_sales(store.id, [
            {"product_name": product.name, "category_name": category.name, "totalSoldOut": "1", "createdAt": "2024-01-02"},
        ])
        assert result.imported == 1
        assert result.product_ids == [product.id]

    def test_recalculates_each_product_once_per_batch(self, db_session, store, product, make_product):
        other = make_product(name="Teh", quantity=10, capital_cents=0, tax_bps=0)
        result = import_service.import_sales(store.id, [
            {"product_id": product.id, "total_sold_out": 1, "sold_on": "2024-01-02"},
            {"product_id": other.id, "total_sold_out": 2, "sold_on": "2024-01-02"},
            {"product_id": product.id, "total_sold_out": 1, "sold_on": "2024-01-03"},
        ])
        assert result.product_ids == sorted([product.id, other.id])
        assert _reload(other.id).profit_cents == 2_000
        assert _reload(product.id).sold_out_quantity == 2

    def test_stock_error_aborts_whole_batch(self, db_session, store, make_product):
        p = make_product(quantity=5)
        with pytest.raises(InsufficientStockError) as exc:
            import_service.import_sales(store.id, [
                {"product_id": p.id, "total_sold_out": 3, "sold_on": "2024-01-02"},
                {"product_id": p.id, "total_sold_out": 3, "sold_on": "2024-01-03"},
            ])
        assert exc.value.details["row"] == 2
        assert db_session.query(SoldRecord).count() == 0
        assert _reload(p.id).remain_quantity == 5

    def test_unknown_product_aborts(self, db_session, store, product):
        with pytest.raises(NotFoundError):
            import_service.import_sales(store.id, [
                {"product_id": product.id, "total_sold_out": 1, "sold_on": "2024-01-02"},
                {"product_id": 424242, "total_sold_out": 1, "sold_on": "2024-01-02"},
            ])
        assert db_session.query(SoldRecord).count() == 0

    def test_bad_date_aborts(self, db_session, store, product):
        with pytest.raises(ValidationError) as exc:
            import_service.import_sales(store.id, [
                {"product_id": product.id, "total_sold_out": 1, "sold_on": "not a date"},
            ])
        assert exc.value.details["row"] == 1

    def test_excel_datetime_cells(self, db_session, store, product):
        result = import_service.import_sales(store.id, [
            {"product_id": float(product.id), "total_sold_out": 2.0, "sold_on": datetime(2024, 1, 2, 0, 0)},
        ])
        assert result.imported == 1


class TestImportProducts:
    def test_spreadsheet_values(self, db_session, store, category):
        result = import_service.import_products(store.id, [
            {
                "name": "Gula",
                "category_name": category.name,
                "price": "Rp 12.50",
                "capital": "1,000",
                "quantity": "40",
                "tax": "10%",
                "created_at": "2024-02-01",
            },
        ])
        assert result["created"] == 1
        p = db_session.query(Product).filter_by(name="Gula").one()
        assert p.price_cents == 1250
        assert p.capital_cents == 100_000
        assert p.tax_bps == 1000
        assert p.remain_quantity == 40
        assert p.profit_cents == -100_000
        assert p.created_at.date() == date(2024, 2, 1)

    def test_dotted_thousands(self, db_session, store, category):
        import_service.import_products(store.id, [
            {
                "name": "Beras",
                "category_name": category.name,
                "price": "Rp 10.000",
                "capital": "Rp 1.000.000",
                "quantity": "1.000",
                "tax": "0",
            },
        ])
        p = db_session.query(Product).filter_by(name="Beras").one()
        assert p.price_cents == 1_000_000
        assert p.capital_cents == 100_000_000
        assert p.quantity == 1000

    @pytest.mark.parametrize("raw, cents", [
        ("Rp. 10.000", 1_000_000),
        ("1.234,56", 123_456),
        ("1,234.56", 123_456),
        ("12,5", 1250),
        ("7.5", 750),
    ])
    def test_separator_conventions(self, raw, cents):
        assert import_service._to_cents(raw, "price") == cents

    def test_malformed_number_rejected(self):
        with pytest.raises(ValidationError):
            import_service._to_cents("1.2.3", "price")

    def test_duplicate_name_category_day_aborts(self, db_session, store, category, product):
        with pytest.raises(ConflictError):
            import_service.import_products(store.id, [
                {"name": "Baru", "category_id": category.id, "price_cents": 100, "quantity": 1},
                {
                    "name": product.name,
                    "category_id": category.id,
                    "price_cents": 100,
                    "quantity": 1,
                    "created_at": "2024-01-01T15:00:00",
                },
            ])
        assert db_session.query(Product).filter_by(name="Baru").count() == 0

    def test_unknown_category_aborts(self, db_session, store):
        with pytest.raises(NotFoundError):
            import_service.import_products(store.id, [
                {"name": "Gula", "category_name": "Nope", "price": "1", "quantity": 1},
            ])


class TestImportCategories:
    def test_creates_all(self, db_session, store):
        result = import_service.import_categories(store.id, [{"name": "A"}, {"name": "B"}])
        assert result["created"] == 2

    def test_duplicate_aborts(self, db_session, store, category):
        with pytest.raises(ConflictError):
            import_service.import_categories(store.id, [{"name": "Fresh"}, {"name": category.name}])
        assert db_session.query(Category).filter_by(name="Fresh").count() == 0
