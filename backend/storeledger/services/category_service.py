"""
Categories of a store.

Sold records keep the category_id they were entered with, so a category
that still appears on a product or in any ledger cannot be deleted.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Category, Product, SoldRecord
from .concurrency import lock_for_update, run_with_retry


def _clean_name(name) -> str:
    name = name.strip() if isinstance(name, str) else ""
    if not name:
        raise ValidationError("Category name is required")
    if len(name) > 120:
        raise ValidationError("name exceeds max length 120")
    return name


def _ensure_name_free(store_id: int, name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Category).filter(Category.store_id == store_id, Category.name == name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Category already exists", details={"name": name})


def get_category(store_id: int, category_id: int) -> Category:
    category = db.session.query(Category).filter_by(id=category_id, store_id=store_id).first()
    if category is None:
        raise NotFoundError("Category not found", details={"category_id": category_id})
    return category


def list_categories(store_id: int) -> list[Category]:
    return (
        db.session.query(Category)
        .filter(Category.store_id == store_id)
        .order_by(Category.name.asc(), Category.id.asc())
        .all()
    )


def create_category(store_id: int, name: str) -> Category:
    def _op():
        clean = _clean_name(name)
        _ensure_name_free(store_id, clean)

        category = Category(store_id=store_id, name=clean)
        db.session.add(category)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("Category already exists", details={"name": clean})
        return category

    return run_with_retry(_op)


def update_category(store_id: int, category_id: int, *, name: str) -> Category:
    def _op():
        category = lock_for_update(
            db.session.query(Category).filter_by(id=category_id, store_id=store_id)
        ).first()
        if category is None:
            raise NotFoundError("Category not found", details={"category_id": category_id})

        clean = _clean_name(name)
        _ensure_name_free(store_id, clean, exclude_id=category.id)
        category.name = clean
        db.session.commit()
        return category

    return run_with_retry(_op)


def delete_category(store_id: int, category_id: int) -> None:
    def _op():
        category = lock_for_update(
            db.session.query(Category).filter_by(id=category_id, store_id=store_id)
        ).first()
        if category is None:
            raise NotFoundError("Category not found", details={"category_id": category_id})

        products = db.session.query(Product.id).filter(Product.category_id == category_id).count()
        solds = db.session.query(SoldRecord.id).filter(SoldRecord.category_id == category_id).count()
        if products or solds:
            raise ConflictError(
                "Category is still in use",
                details={"category_id": category_id, "products": products, "sold_records": solds},
            )

        db.session.delete(category)
        db.session.commit()
        current_app.logger.info("category deleted id=%s store_id=%s", category_id, store_id)

    run_with_retry(_op)
