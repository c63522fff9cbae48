from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Store
from .concurrency import begin_write, lock_for_update, run_with_retry


def _clean_name(name) -> str:
    name = (name or "").strip() if isinstance(name, str) else ""
    if not name:
        raise ValidationError("Store name is required")
    if len(name) > 120:
        raise ValidationError("name exceeds max length 120")
    return name


def _ensure_name_free(user_id: int, name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Store).filter(Store.user_id == user_id, Store.name == name)
    if exclude_id is not None:
        query = query.filter(Store.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("A store with this name already exists", details={"name": name})


def create_store(user_id: int, name: str) -> Store:
    def _op():
        clean = _clean_name(name)
        _ensure_name_free(user_id, clean)

        store = Store(user_id=user_id, name=clean)
        db.session.add(store)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("A store with this name already exists", details={"name": clean})

        current_app.logger.info("store created id=%s user_id=%s", store.id, user_id)
        return store

    return run_with_retry(_op)


def update_store(store_id: int, *, name: str | None = None) -> Store:
    def _op():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise NotFoundError("Store not found", details={"store_id": store_id})

        if name is not None:
            clean = _clean_name(name)
            _ensure_name_free(store.user_id, clean, exclude_id=store.id)
            store.name = clean

        db.session.commit()
        return store

    return run_with_retry(_op)


def delete_store(store_id: int) -> None:
    """Remove a store together with its categories, products and their ledgers."""
    def _op():
        begin_write()
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise NotFoundError("Store not found", details={"store_id": store_id})

        # Store.products and Store.categories cascade, Product.solds cascades;
        # the flush orders sold records, products, categories, store.
        db.session.delete(store)
        db.session.commit()
        current_app.logger.info("store deleted id=%s", store_id)

    run_with_retry(_op)


def get_store(store_id: int) -> Store | None:
    return db.session.query(Store).filter_by(id=store_id).first()


def list_stores_for_user(user_id: int) -> list[Store]:
    return (
        db.session.query(Store)
        .filter(Store.user_id == user_id)
        .order_by(Store.name.asc(), Store.id.asc())
        .all()
    )
