from __future__ import annotations

from ..extensions import db
from storeledger.time_utils import to_utc_z, utcnow


class Category(db.Model):
    """Grouping tag for products within a store."""
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("store_id", "name", name="uq_categories_store_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", back_populates="categories")

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Stocked product and its sales aggregates.

    Static facts (price, capital, quantity, tax, created_at) are written by
    the products service. The derived columns below the divider are owned by
    the recalculation engine and are only ever written through
    ``services.recalculation.apply_recalculation``.

    Money is integer cents; tax is basis points (1000 == 10%).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_store_name", "store_id", "name"),
        db.Index("ix_products_store_category", "store_id", "category_id"),
        db.CheckConstraint("remain_quantity >= 0", name="ck_products_remain_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    price_cents = db.Column(db.BigInteger, nullable=False)
    capital_cents = db.Column(db.BigInteger, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False)
    tax_bps = db.Column(db.Integer, nullable=False, default=0)

    # Date the product entered inventory (client-settable, not insert time)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    # --- derived, recalculation engine only ---
    remain_quantity = db.Column(db.Integer, nullable=False, default=0)
    sold_out_quantity = db.Column(db.Integer, nullable=False, default=0)
    gross_income_cents = db.Column(db.BigInteger, nullable=False, default=0)
    income_cents = db.Column(db.BigInteger, nullable=False, default=0)
    gross_profit_cents = db.Column(db.BigInteger, nullable=False, default=0)
    profit_cents = db.Column(db.BigInteger, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", back_populates="products")
    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    solds = db.relationship(
        "SoldRecord",
        back_populates="product",
        cascade="all, delete-orphan",
        lazy=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "category_id": self.category_id,
            "name": self.name,
            "price_cents": self.price_cents,
            "capital_cents": self.capital_cents,
            "quantity": self.quantity,
            "tax_bps": self.tax_bps,
            "remain_quantity": self.remain_quantity,
            "sold_out_quantity": self.sold_out_quantity,
            "gross_income_cents": self.gross_income_cents,
            "income_cents": self.income_cents,
            "gross_profit_cents": self.gross_profit_cents,
            "profit_cents": self.profit_cents,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
