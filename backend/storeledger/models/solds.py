from __future__ import annotations

from ..extensions import db
from storeledger.time_utils import to_iso_date, to_utc_z


class SoldRecord(db.Model):
    """
    One day's sales of one product (a ledger entry).

    category_id is a snapshot of the product's category when the sale was
    entered; it is not kept in sync if the product later moves category.

    income_cents is this entry's gross takings. net_profit_cents is the
    cumulative net profit of the product through this entry's date, not the
    marginal profit of the entry.
    """
    __tablename__ = "sold_records"
    __table_args__ = (
        db.UniqueConstraint(
            "product_id", "category_id", "sold_on",
            name="uq_sold_records_product_category_day",
        ),
        db.Index("ix_sold_records_product_day", "product_id", "sold_on"),
        db.CheckConstraint("total_sold_out > 0", name="ck_sold_records_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    sold_on = db.Column(db.Date, nullable=False, index=True)
    total_sold_out = db.Column(db.Integer, nullable=False)
    income_cents = db.Column(db.BigInteger, nullable=False, default=0)
    net_profit_cents = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", back_populates="solds")
    category = db.relationship("Category")

    def __repr__(self) -> str:
        return (
            f"<SoldRecord id={self.id} product_id={self.product_id} "
            f"sold_on={self.sold_on} total_sold_out={self.total_sold_out}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "category_id": self.category_id,
            "sold_on": to_iso_date(self.sold_on),
            "total_sold_out": self.total_sold_out,
            "income_cents": self.income_cents,
            "net_profit_cents": self.net_profit_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
