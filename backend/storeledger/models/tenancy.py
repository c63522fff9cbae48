from __future__ import annotations

from ..extensions import db
from storeledger.time_utils import to_utc_z


class Store(db.Model):
    """
    Store owned by exactly one user.

    MULTI-TENANT: the store is the tenant boundary. Every category, product
    and sold record hangs off a store, and ownership (store.user_id) is the
    authorization check for every mutation.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("user_id", "name", name="uq_stores_user_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", backref=db.backref("stores", lazy=True))
    categories = db.relationship(
        "Category",
        back_populates="store",
        cascade="all, delete-orphan",
        lazy=True,
    )
    products = db.relationship(
        "Product",
        back_populates="store",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r} user_id={self.user_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
