from __future__ import annotations

import uuid
from decimal import Decimal

from ..extensions import db
from utang.time_utils import to_utc_z, utcnow


def new_id() -> str:
    return str(uuid.uuid4())


def to_money(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


class Store(db.Model):
    """
    Tenant unit.

    Every customer, item and utang record hangs off exactly one store, and
    a user sees a store only through a StoreMembership row.
    """
    __tablename__ = "stores"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    memberships = db.relationship(
        "StoreMembership", back_populates="store", cascade="all, delete-orphan", passive_deletes=True
    )
    customers = db.relationship(
        "Customer", back_populates="store", cascade="all, delete-orphan", passive_deletes=True
    )
    items = db.relationship(
        "Item", back_populates="store", cascade="all, delete-orphan", passive_deletes=True
    )
    utang_records = db.relationship(
        "UtangRecord", back_populates="store", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def has_member(self, user_id: str | None) -> bool:
        if user_id is None:
            return False
        return any(m.user_id == user_id for m in self.memberships)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class StoreMembership(db.Model):
    """
    Grants a user OWNER or STAFF rights over a store and everything below it.

    One membership per (user, store) pair.
    """
    __tablename__ = "store_users"
    __table_args__ = (
        db.UniqueConstraint("user_id", "store_id", name="uq_store_users_user_store"),
        db.Index("ix_store_users_store_id", "store_id"),
    )

    ROLES = ("OWNER", "STAFF")

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    store_id = db.Column(db.String(36), db.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False)
    role = db.Column(db.String(16), nullable=False, default="STAFF")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    user = db.relationship("User", back_populates="memberships")
    store = db.relationship("Store", back_populates="memberships")

    def __repr__(self) -> str:
        return f"<StoreMembership user_id={self.user_id} store_id={self.store_id} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "storeId": self.store_id,
            "role": self.role,
            "createdAt": to_utc_z(self.created_at),
        }
