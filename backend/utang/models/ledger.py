from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from .tenancy import new_id, to_money
from utang.time_utils import to_utc_z, utcnow


class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    store_id = db.Column(db.String(36), db.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    store = db.relationship("Store", back_populates="customers")
    utang_records = db.relationship(
        "UtangRecord", back_populates="customer", cascade="all, delete-orphan", passive_deletes=True
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "storeId": self.store_id,
            "name": self.name,
            "phone": self.phone,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Item(db.Model):
    """
    Inventory item sold on credit.

    Line items keep their own unit price snapshot, so changing `price`
    never rewrites existing utang records.
    """
    __tablename__ = "items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    store_id = db.Column(db.String(36), db.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    category = db.Column(db.String(64), nullable=True, index=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    unit = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    store = db.relationship("Store", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "storeId": self.store_id,
            "name": self.name,
            "category": self.category,
            "price": to_money(self.price),
            "stock": self.stock,
            "unit": self.unit,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class UtangRecord(db.Model):
    """
    Goods given to a customer on credit.

    `status` is set by clients and is not state-machine enforced.
    """
    __tablename__ = "utang"
    __table_args__ = (
        db.Index("ix_utang_store_status", "store_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    store_id = db.Column(db.String(36), db.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = db.Column(db.String(36), db.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.String(32), nullable=False, default="UNPAID")
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    store = db.relationship("Store", back_populates="utang_records")
    customer = db.relationship("Customer", back_populates="utang_records")
    line_items = db.relationship(
        "UtangLineItem", back_populates="utang", cascade="all, delete-orphan", passive_deletes=True
    )
    payments = db.relationship(
        "Payment", back_populates="utang", cascade="all, delete-orphan", passive_deletes=True, lazy="selectin"
    )

    @property
    def paid_amount(self) -> Decimal:
        return sum((p.amount for p in self.payments), Decimal("0"))

    def to_dict(self) -> dict:
        paid = self.paid_amount
        return {
            "id": self.id,
            "storeId": self.store_id,
            "customerId": self.customer_id,
            "description": self.description,
            "totalAmount": to_money(self.total_amount),
            "status": self.status,
            "dueDate": to_utc_z(self.due_date),
            "paidAmount": to_money(paid),
            "balance": to_money(self.total_amount - paid) if self.total_amount is not None else None,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class UtangLineItem(db.Model):
    __tablename__ = "utang_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    utang_id = db.Column(db.String(36), db.ForeignKey("utang.id", ondelete="CASCADE"), nullable=False, index=True)
    # No ON DELETE action: an item still referenced by a line item cannot be deleted
    item_id = db.Column(db.String(36), db.ForeignKey("items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)

    utang = db.relationship("UtangRecord", back_populates="line_items")
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "utangId": self.utang_id,
            "itemId": self.item_id,
            "quantity": self.quantity,
            "unitPrice": to_money(self.unit_price),
        }


class Payment(db.Model):
    __tablename__ = "payments"

    METHODS = ("CASH", "EWALLET", "BANK_TRANSFER")

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    utang_id = db.Column(db.String(36), db.ForeignKey("utang.id", ondelete="CASCADE"), nullable=False, index=True)
    payer_name = db.Column(db.String(120), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)
    payment_reference = db.Column(db.String(128), nullable=True)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    utang = db.relationship("UtangRecord", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "utangId": self.utang_id,
            "payerName": self.payer_name,
            "amount": to_money(self.amount),
            "paymentMethod": self.payment_method,
            "paymentReference": self.payment_reference,
            "paymentDate": to_utc_z(self.payment_date),
        }
