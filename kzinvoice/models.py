from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Index
from sqlalchemy.ext.hybrid import hybrid_property

from kzinvoice.database import db
from kzinvoice.utils.number_to_words import amount_to_words


# Shared column definitions for money/quantity types to keep consistent precision.
MONEY = db.Numeric(precision=12, scale=2, asdecimal=True)
QUANTITY = db.Numeric(precision=10, scale=2, asdecimal=True)

DEFAULT_CONTRACT = "Без договора"


def _to_decimal(value, default: Decimal = Decimal("0")) -> Decimal:
    """Best-effort conversion that keeps operations safe even with None/float inputs."""
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (ArithmeticError, ValueError, TypeError):
        return default


class TimestampMixin:
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )


class InvoiceStatus(enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"


class ImagePosition(enum.Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class Supplier(TimestampMixin, db.Model):
    __tablename__ = "suppliers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    bin = db.Column(db.String(12), nullable=False)  # БИН/ИИН
    address = db.Column(db.Text, nullable=False)
    bank = db.Column(db.String(255), nullable=False)
    bik = db.Column(db.String(32), nullable=False)
    iik = db.Column(db.String(34), nullable=False)
    kbe = db.Column(db.String(8))
    payment_code = db.Column(db.String(8))

    invoices = db.relationship("Invoice", back_populates="supplier", lazy="select")

    __table_args__ = (Index("ix_suppliers_bin", "bin"),)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "bin": self.bin,
            "address": self.address,
            "bank": self.bank,
            "bik": self.bik,
            "iik": self.iik,
            "kbe": self.kbe,
            "payment_code": self.payment_code,
        }


class Buyer(TimestampMixin, db.Model):
    __tablename__ = "buyers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    bin = db.Column(db.String(12), nullable=False)
    address = db.Column(db.Text, nullable=False)

    invoices = db.relationship("Invoice", back_populates="buyer", lazy="select")

    __table_args__ = (Index("ix_buyers_bin", "bin"),)

    def as_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "bin": self.bin, "address": self.address}


class Invoice(TimestampMixin, db.Model):
    __tablename__ = "invoices"

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    buyer_id = db.Column(db.Integer, db.ForeignKey("buyers.id"), nullable=False, index=True)
    invoice_number = db.Column(db.String(64), nullable=False)
    invoice_date = db.Column(db.Date, nullable=False, default=date.today)
    contract = db.Column(db.String(255), nullable=False, default=DEFAULT_CONTRACT)
    status = db.Column(
        db.Enum(InvoiceStatus, name="invoice_status"),
        nullable=False,
        default=InvoiceStatus.DRAFT,
        index=True,
    )
    total_amount = db.Column(MONEY, nullable=False, default=0)
    total_amount_words = db.Column(db.String(512), nullable=False, default="")

    supplier = db.relationship("Supplier", back_populates="invoices")
    buyer = db.relationship("Buyer", back_populates="invoices")
    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.sort_order",
        lazy="select",
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_invoice_total_non_negative"),
        Index("ix_invoices_invoice_date", "invoice_date"),
    )

    def recalculate_totals(self) -> Decimal:
        """Recalculate the total from current items and refresh the amount in words."""
        for item in self.items:
            item.refresh_total()
        self.total_amount = sum((_to_decimal(item.total) for item in self.items), Decimal("0"))
        self.total_amount_words = amount_to_words(self.total_amount)
        return self.total_amount

    def add_item(
        self,
        *,
        name: str,
        quantity: float | Decimal = 1,
        unit: str = "шт",
        price: float | Decimal = 0,
        sort_order: Optional[int] = None,
    ) -> "InvoiceItem":
        """Helper to append an invoice line with sane defaults."""
        if sort_order is None:
            sort_order = len(self.items or [])
        item = InvoiceItem(
            name=name,
            quantity=_to_decimal(quantity),
            unit=unit,
            price=_to_decimal(price),
            sort_order=sort_order,
        )
        item.refresh_total()
        self.items.append(item)
        return item


class InvoiceItem(db.Model):
    __tablename__ = "invoice_items"

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(QUANTITY, nullable=False, default=1)
    unit = db.Column(db.String(32), nullable=False, default="шт")
    price = db.Column(MONEY, nullable=False, default=0)
    total = db.Column(MONEY, nullable=False, default=0)
    sort_order = db.Column(db.Integer, default=0)

    invoice = db.relationship("Invoice", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_invoice_items_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_invoice_items_price_non_negative"),
    )

    @hybrid_property
    def computed_total(self) -> Decimal:
        return (_to_decimal(self.quantity) * _to_decimal(self.price)).quantize(Decimal("0.01"))

    @computed_total.expression
    def computed_total(cls):
        return cls.quantity * cls.price

    def refresh_total(self) -> Decimal:
        self.total = self.computed_total
        return self.total


class SignatureSettings(db.Model):
    """Singleton row describing where signature and stamp images go on the PDF."""

    __tablename__ = "signature_settings"

    id = db.Column(db.Integer, primary_key=True)
    signature_path = db.Column(db.String(512))
    signature_width = db.Column(db.Integer, nullable=False, default=200)
    signature_height = db.Column(db.Integer, nullable=False, default=70)
    signature_position = db.Column(
        db.Enum(ImagePosition, name="signature_position"),
        nullable=False,
        default=ImagePosition.RIGHT,
    )
    stamp_path = db.Column(db.String(512))
    stamp_size = db.Column(db.Integer, nullable=False, default=100)
    stamp_position = db.Column(
        db.Enum(ImagePosition, name="stamp_position"),
        nullable=False,
        default=ImagePosition.LEFT,
    )
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @classmethod
    def get_singleton(cls) -> Optional["SignatureSettings"]:
        """Return the single settings row (or None if not yet created)."""
        return cls.query.first()

    def as_dict(self) -> dict:
        return {
            "signature_path": self.signature_path,
            "signature_width": self.signature_width,
            "signature_height": self.signature_height,
            "signature_position": self.signature_position.value if self.signature_position else None,
            "stamp_path": self.stamp_path,
            "stamp_size": self.stamp_size,
            "stamp_position": self.stamp_position.value if self.stamp_position else None,
        }
