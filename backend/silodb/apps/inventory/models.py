from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declared_attr

from silodb.database import Base
from silodb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


QUANTITY = Numeric(14, 2, asdecimal=True)


class InventoryItem(Base):
    __tablename__ = "items"
    __table_args__ = (
        UniqueConstraint("code", name="uq_items_code"),
        Index("ix_items_listing", "name", "location", "description"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    code = Column(String(64), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    description = Column(String(255), nullable=False)
    unit = Column(String(16), nullable=False)
    stock = Column(QUANTITY, nullable=False, default=Decimal("0"))

    category_id = Column(String(36), nullable=True)
    location_id = Column(String(36), nullable=True)
    location = Column(String(128), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} code={self.code} stock={self.stock}>"


class MovementMixin:
    """
    Shared record shape of receipts and deliveries.

    `item_id` is empty on legacy rows; those resolve to an item through the
    snapshot `code`.
    """

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    item_id = Column(String(36), nullable=True, index=True)

    code = Column(String(64), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    unit = Column(String(16), nullable=False)

    quantity = Column(QUANTITY, nullable=False)
    counterparty = Column(String(128), nullable=False)
    notes = Column(Text, nullable=True)
    occurred_at = Column(DateTime, nullable=False)
    synthetic = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    @declared_attr
    def __table_args__(cls):
        return (Index(f"ix_{cls.__tablename__}_occurred_at", "occurred_at"),)

    @property
    def kind(self) -> "MovementKind":
        return MovementKind.for_model(type(self))

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} id={self.id} item_id={self.item_id} "
            f"code={self.code} quantity={self.quantity} synthetic={self.synthetic}>"
        )


class Receipt(MovementMixin, Base):
    __tablename__ = "receipts"


class Delivery(MovementMixin, Base):
    __tablename__ = "deliveries"


class MovementKind(str, enum.Enum):
    RECEIPT = "RECEIPT"
    DELIVERY = "DELIVERY"

    @property
    def sign(self) -> int:
        return 1 if self is MovementKind.RECEIPT else -1

    @property
    def model(self):
        return Receipt if self is MovementKind.RECEIPT else Delivery

    @property
    def direction(self) -> str:
        return "IN" if self is MovementKind.RECEIPT else "OUT"

    @property
    def entity(self) -> str:
        return "Receipt" if self is MovementKind.RECEIPT else "Delivery"

    @classmethod
    def for_model(cls, model) -> "MovementKind":
        return cls.RECEIPT if model is Receipt else cls.DELIVERY

    def signed(self, quantity: Decimal) -> Decimal:
        return quantity if self.sign > 0 else -quantity
