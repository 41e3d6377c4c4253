from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from . import models


class ItemBase(BaseModel):
    code: str
    name: str
    description: str
    unit: str
    stock: Decimal = Field(Decimal("0"), ge=0)
    category_id: Optional[str] = None
    location_id: Optional[str] = None
    location: Optional[str] = None


class ItemCreate(ItemBase):
    pass


class ItemUpdate(ItemBase):
    pass


class ItemRead(ItemBase):
    id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MovementCreate(BaseModel):
    """
    Operator input for a receipt or delivery.

    `code`, `description` and `unit` are what the client believes the item
    currently looks like; they must match the resolved item.
    """

    item_id: Optional[str] = None
    code: str
    description: str
    unit: str
    quantity: Decimal = Field(..., gt=0)
    counterparty: str
    notes: Optional[str] = None


class MovementUpdate(MovementCreate):
    pass


class MovementRead(BaseModel):
    id: str
    item_id: Optional[str] = None
    code: str
    description: str
    unit: str
    quantity: Decimal
    counterparty: str
    notes: Optional[str] = None
    occurred_at: datetime
    synthetic: bool
    created_at: datetime

    class Config:
        from_attributes = True


class KardexEntry(BaseModel):
    occurred_at: datetime
    direction: str
    counterparty: str
    description: str
    notes: Optional[str] = None
    quantity: Decimal
    unit: str
    origin: models.MovementKind
    origin_id: str
    synthetic: bool


class KardexRead(BaseModel):
    item_id: str
    code: str
    name: str
    stock: Decimal
    entries: List[KardexEntry] = Field(default_factory=list)


class PeriodReportRow(BaseModel):
    item_id: str
    code: str
    name: str
    description: str
    location: Optional[str] = None
    unit: str
    total_in: Decimal = Decimal("0")
    total_out: Decimal = Decimal("0")
    total_in_synthetic: Decimal = Decimal("0")
    total_out_synthetic: Decimal = Decimal("0")
    stock_after: Decimal
