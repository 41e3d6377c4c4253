"""
Item store: identity lookups and the atomic stock increment.

Everything that touches `items.stock` goes through `increment_stock`, which
issues a single `UPDATE ... SET stock = stock + :delta` instead of a
read-modify-write round trip.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Session

from . import models
from .errors import DuplicateCode, InsufficientStock, InvalidIdentifier, NotFound

logger = logging.getLogger(__name__)


def normalize_id(value: Optional[str]) -> str:
    normalized = (value or "").strip()
    if not normalized:
        raise InvalidIdentifier(value)
    return normalized


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def get_item(db: Session, item_id: Optional[str]) -> Optional[models.InventoryItem]:
    if not item_id or not item_id.strip():
        return None
    return db.get(models.InventoryItem, item_id.strip())


def get_item_by_code(db: Session, code: Optional[str]) -> Optional[models.InventoryItem]:
    normalized = normalize_code(code)
    if not normalized:
        return None
    return (
        db.query(models.InventoryItem)
        .filter(models.InventoryItem.code == normalized)
        .first()
    )


def require_item(db: Session, item_id: Optional[str]) -> models.InventoryItem:
    item = get_item(db, normalize_id(item_id))
    if item is None:
        raise NotFound("Item", item_id)
    return item


def resolve_item(
    db: Session,
    *,
    item_id: Optional[str] = None,
    code: Optional[str] = None,
) -> models.InventoryItem:
    """
    Resolve an item by reference first, then by material code.

    Legacy rows carry no reference, so the code lookup is the bridge that
    keeps them attached to an item.
    """
    item = get_item(db, item_id)
    if item is None:
        item = get_item_by_code(db, code)
    if item is None:
        raise NotFound("Item", item_id or code)
    return item


def list_items(db: Session) -> List[models.InventoryItem]:
    return (
        db.query(models.InventoryItem)
        .order_by(
            models.InventoryItem.name,
            models.InventoryItem.location,
            models.InventoryItem.description,
        )
        .all()
    )


def refresh_stock(db: Session, item: models.InventoryItem) -> Decimal:
    db.refresh(item, attribute_names=["stock"])
    return item.stock


def increment_stock(
    db: Session,
    item_id: str,
    delta: Decimal,
    *,
    allow_negative: bool = False,
) -> None:
    """
    Atomically add a signed delta to an item's stock.

    Decrements carry a `stock + delta >= 0` guard in the same statement, so
    two racing deliveries that both passed their pre-checks cannot take the
    balance below zero; the loser gets `InsufficientStock`.
    """
    if delta == 0:
        return
    item_table = models.InventoryItem
    stmt = (
        sa.update(item_table)
        .where(item_table.id == item_id)
        .values(stock=item_table.stock + delta)
        .execution_options(synchronize_session="fetch")
    )
    if delta < 0 and not allow_negative:
        stmt = stmt.where(item_table.stock + delta >= 0)
    result = db.execute(stmt)
    if result.rowcount:
        logger.debug("stock incremented", extra={"item_id": item_id, "delta": str(delta)})
        return

    current = db.get(item_table, item_id, populate_existing=True)
    if current is None:
        raise NotFound("Item", item_id)
    logger.warning(
        "stock increment rejected by guard",
        extra={"item_id": item_id, "delta": str(delta), "available": str(current.stock)},
    )
    raise InsufficientStock(item_id, -delta, current.stock)


def legacy_filter(model, code: Optional[str]):
    """Rows without an item reference whose snapshot code matches `code`."""
    return sa.and_(
        sa.or_(model.item_id.is_(None), model.item_id == ""),
        sa.func.upper(model.code) == normalize_code(code),
    )


def movement_filter(model, *, item_id: Optional[str], code: Optional[str]):
    """
    Predicate selecting the movements of `model` that resolve to an item.

    Matches by reference when `item_id` is given, OR by the legacy selector on
    `code`. The same predicate drives single-item reads and bulk cascades.
    """
    clauses = []
    if item_id:
        clauses.append(model.item_id == item_id)
    if normalize_code(code):
        clauses.append(legacy_filter(model, code))
    if not clauses:
        return sa.false()
    return sa.or_(*clauses)


def ensure_code_available(db: Session, code: str, *, exclude_id: Optional[str] = None) -> None:
    """Raise `DuplicateCode` when another item already uses `code`."""
    existing = get_item_by_code(db, code)
    if existing is not None and existing.id != exclude_id:
        raise DuplicateCode(normalize_code(code), existing.id)


def insert_item(db: Session, **values) -> models.InventoryItem:
    item = models.InventoryItem(**values)
    db.add(item)
    db.flush()
    return item


def delete_item_row(db: Session, item_id: str) -> None:
    result = db.execute(
        sa.delete(models.InventoryItem)
        .where(models.InventoryItem.id == item_id)
        .execution_options(synchronize_session="fetch")
    )
    if not result.rowcount:
        raise NotFound("Item", item_id)
