"""
Keeps the ledger consistent with edits made to items outside the movement
flow: direct stock edits, identity changes and item removal.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Session

from silodb.clock import Clock, resolve_clock

from . import models, schemas, store

logger = logging.getLogger(__name__)

# Counterparty of movements the system writes on the operator's behalf.
UNREGISTERED_ADJUSTMENT_LABEL = "S/R"

IDENTITY_FIELDS = ("code", "description", "unit")


def _identity_changed(before: dict, item: models.InventoryItem) -> bool:
    for field in IDENTITY_FIELDS:
        if (before[field] or "").strip().casefold() != (getattr(item, field) or "").strip().casefold():
            return True
    return False


def record_stock_adjustment(
    db: Session,
    item: models.InventoryItem,
    delta: Decimal,
    *,
    clock: Optional[Clock] = None,
):
    """
    Write the single synthetic movement that explains a stock change made
    without one. Returns it, or None when `delta` is zero.
    """
    if delta == 0:
        return None
    kind = models.MovementKind.RECEIPT if delta > 0 else models.MovementKind.DELIVERY
    movement = kind.model(
        item_id=item.id,
        code=item.code,
        description=item.description,
        unit=item.unit,
        quantity=abs(delta),
        counterparty=UNREGISTERED_ADJUSTMENT_LABEL,
        notes=UNREGISTERED_ADJUSTMENT_LABEL,
        occurred_at=resolve_clock(clock).now(),
        synthetic=True,
    )
    db.add(movement)
    db.flush()
    logger.info(
        "synthetic adjustment recorded",
        extra={"item_id": item.id, "kind": kind.value, "quantity": str(abs(delta))},
    )
    return movement


def propagate_identity(db: Session, item: models.InventoryItem, *, previous_code: str) -> int:
    """
    Rewrite code/description/unit on every movement of `item`.

    Legacy rows are reached through `previous_code` (the code they were keyed
    on) and get anchored to the item's id on the way, so later renames find
    them by reference. Returns the number of rows touched.
    """
    touched = 0
    for kind in models.MovementKind:
        model = kind.model
        result = db.execute(
            sa.update(model)
            .where(store.movement_filter(model, item_id=item.id, code=previous_code))
            .values(
                item_id=item.id,
                code=item.code,
                description=item.description,
                unit=item.unit,
            )
            .execution_options(synchronize_session="fetch")
        )
        touched += result.rowcount or 0
    logger.info(
        "item identity propagated",
        extra={"item_id": item.id, "previous_code": previous_code, "rows": touched},
    )
    return touched


def create_item(db: Session, payload: schemas.ItemCreate) -> models.InventoryItem:
    """Insert an item with its opening stock; no movement is written."""
    code = store.normalize_code(payload.code)
    store.ensure_code_available(db, code)
    item = store.insert_item(
        db,
        code=code,
        name=payload.name,
        description=payload.description,
        unit=payload.unit,
        stock=payload.stock,
        category_id=payload.category_id,
        location_id=payload.location_id,
        location=payload.location,
    )
    logger.info("item created", extra={"item_id": item.id, "code": item.code})
    return item


def update_item(
    db: Session,
    item_id: str,
    payload: schemas.ItemUpdate,
    *,
    clock: Optional[Clock] = None,
) -> models.InventoryItem:
    """
    Direct edit of an item's master values, stock included.

    A stock change is balanced with a synthetic movement; a change of code,
    description or unit is copied onto the item's historical movements.
    """
    item = store.require_item(db, item_id)
    before = {field: getattr(item, field) for field in IDENTITY_FIELDS}
    stock_delta = payload.stock - item.stock
    code = store.normalize_code(payload.code)
    store.ensure_code_available(db, code, exclude_id=item.id)

    item.code = code
    item.name = payload.name
    item.description = payload.description
    item.unit = payload.unit
    item.stock = payload.stock
    item.category_id = payload.category_id
    item.location_id = payload.location_id
    item.location = payload.location
    db.add(item)
    db.flush()

    record_stock_adjustment(db, item, stock_delta, clock=clock)

    if _identity_changed(before, item):
        propagate_identity(db, item, previous_code=before["code"])
    return item


def delete_item(db: Session, item_id: str) -> None:
    """
    Remove an item and every movement resolved to it.

    Movements go first; the item row is deleted only once both tables are
    clean, so a retried call after a partial failure still finds the item.
    """
    item = store.require_item(db, item_id)
    removed = 0
    for kind in models.MovementKind:
        model = kind.model
        result = db.execute(
            sa.delete(model)
            .where(store.movement_filter(model, item_id=item.id, code=item.code))
            .execution_options(synchronize_session="fetch")
        )
        removed += result.rowcount or 0
    store.delete_item_row(db, item.id)
    logger.info("item deleted", extra={"item_id": item.id, "movements_removed": removed})
