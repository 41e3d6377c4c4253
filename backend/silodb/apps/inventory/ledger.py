from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from silodb.clock import Clock, resolve_clock

from . import models, schemas, store
from .errors import InsufficientStock, NotFound, SnapshotMismatch

logger = logging.getLogger(__name__)

SNAPSHOT_FIELDS = ("code", "description", "unit")


def _same_text(left: Optional[str], right: Optional[str]) -> bool:
    return (left or "").strip().casefold() == (right or "").strip().casefold()


def ensure_snapshot_matches(item: models.InventoryItem, payload: schemas.MovementCreate) -> None:
    """Reject input built from a stale view of the item."""
    for field in SNAPSHOT_FIELDS:
        expected = getattr(item, field)
        received = getattr(payload, field)
        if not _same_text(expected, received):
            raise SnapshotMismatch(field, expected, received)


def _ensure_can_apply(item: models.InventoryItem, signed_delta: Decimal) -> None:
    if signed_delta >= 0:
        return
    available = item.stock
    if available + signed_delta < 0:
        logger.warning(
            "stock check failed",
            extra={"item_id": item.id, "requested": str(-signed_delta), "available": str(available)},
        )
        raise InsufficientStock(item.id, -signed_delta, available)


def _copy_snapshot(movement, item: models.InventoryItem) -> None:
    movement.item_id = item.id
    movement.code = item.code
    movement.description = item.description
    movement.unit = item.unit


def _requested_item_id(payload: schemas.MovementCreate) -> Optional[str]:
    return (payload.item_id or "").strip() or None


def get_movement(db: Session, kind: models.MovementKind, movement_id: Optional[str]):
    normalized = store.normalize_id(movement_id)
    movement = db.get(kind.model, normalized)
    if movement is None:
        raise NotFound(kind.entity, normalized)
    return movement


def movement_item(db: Session, movement) -> models.InventoryItem:
    return store.resolve_item(db, item_id=movement.item_id, code=movement.code)


def list_movements(
    db: Session,
    kind: models.MovementKind,
    *,
    code: Optional[str] = None,
) -> List:
    model = kind.model
    query = db.query(model)
    if code:
        query = query.filter(model.code == store.normalize_code(code))
    return query.order_by(model.occurred_at.desc(), model.id.desc()).all()


def create_movement(
    db: Session,
    kind: models.MovementKind,
    payload: schemas.MovementCreate,
    *,
    clock: Optional[Clock] = None,
):
    item = store.resolve_item(db, item_id=_requested_item_id(payload), code=payload.code)
    ensure_snapshot_matches(item, payload)

    signed = kind.signed(payload.quantity)
    _ensure_can_apply(item, signed)
    store.increment_stock(db, item.id, signed)

    movement = kind.model(
        occurred_at=resolve_clock(clock).now(),
        quantity=payload.quantity,
        counterparty=payload.counterparty,
        notes=payload.notes,
        synthetic=False,
    )
    _copy_snapshot(movement, item)
    db.add(movement)
    db.flush()
    logger.info(
        "movement created",
        extra={
            "kind": kind.value,
            "movement_id": movement.id,
            "item_id": item.id,
            "quantity": str(payload.quantity),
        },
    )
    return movement


def create_receipt(db: Session, payload: schemas.MovementCreate, *, clock: Optional[Clock] = None) -> models.Receipt:
    return create_movement(db, models.MovementKind.RECEIPT, payload, clock=clock)


def create_delivery(db: Session, payload: schemas.MovementCreate, *, clock: Optional[Clock] = None) -> models.Delivery:
    return create_movement(db, models.MovementKind.DELIVERY, payload, clock=clock)


def update_movement(
    db: Session,
    kind: models.MovementKind,
    movement_id: str,
    payload: schemas.MovementUpdate,
):
    """
    Edit a movement and re-apply its effect on stock.

    When the edit points at another item, the original quantity is reversed
    on the old item and the new quantity applied to the new one. Otherwise
    only the quantity delta is applied. All checks run before the first
    increment is issued.
    """
    movement = get_movement(db, kind, movement_id)
    original = movement_item(db, movement)
    old_quantity = movement.quantity
    new_quantity = payload.quantity

    requested_id = _requested_item_id(payload)
    if requested_id:
        moving = requested_id != original.id
    else:
        moving = not _same_text(original.code, payload.code)

    target = original
    if moving:
        target = store.resolve_item(db, item_id=requested_id, code=payload.code)
        moving = target.id != original.id

    ensure_snapshot_matches(target, payload)

    if moving:
        reversal = -kind.signed(old_quantity)
        applied = kind.signed(new_quantity)
        _ensure_can_apply(original, reversal)
        _ensure_can_apply(target, applied)
        store.increment_stock(db, original.id, reversal)
        store.increment_stock(db, target.id, applied)
        logger.info(
            "movement reassigned",
            extra={
                "kind": kind.value,
                "movement_id": movement.id,
                "from_item_id": original.id,
                "to_item_id": target.id,
            },
        )
    else:
        delta = kind.signed(new_quantity - old_quantity)
        _ensure_can_apply(target, delta)
        store.increment_stock(db, target.id, delta)

    _copy_snapshot(movement, target)
    movement.quantity = new_quantity
    movement.counterparty = payload.counterparty
    movement.notes = payload.notes
    db.add(movement)
    db.flush()
    logger.info(
        "movement updated",
        extra={
            "kind": kind.value,
            "movement_id": movement.id,
            "old_quantity": str(old_quantity),
            "new_quantity": str(new_quantity),
        },
    )
    return movement


def update_receipt(db: Session, receipt_id: str, payload: schemas.MovementUpdate) -> models.Receipt:
    return update_movement(db, models.MovementKind.RECEIPT, receipt_id, payload)


def update_delivery(db: Session, delivery_id: str, payload: schemas.MovementUpdate) -> models.Delivery:
    return update_movement(db, models.MovementKind.DELIVERY, delivery_id, payload)


def delete_movement(db: Session, kind: models.MovementKind, movement_id: str) -> None:
    """
    Remove a movement and reverse exactly the effect it had on stock.

    Removing a delivery always gives stock back; removing a receipt is refused
    when the stock it added has already been consumed.
    """
    movement = get_movement(db, kind, movement_id)
    item = movement_item(db, movement)
    reversal = -kind.signed(movement.quantity)
    _ensure_can_apply(item, reversal)
    store.increment_stock(db, item.id, reversal)
    db.delete(movement)
    db.flush()
    logger.info(
        "movement deleted",
        extra={"kind": kind.value, "movement_id": movement.id, "item_id": item.id},
    )


def delete_receipt(db: Session, receipt_id: str) -> None:
    delete_movement(db, models.MovementKind.RECEIPT, receipt_id)


def delete_delivery(db: Session, delivery_id: str) -> None:
    delete_movement(db, models.MovementKind.DELIVERY, delivery_id)
