from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from . import models, schemas, store


def _entries_for(db: Session, kind: models.MovementKind, item: models.InventoryItem) -> List[schemas.KardexEntry]:
    model = kind.model
    rows = (
        db.query(model)
        .filter(store.movement_filter(model, item_id=item.id, code=item.code))
        .order_by(model.occurred_at, model.id)
        .all()
    )
    return [
        schemas.KardexEntry(
            occurred_at=row.occurred_at,
            direction=kind.direction,
            counterparty=row.counterparty,
            description=row.description,
            notes=row.notes,
            quantity=row.quantity,
            unit=row.unit,
            origin=kind,
            origin_id=row.id,
            synthetic=bool(row.synthetic),
        )
        for row in rows
    ]


def build_kardex(
    db: Session,
    *,
    item_id: Optional[str] = None,
    code: Optional[str] = None,
) -> schemas.KardexRead:
    """Chronological ledger of one item. Read-only."""
    item = store.resolve_item(db, item_id=item_id, code=code)
    entries: List[schemas.KardexEntry] = []
    for kind in models.MovementKind:
        entries.extend(_entries_for(db, kind, item))
    # sorted() is stable: ties keep receipts ahead of deliveries.
    entries = sorted(entries, key=lambda entry: entry.occurred_at)
    return schemas.KardexRead(
        item_id=item.id,
        code=item.code,
        name=item.name,
        stock=item.stock,
        entries=entries,
    )
