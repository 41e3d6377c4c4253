from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time
from decimal import Decimal
from typing import Dict, List, Tuple, Union

from sqlalchemy.orm import Session

from . import models, schemas, store
from .errors import InvalidRange

DateLike = Union[date, datetime]

ZERO = Decimal("0")


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _day(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def report_window(start: DateLike, end: DateLike) -> Tuple[datetime, datetime]:
    """Inclusive window: start of `start`'s day through the last instant of `end`'s day."""
    if _as_datetime(end) < _as_datetime(start):
        raise InvalidRange(start, end)
    return datetime.combine(_day(start), time.min), datetime.combine(_day(end), time.max)


class _Totals:
    """Sums of one movement kind, by reference and by legacy code."""

    def __init__(self) -> None:
        self.by_ref: Dict[str, Decimal] = defaultdict(Decimal)
        self.by_code: Dict[str, Decimal] = defaultdict(Decimal)
        self.synthetic_by_ref: Dict[str, Decimal] = defaultdict(Decimal)
        self.synthetic_by_code: Dict[str, Decimal] = defaultdict(Decimal)

    def add(self, row) -> None:
        reference = (row.item_id or "").strip()
        if reference:
            self.by_ref[reference] += row.quantity
            if row.synthetic:
                self.synthetic_by_ref[reference] += row.quantity
        else:
            code = store.normalize_code(row.code)
            self.by_code[code] += row.quantity
            if row.synthetic:
                self.synthetic_by_code[code] += row.quantity

    def total(self, item: models.InventoryItem) -> Decimal:
        code = store.normalize_code(item.code)
        return self.by_ref.get(item.id, ZERO) + self.by_code.get(code, ZERO)

    def synthetic_total(self, item: models.InventoryItem) -> Decimal:
        code = store.normalize_code(item.code)
        return self.synthetic_by_ref.get(item.id, ZERO) + self.synthetic_by_code.get(code, ZERO)


def _totals(db: Session, kind: models.MovementKind, window_start: datetime, window_end: datetime) -> _Totals:
    model = kind.model
    totals = _Totals()
    rows = (
        db.query(model)
        .filter(model.occurred_at >= window_start, model.occurred_at <= window_end)
        .all()
    )
    for row in rows:
        totals.add(row)
    return totals


def period_report(db: Session, start: DateLike, end: DateLike) -> List[schemas.PeriodReportRow]:
    """
    In/out totals per item over an inclusive date window.

    `stock_after` is the item's current stored balance, not a balance
    recomputed as of `end`.
    """
    window_start, window_end = report_window(start, end)
    items = store.list_items(db)
    receipts = _totals(db, models.MovementKind.RECEIPT, window_start, window_end)
    deliveries = _totals(db, models.MovementKind.DELIVERY, window_start, window_end)

    return [
        schemas.PeriodReportRow(
            item_id=item.id,
            code=item.code,
            name=item.name,
            description=item.description,
            location=item.location,
            unit=item.unit,
            total_in=receipts.total(item),
            total_out=deliveries.total(item),
            total_in_synthetic=receipts.synthetic_total(item),
            total_out_synthetic=deliveries.synthetic_total(item),
            stock_after=item.stock,
        )
        for item in items
    ]
