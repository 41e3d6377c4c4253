from __future__ import annotations

from decimal import Decimal

import pytest

from silodb.apps.inventory import ledger, models, schemas, store
from silodb.apps.inventory.errors import (
    InsufficientStock,
    InvalidIdentifier,
    NotFound,
    SnapshotMismatch,
)


def _payload(item, quantity, **overrides) -> schemas.MovementCreate:
    values = dict(
        item_id=item.id,
        code=item.code,
        description=item.description,
        unit=item.unit,
        quantity=Decimal(str(quantity)),
        counterparty="Warehouse crew",
        notes=None,
    )
    values.update(overrides)
    return schemas.MovementCreate(**values)


def _stock(db, item) -> Decimal:
    return store.refresh_stock(db, item)


def test_receipt_increments_stock_and_copies_item_snapshot(db_session, make_item, clock):
    item = make_item(stock="10")

    receipt = ledger.create_receipt(
        db_session,
        _payload(item, 5, item_id=None, code="cem-01", description="PORTLAND CEMENT", unit="kg"),
        clock=clock,
    )
    db_session.commit()

    assert _stock(db_session, item) == Decimal("15")
    assert receipt.item_id == item.id
    assert receipt.code == "CEM-01"
    assert receipt.description == "Portland cement"
    assert receipt.unit == "Kg"
    assert receipt.occurred_at == clock.now()
    assert receipt.synthetic is False


def test_delivery_requires_sufficient_stock(db_session, make_item, clock):
    item = make_item(stock="10")

    with pytest.raises(InsufficientStock) as excinfo:
        ledger.create_delivery(db_session, _payload(item, 11), clock=clock)

    assert excinfo.value.requested == Decimal("11")
    assert excinfo.value.available == Decimal("10")
    assert _stock(db_session, item) == Decimal("10")
    assert db_session.query(models.Delivery).count() == 0


def test_delivery_may_consume_all_stock(db_session, make_item, clock):
    item = make_item(stock="4")
    ledger.create_delivery(db_session, _payload(item, 4), clock=clock)
    db_session.commit()
    assert _stock(db_session, item) == Decimal("0")


def test_unknown_item_is_not_found(db_session, make_item, clock):
    item = make_item()
    with pytest.raises(NotFound):
        ledger.create_receipt(
            db_session,
            _payload(item, 1, item_id=None, code="NOPE-99"),
            clock=clock,
        )


def test_stale_snapshot_is_rejected_before_stock_moves(db_session, make_item, clock):
    item = make_item(stock="10")

    with pytest.raises(SnapshotMismatch) as excinfo:
        ledger.create_delivery(db_session, _payload(item, 2, unit="Lt"), clock=clock)

    assert excinfo.value.field == "unit"
    assert _stock(db_session, item) == Decimal("10")


def test_reference_wins_over_code(db_session, make_item, clock):
    first = make_item(code="CEM-01")
    second = make_item(code="SAND-02", description="River sand", unit="Mt3", name="Sand")

    receipt = ledger.create_receipt(
        db_session,
        _payload(second, 3, code="SAND-02"),
        clock=clock,
    )
    db_session.commit()

    assert receipt.item_id == second.id
    assert _stock(db_session, first) == Decimal("10")
    assert _stock(db_session, second) == Decimal("13")


@pytest.mark.parametrize("kind", list(models.MovementKind))
def test_create_then_delete_restores_stock(db_session, make_item, clock, kind):
    item = make_item(stock="10")

    movement = ledger.create_movement(db_session, kind, _payload(item, "2.5"), clock=clock)
    db_session.commit()
    assert _stock(db_session, item) == Decimal("10") + kind.signed(Decimal("2.5"))

    ledger.delete_movement(db_session, kind, movement.id)
    db_session.commit()

    assert _stock(db_session, item) == Decimal("10")
    assert db_session.get(kind.model, movement.id) is None


@pytest.mark.parametrize("kind", list(models.MovementKind))
def test_update_with_same_quantity_leaves_stock(db_session, make_item, clock, kind):
    item = make_item(stock="10")
    movement = ledger.create_movement(db_session, kind, _payload(item, 3), clock=clock)
    db_session.commit()
    before = _stock(db_session, item)

    ledger.update_movement(db_session, kind, movement.id, _payload(item, 3, counterparty="Night shift"))
    db_session.commit()

    assert _stock(db_session, item) == before
    assert movement.counterparty == "Night shift"


def test_delivery_quantity_edit_applies_delta(db_session, make_item, clock):
    item = make_item(stock="10")
    delivery = ledger.create_delivery(db_session, _payload(item, 4), clock=clock)
    db_session.commit()

    ledger.update_delivery(db_session, delivery.id, _payload(item, 7))
    db_session.commit()
    assert _stock(db_session, item) == Decimal("3")

    ledger.update_delivery(db_session, delivery.id, _payload(item, 1))
    db_session.commit()
    assert _stock(db_session, item) == Decimal("9")


def test_delivery_edit_beyond_stock_is_rejected(db_session, make_item, clock):
    item = make_item(stock="10")
    delivery = ledger.create_delivery(db_session, _payload(item, 4), clock=clock)
    db_session.commit()

    with pytest.raises(InsufficientStock):
        ledger.update_delivery(db_session, delivery.id, _payload(item, 11))

    db_session.rollback()
    assert _stock(db_session, item) == Decimal("6")
    assert db_session.get(models.Delivery, delivery.id).quantity == Decimal("4")


def test_receipt_edit_cannot_push_stock_negative(db_session, make_item, clock):
    item = make_item(stock="0")
    receipt = ledger.create_receipt(db_session, _payload(item, 5), clock=clock)
    ledger.create_delivery(db_session, _payload(item, 4), clock=clock)
    db_session.commit()

    with pytest.raises(InsufficientStock):
        ledger.update_receipt(db_session, receipt.id, _payload(item, 1))

    db_session.rollback()
    assert _stock(db_session, item) == Decimal("1")


def test_delivery_moved_to_another_item(db_session, make_item, clock):
    source = make_item(code="CEM-01", stock="10")
    target = make_item(code="SAND-02", description="River sand", unit="Mt3", name="Sand", stock="5")
    delivery = ledger.create_delivery(db_session, _payload(source, 4), clock=clock)
    db_session.commit()

    moved = ledger.update_delivery(db_session, delivery.id, _payload(target, 3))
    db_session.commit()

    assert _stock(db_session, source) == Decimal("10")
    assert _stock(db_session, target) == Decimal("2")
    assert moved.item_id == target.id
    assert moved.code == "SAND-02"
    assert moved.unit == "Mt3"


def test_delivery_move_rejected_when_destination_short(db_session, make_item, clock):
    source = make_item(code="CEM-01", stock="10")
    target = make_item(code="SAND-02", description="River sand", unit="Mt3", name="Sand", stock="1")
    delivery = ledger.create_delivery(db_session, _payload(source, 4), clock=clock)
    db_session.commit()

    with pytest.raises(InsufficientStock):
        ledger.update_delivery(db_session, delivery.id, _payload(target, 3))

    db_session.rollback()
    assert _stock(db_session, source) == Decimal("6")
    assert _stock(db_session, target) == Decimal("1")


def test_receipt_moved_by_code_without_reference(db_session, make_item, clock):
    source = make_item(code="CEM-01", stock="10")
    target = make_item(code="SAND-02", description="River sand", unit="Mt3", name="Sand", stock="5")
    receipt = ledger.create_receipt(db_session, _payload(source, 4), clock=clock)
    db_session.commit()

    moved = ledger.update_receipt(
        db_session,
        receipt.id,
        _payload(target, 2, item_id=None, code="sand-02"),
    )
    db_session.commit()

    assert _stock(db_session, source) == Decimal("10")
    assert _stock(db_session, target) == Decimal("7")
    assert moved.item_id == target.id


def test_update_rewrites_snapshot_from_current_item(db_session, make_item, clock):
    item = make_item(stock="10")
    receipt = ledger.create_receipt(db_session, _payload(item, 1), clock=clock)
    db_session.commit()

    updated = ledger.update_receipt(
        db_session,
        receipt.id,
        _payload(item, 2, description="PORTLAND cement", unit="KG"),
    )

    assert updated.description == "Portland cement"
    assert updated.unit == "Kg"


def test_receipt_delete_refused_once_consumed(db_session, make_item, clock):
    item = make_item(stock="0")
    receipt = ledger.create_receipt(db_session, _payload(item, 5), clock=clock)
    ledger.create_delivery(db_session, _payload(item, 4), clock=clock)
    db_session.commit()

    with pytest.raises(InsufficientStock):
        ledger.delete_receipt(db_session, receipt.id)

    db_session.rollback()
    assert _stock(db_session, item) == Decimal("1")
    assert db_session.get(models.Receipt, receipt.id) is not None


def test_legacy_row_resolves_through_code(db_session, make_item, clock):
    item = make_item(stock="10")
    legacy = models.Receipt(
        item_id=None,
        code="cem-01",
        description="Portland cement",
        unit="Kg",
        quantity=Decimal("3"),
        counterparty="Old system",
        occurred_at=clock.now(),
    )
    db_session.add(legacy)
    db_session.commit()

    ledger.delete_receipt(db_session, legacy.id)
    db_session.commit()

    assert _stock(db_session, item) == Decimal("7")


def test_blank_identifier_is_rejected(db_session):
    with pytest.raises(InvalidIdentifier):
        ledger.delete_delivery(db_session, "   ")


def test_missing_movement_is_not_found(db_session):
    with pytest.raises(NotFound) as excinfo:
        ledger.update_receipt(
            db_session,
            "does-not-exist",
            schemas.MovementUpdate(
                code="CEM-01",
                description="Portland cement",
                unit="Kg",
                quantity=Decimal("1"),
                counterparty="x",
            ),
        )
    assert excinfo.value.entity == "Receipt"


def test_list_movements_filters_by_code(db_session, make_item, clock):
    cement = make_item(code="CEM-01")
    sand = make_item(code="SAND-02", description="River sand", unit="Mt3", name="Sand")
    ledger.create_receipt(db_session, _payload(cement, 1), clock=clock)
    clock.advance(minutes=5)
    ledger.create_receipt(db_session, _payload(sand, 2), clock=clock)
    clock.advance(minutes=5)
    ledger.create_receipt(db_session, _payload(cement, 3), clock=clock)
    db_session.commit()

    rows = ledger.list_movements(db_session, models.MovementKind.RECEIPT, code="cem-01")

    assert [row.quantity for row in rows] == [Decimal("3"), Decimal("1")]
