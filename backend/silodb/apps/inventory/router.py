from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from silodb.database import get_db, get_read_db

from . import kardex, ledger, models, reconciliation, reports, schemas, store
from .errors import NotFound

router = APIRouter(prefix="", tags=["inventory"])


# ---------------------------------------------------------------------------
# ITEMS
# ---------------------------------------------------------------------------

@router.get("/items", response_model=List[schemas.ItemRead])
def list_items(db: Session = Depends(get_read_db)):
    return store.list_items(db)


@router.get("/items/by-code/{code}", response_model=schemas.ItemRead)
def get_item_by_code(code: str, db: Session = Depends(get_read_db)):
    item = store.get_item_by_code(db, code)
    if item is None:
        raise NotFound("Item", code)
    return item


@router.get("/items/{item_id}", response_model=schemas.ItemRead)
def get_item(item_id: str, db: Session = Depends(get_read_db)):
    return store.require_item(db, item_id)


@router.post("/items", response_model=schemas.ItemRead, status_code=status.HTTP_201_CREATED)
def create_item(payload: schemas.ItemCreate, db: Session = Depends(get_db)):
    item = reconciliation.create_item(db, payload)
    db.commit()
    db.refresh(item)
    return item


@router.put("/items/{item_id}", response_model=schemas.ItemRead)
def update_item(item_id: str, payload: schemas.ItemUpdate, db: Session = Depends(get_db)):
    item = reconciliation.update_item(db, item_id, payload)
    db.commit()
    db.refresh(item)
    return item


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(item_id: str, db: Session = Depends(get_db)):
    reconciliation.delete_item(db, item_id)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# MOVEMENTS
# ---------------------------------------------------------------------------

def _register_movement_routes(kind: models.MovementKind, path: str) -> None:
    def list_rows(code: Optional[str] = None, db: Session = Depends(get_read_db)):
        return ledger.list_movements(db, kind, code=code)

    def create_row(payload: schemas.MovementCreate, db: Session = Depends(get_db)):
        movement = ledger.create_movement(db, kind, payload)
        db.commit()
        db.refresh(movement)
        return movement

    def update_row(movement_id: str, payload: schemas.MovementUpdate, db: Session = Depends(get_db)):
        movement = ledger.update_movement(db, kind, movement_id, payload)
        db.commit()
        db.refresh(movement)
        return movement

    def delete_row(movement_id: str, db: Session = Depends(get_db)):
        ledger.delete_movement(db, kind, movement_id)
        db.commit()
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    router.add_api_route(
        path,
        list_rows,
        methods=["GET"],
        response_model=List[schemas.MovementRead],
        name=f"list_{path.strip('/')}",
    )
    router.add_api_route(
        path,
        create_row,
        methods=["POST"],
        response_model=schemas.MovementRead,
        status_code=status.HTTP_201_CREATED,
        name=f"create_{kind.value.lower()}",
    )
    router.add_api_route(
        f"{path}/{{movement_id}}",
        update_row,
        methods=["PUT"],
        response_model=schemas.MovementRead,
        name=f"update_{kind.value.lower()}",
    )
    router.add_api_route(
        f"{path}/{{movement_id}}",
        delete_row,
        methods=["DELETE"],
        status_code=status.HTTP_204_NO_CONTENT,
        name=f"delete_{kind.value.lower()}",
    )


_register_movement_routes(models.MovementKind.RECEIPT, "/receipts")
_register_movement_routes(models.MovementKind.DELIVERY, "/deliveries")


# ---------------------------------------------------------------------------
# READ MODELS
# ---------------------------------------------------------------------------

@router.get("/kardex", response_model=schemas.KardexRead)
def get_kardex(
    code: Optional[str] = None,
    item_id: Optional[str] = None,
    db: Session = Depends(get_read_db),
):
    return kardex.build_kardex(db, item_id=item_id, code=code)


@router.get("/reports/period", response_model=List[schemas.PeriodReportRow])
def get_period_report(
    start: date = Query(...),
    end: date = Query(...),
    db: Session = Depends(get_read_db),
):
    return reports.period_report(db, start, end)
