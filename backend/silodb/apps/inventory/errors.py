"""
Typed failures raised by the stock ledger.

The core never builds HTTP responses; `silodb.main` maps these to status
codes at the boundary.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional


class InventoryError(Exception):
    """Base class for business-rule failures of the ledger."""

    code = "INVENTORY_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail: Dict[str, Any] = detail

    def to_dict(self) -> Dict[str, Any]:
        payload = {"code": self.code, "message": self.message}
        for key, value in self.detail.items():
            payload[key] = str(value) if isinstance(value, Decimal) else value
        return payload


class NotFound(InventoryError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, key: Optional[str]) -> None:
        super().__init__(f"{entity} not found.", entity=entity, key=key)
        self.entity = entity
        self.key = key


class SnapshotMismatch(InventoryError):
    code = "SNAPSHOT_MISMATCH"

    def __init__(self, field: str, expected: Optional[str] = None, received: Optional[str] = None) -> None:
        super().__init__(
            f"{field} does not match the selected item.",
            field=field,
            expected=expected,
            received=received,
        )
        self.field = field


class InsufficientStock(InventoryError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, item_id: str, requested: Decimal, available: Optional[Decimal]) -> None:
        super().__init__(
            "Insufficient stock for this operation.",
            item_id=item_id,
            requested=requested,
            available=available,
        )
        self.item_id = item_id
        self.requested = requested
        self.available = available


class DuplicateCode(InventoryError):
    code = "DUPLICATE_CODE"

    def __init__(self, material_code: str, existing_id: str) -> None:
        super().__init__(
            "Another item already uses this code.",
            material_code=material_code,
            existing_id=existing_id,
        )
        self.material_code = material_code
        self.existing_id = existing_id


class InvalidRange(InventoryError):
    code = "INVALID_RANGE"

    def __init__(self, start: Any, end: Any) -> None:
        super().__init__(
            "End date must be greater than or equal to start date.",
            start=str(start),
            end=str(end),
        )
        self.start = start
        self.end = end


class InvalidIdentifier(InventoryError):
    code = "INVALID_IDENTIFIER"

    def __init__(self, value: Any = None) -> None:
        super().__init__("Identifier is required.", value=value)
        self.value = value
