"""Create items, receipts and deliveries tables.

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = "a1c3e5f7b9d2"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    return bool(inspect(bind).has_table(table_name))


def _create_movement_table(table_name: str) -> None:
    if _table_exists(table_name):
        return
    op.create_table(
        table_name,
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("item_id", sa.String(length=36), nullable=True),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("unit", sa.String(length=16), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 2), nullable=False),
        sa.Column("counterparty", sa.String(length=128), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column("synthetic", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(f"ix_{table_name}_id", table_name, ["id"])
    op.create_index(f"ix_{table_name}_item_id", table_name, ["item_id"])
    op.create_index(f"ix_{table_name}_code", table_name, ["code"])
    op.create_index(f"ix_{table_name}_occurred_at", table_name, ["occurred_at"])


def upgrade() -> None:
    if not _table_exists("items"):
        op.create_table(
            "items",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("code", sa.String(length=64), nullable=False),
            sa.Column("name", sa.String(length=128), nullable=False),
            sa.Column("description", sa.String(length=255), nullable=False),
            sa.Column("unit", sa.String(length=16), nullable=False),
            sa.Column("stock", sa.Numeric(14, 2), nullable=False, server_default="0"),
            sa.Column("category_id", sa.String(length=36), nullable=True),
            sa.Column("location_id", sa.String(length=36), nullable=True),
            sa.Column("location", sa.String(length=128), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint("code", name="uq_items_code"),
        )
        op.create_index("ix_items_id", "items", ["id"])
        op.create_index("ix_items_code", "items", ["code"])
        op.create_index("ix_items_listing", "items", ["name", "location", "description"])

    _create_movement_table("receipts")
    _create_movement_table("deliveries")


def downgrade() -> None:
    for table_name in ("deliveries", "receipts", "items"):
        if _table_exists(table_name):
            op.drop_table(table_name)
