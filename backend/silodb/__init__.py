# backend/silodb/__init__.py
"""
silodb: stock ledger backend.

The ORM models live in silodb/apps/*/models.py; importing
`silodb.apps.inventory.models` registers every table on `Base.metadata`.
"""
