"""
Inventory module.

Stock ledger for silo items: receipts, deliveries, reconciliation of direct
stock edits, kardex and period reports.
"""

from .router import router  # noqa: F401
from . import models  # noqa: F401
