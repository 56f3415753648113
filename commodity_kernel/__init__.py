"""
Commodity Kernel - quantity ledger reconciliation for product transfers.

Keeps the running stock aggregates of an agricultural marketing board
consistent with its transfer records:
- Single-sided GROUPAGE intake ledgers (producer -> OPA)
- Double-entry STANDARD store-to-store ledgers
- Reversible status transitions (pending / validated / cancelled)
- Signed-delta re-basing when a validated transfer's products are edited
"""

__version__ = "0.1.0"
