"""ORM models for the commodity kernel."""

from commodity_kernel.models.audit_log import AuditAction, AuditLog
from commodity_kernel.models.ledger import GroupageLedgerEntry, StoreLedgerEntry
from commodity_kernel.models.reference import (
    Actor,
    ActorStatus,
    Campaign,
    CampaignStatus,
    Store,
    store_campaigns,
)
from commodity_kernel.models.transfer import ProductTransfer


def import_all_models() -> None:
    """Make sure every table, including sequence_counters, is on Base.metadata."""
    import commodity_kernel.services.sequence_service  # noqa: F401


__all__ = [
    "Actor",
    "ActorStatus",
    "AuditAction",
    "AuditLog",
    "Campaign",
    "CampaignStatus",
    "GroupageLedgerEntry",
    "ProductTransfer",
    "Store",
    "StoreLedgerEntry",
    "import_all_models",
    "store_campaigns",
]
