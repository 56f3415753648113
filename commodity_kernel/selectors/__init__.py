"""Read-only selectors."""

from commodity_kernel.selectors.ledger_selector import LedgerSelector
from commodity_kernel.selectors.reference_selector import (
    ActorSelector,
    CampaignSelector,
    StoreSelector,
)
from commodity_kernel.selectors.transfer_selector import (
    TransferSelector,
    transfer_from_model,
)

__all__ = [
    "ActorSelector",
    "CampaignSelector",
    "LedgerSelector",
    "StoreSelector",
    "TransferSelector",
    "transfer_from_model",
]
