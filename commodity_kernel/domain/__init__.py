"""
Pure domain layer.

Transfer records, ledger keys, the delta calculator, the status
transition policy and the collaborator ports.  No ORM, no database,
no I/O; time only through the injected Clock.
"""

from commodity_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from commodity_kernel.domain.delta_calculator import (
    COUPLED,
    INDEPENDENT,
    CoupledDeltaPolicy,
    DeltaPolicy,
    IndependentDeltaPolicy,
    ProductDifferences,
    QualityDelta,
    calculate_product_differences,
    describe_product_changes,
    get_delta_policy,
)
from commodity_kernel.domain.ledger_keys import (
    GroupageLedgerKey,
    LedgerBalance,
    LedgerDelta,
    LedgerDirection,
    StoreLedgerKey,
    StoreMovementKey,
)
from commodity_kernel.domain.status_policy import (
    TransitionDecision,
    ensure_editable,
    resolve_transition,
)
from commodity_kernel.domain.transfers import (
    AuditContext,
    DriverInfo,
    GroupageTransfer,
    ProductLine,
    StandardTransfer,
    Transfer,
    TransferDraft,
    TransferFilters,
    TransferPage,
    TransferQuery,
    TransferStatus,
    TransferType,
    TransferUpdate,
    build_transfer,
    validate_products,
)

__all__ = [
    "AuditContext",
    "COUPLED",
    "Clock",
    "CoupledDeltaPolicy",
    "DeltaPolicy",
    "DeterministicClock",
    "DriverInfo",
    "GroupageLedgerKey",
    "GroupageTransfer",
    "INDEPENDENT",
    "IndependentDeltaPolicy",
    "LedgerBalance",
    "LedgerDelta",
    "LedgerDirection",
    "ProductDifferences",
    "ProductLine",
    "QualityDelta",
    "StandardTransfer",
    "StoreLedgerKey",
    "StoreMovementKey",
    "SystemClock",
    "Transfer",
    "TransferDraft",
    "TransferFilters",
    "TransferPage",
    "TransferQuery",
    "TransferStatus",
    "TransferType",
    "TransferUpdate",
    "TransitionDecision",
    "build_transfer",
    "calculate_product_differences",
    "describe_product_changes",
    "ensure_editable",
    "get_delta_policy",
    "resolve_transition",
    "validate_products",
]
