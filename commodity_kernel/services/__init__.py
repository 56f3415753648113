"""Write-side services of the commodity kernel."""

from commodity_kernel.services.audit_service import SqlAuditRecorder
from commodity_kernel.services.ledger_repository import (
    SqlGroupageLedgerRepository,
    SqlStoreLedgerRepository,
)
from commodity_kernel.services.quantity_applier import (
    GroupageQuantityApplier,
    LedgerMovement,
    QuantityApplier,
    StoreQuantityApplier,
    TransferLedger,
)
from commodity_kernel.services.sequence_service import SequenceCounter, SequenceService
from commodity_kernel.services.transfer_code_service import (
    TransferCodeGenerator,
    format_transfer_code,
)
from commodity_kernel.services.transfer_repository import (
    SessionUnitOfWork,
    SqlTransferRepository,
)
from commodity_kernel.services.transfer_service import (
    TransferService,
    build_sql_transfer_service,
)

__all__ = [
    "GroupageQuantityApplier",
    "LedgerMovement",
    "QuantityApplier",
    "SequenceCounter",
    "SequenceService",
    "SessionUnitOfWork",
    "SqlAuditRecorder",
    "SqlGroupageLedgerRepository",
    "SqlStoreLedgerRepository",
    "SqlTransferRepository",
    "StoreQuantityApplier",
    "TransferCodeGenerator",
    "TransferLedger",
    "TransferService",
    "build_sql_transfer_service",
    "format_transfer_code",
]
