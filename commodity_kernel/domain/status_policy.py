"""
Status Transition Policy -- lifecycle state machine and editability rules.

    From \\ To  | pending   | validated | cancelled
    -----------+-----------+-----------+----------
    pending    | no-op     | ADD       | no-op
    validated  | rejected  | no-op     | SUBTRACT
    cancelled  | rejected  | ADD       | no-op

Only validated transfers have a ledger contribution, so ADD/SUBTRACT mark
exactly the transitions into and out of ``validated``.  Cancelling a
pending transfer reverses nothing.

Editability (checked before any edit):
    cancelled  no field may change
    validated  only the product list may change (delta path)
    pending    anything may change, no ledger effect
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from uuid import UUID

from commodity_kernel.domain.ledger_keys import LedgerDirection
from commodity_kernel.domain.transfers import TransferStatus
from commodity_kernel.exceptions import (
    InvalidStatusTransitionError,
    TransferNotEditableError,
    ValidatedTransferLimitedEditError,
)

_P = TransferStatus.PENDING
_V = TransferStatus.VALIDATED
_C = TransferStatus.CANCELLED

# (from, to) -> ledger effect; absent pairs are rejected
_TRANSITIONS: dict[tuple[TransferStatus, TransferStatus], LedgerDirection | None] = {
    (_P, _P): None,
    (_P, _V): LedgerDirection.ADD,
    (_P, _C): None,
    (_V, _V): None,
    (_V, _C): LedgerDirection.SUBTRACT,
    (_C, _V): LedgerDirection.ADD,
    (_C, _C): None,
}


@dataclass(frozen=True)
class TransitionDecision:
    from_status: TransferStatus
    to_status: TransferStatus
    effect: LedgerDirection | None

    @property
    def is_noop(self) -> bool:
        return self.from_status == self.to_status


def resolve_transition(
    from_status: TransferStatus,
    to_status: TransferStatus | str,
    transfer_id: UUID | None = None,
) -> TransitionDecision:
    """
    Decide the ledger effect of a status change.

    Raises:
        InvalidStatusTransitionError: pair not in the table, or an unknown
            target status.
    """
    try:
        target = TransferStatus(to_status)
    except ValueError:
        raise InvalidStatusTransitionError(
            transfer_id, from_status.value, str(to_status)
        ) from None

    key = (from_status, target)
    if key not in _TRANSITIONS:
        raise InvalidStatusTransitionError(transfer_id, from_status.value, target.value)
    return TransitionDecision(from_status, target, _TRANSITIONS[key])


def ensure_editable(
    status: TransferStatus,
    changed_fields: Collection[str],
    transfer_id: UUID | None = None,
) -> None:
    """
    Enforce the editability rules for a set of changed field names.

    An empty change set is always accepted, except on cancelled transfers
    where no edit request is accepted at all.

    Raises:
        TransferNotEditableError: cancelled transfer.
        ValidatedTransferLimitedEditError: validated transfer with a
            non-product field in ``changed_fields``.
    """
    if status is TransferStatus.CANCELLED:
        raise TransferNotEditableError(transfer_id, status.value)
    if status is TransferStatus.VALIDATED:
        forbidden = [name for name in changed_fields if name != "products"]
        if forbidden:
            raise ValidatedTransferLimitedEditError(transfer_id, forbidden)
