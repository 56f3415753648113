"""
Quantity Applier -- apply unsigned movements to ledger rows.

Responsibility:
    One applier per topology, sharing ``apply(key, delta, direction)``:

    GroupageQuantityApplier
        ADD upserts the intake row; SUBTRACT decrements it, clamped at
        zero, and is a no-op when the row does not exist.

    StoreQuantityApplier
        Keys are StoreMovementKey pairs.  ``direction`` is applied to the
        receiver row and its opposite to the sender row, so a validated
        STANDARD transfer debits the sender store and credits the receiver
        store, and cancelling it does the reverse.

    TransferLedger routes a transfer's product lines, or the differences
    of a product edit, to the applier matching the transfer variant.

Absent-row rule (both topologies, every call site):
    increment -> create the row with the delta as initial value
    decrement -> no-op when the row does not exist

    A STANDARD cancel therefore re-creates stock in a sender store that
    never had a row, and never creates a row it cannot decrement.

Invariants enforced:
    - Totals never go negative (clamped decrement).
    - Each STANDARD movement touches exactly two rows with opposite
      directions and equal magnitude.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

from commodity_kernel.domain.delta_calculator import ProductDifferences, QualityDelta
from commodity_kernel.domain.ledger_keys import (
    GroupageLedgerKey,
    LedgerBalance,
    LedgerDelta,
    LedgerDirection,
    StoreLedgerKey,
    StoreMovementKey,
)
from commodity_kernel.domain.ports import LedgerRepository
from commodity_kernel.domain.transfers import (
    GroupageTransfer,
    ProductLine,
    StandardTransfer,
    Transfer,
)
from commodity_kernel.logging_config import get_logger

logger = get_logger("services.quantity_applier")

KeyT = TypeVar("KeyT")
RowKeyT = TypeVar("RowKeyT")


@dataclass(frozen=True)
class LedgerMovement:
    """One row-level effect.  ``balance_after`` is None for a skipped decrement."""

    key: GroupageLedgerKey | StoreLedgerKey
    direction: LedgerDirection
    delta: LedgerDelta
    balance_after: LedgerBalance | None

    @property
    def skipped(self) -> bool:
        return self.balance_after is None


def _move(
    repository: LedgerRepository[RowKeyT],
    key: RowKeyT,
    delta: LedgerDelta,
    direction: LedgerDirection,
) -> LedgerMovement:
    if direction is LedgerDirection.ADD:
        balance = repository.upsert_delta(key, delta)
    else:
        balance = repository.subtract_clamped(key, delta)

    movement = LedgerMovement(key=key, direction=direction, delta=delta, balance_after=balance)
    logger.debug(
        "ledger_movement_applied",
        extra={
            "ledger_key": repr(key),
            "direction": direction.value,
            "weight": delta.weight,
            "bags": delta.bags,
            "skipped": movement.skipped,
        },
    )
    return movement


class QuantityApplier(ABC, Generic[KeyT]):
    """Common contract of the per-topology appliers."""

    @abstractmethod
    def apply(
        self, key: KeyT, delta: LedgerDelta, direction: LedgerDirection
    ) -> list[LedgerMovement]:
        ...


class GroupageQuantityApplier(QuantityApplier[GroupageLedgerKey]):
    def __init__(self, repository: LedgerRepository[GroupageLedgerKey]):
        self._repository = repository

    def apply(self, key, delta, direction):
        if delta.is_zero:
            return []
        return [_move(self._repository, key, delta, direction)]


class StoreQuantityApplier(QuantityApplier[StoreMovementKey]):
    def __init__(self, repository: LedgerRepository[StoreLedgerKey]):
        self._repository = repository

    def apply(self, key, delta, direction):
        if delta.is_zero:
            return []
        return [
            _move(self._repository, key.sender, delta, direction.opposite),
            _move(self._repository, key.receiver, delta, direction),
        ]


class TransferLedger:
    """Dispatches transfer-level ledger effects to the topology applier."""

    def __init__(
        self,
        groupage: GroupageQuantityApplier,
        store: StoreQuantityApplier,
    ):
        self._groupage = groupage
        self._store = store

    def _applier_for(self, transfer: Transfer) -> QuantityApplier:
        if isinstance(transfer, GroupageTransfer):
            return self._groupage
        if isinstance(transfer, StandardTransfer):
            return self._store
        raise TypeError(f"Unsupported transfer variant: {type(transfer).__name__}")

    def _apply(
        self,
        transfer: Transfer,
        deltas: Iterable[QualityDelta],
        direction: LedgerDirection,
    ) -> list[LedgerMovement]:
        applier = self._applier_for(transfer)
        movements: list[LedgerMovement] = []
        for item in deltas:
            movements.extend(
                applier.apply(transfer.ledger_key(item.quality), item.delta, direction)
            )
        return movements

    def apply_products(
        self,
        transfer: Transfer,
        products: Iterable[ProductLine],
        direction: LedgerDirection,
    ) -> list[LedgerMovement]:
        """Apply every product line of ``transfer`` in ``direction``."""
        return self._apply(
            transfer,
            (QualityDelta(line.quality, line.as_delta()) for line in products),
            direction,
        )

    def apply_differences(
        self, transfer: Transfer, differences: ProductDifferences
    ) -> list[LedgerMovement]:
        """Apply additions first, then subtractions, so clamping never eats an increase."""
        movements = self._apply(transfer, differences.to_add, LedgerDirection.ADD)
        movements.extend(
            self._apply(transfer, differences.to_subtract, LedgerDirection.SUBTRACT)
        )
        return movements
