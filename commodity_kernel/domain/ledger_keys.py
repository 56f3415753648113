"""
Ledger key space -- the business dimensions that address an aggregate row.

Two independent aggregate tables exist, one per movement topology:

    GROUPAGE  (actor_id, campaign_id, opa_id, quality[, parcel_id])
              single-sided intake credited to a receiving OPA from a
              sending actor.
    STANDARD  (store_id, actor_id, campaign_id, quality)
              stock held by an actor in a store; STANDARD transfers move
              quantity between two such rows.

Rows are addressed by these keys, never by transfer id: many transfers
contribute to the same row, and a row's value is the sum of the
contributions of the currently validated transfers.

Everything here is pure and immutable.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class LedgerDirection(str, Enum):
    """Direction of a quantity movement on a ledger row."""

    ADD = "add"
    SUBTRACT = "subtract"

    @property
    def opposite(self) -> LedgerDirection:
        if self is LedgerDirection.ADD:
            return LedgerDirection.SUBTRACT
        return LedgerDirection.ADD


@dataclass(frozen=True)
class LedgerDelta:
    """
    Unsigned quantity magnitude.  The sign lives in LedgerDirection.

    Raises:
        ValueError: if weight or bags is negative.
    """

    weight: Decimal
    bags: int

    def __post_init__(self) -> None:
        if not isinstance(self.weight, Decimal):
            object.__setattr__(self, "weight", Decimal(str(self.weight)))
        if self.weight < 0:
            raise ValueError(f"Ledger delta weight must be non-negative, got {self.weight}")
        if self.bags < 0:
            raise ValueError(f"Ledger delta bags must be non-negative, got {self.bags}")

    @property
    def is_zero(self) -> bool:
        return self.weight == 0 and self.bags == 0


@dataclass(frozen=True)
class LedgerBalance:
    """Running totals of one ledger row."""

    total_weight: Decimal
    total_bags: int

    @classmethod
    def zero(cls) -> LedgerBalance:
        return cls(total_weight=Decimal("0"), total_bags=0)

    def plus(self, delta: LedgerDelta) -> LedgerBalance:
        return LedgerBalance(
            total_weight=self.total_weight + delta.weight,
            total_bags=self.total_bags + delta.bags,
        )

    def minus_clamped(self, delta: LedgerDelta) -> LedgerBalance:
        """Subtract field by field, flooring each total at zero."""
        return LedgerBalance(
            total_weight=max(self.total_weight - delta.weight, Decimal("0")),
            total_bags=max(self.total_bags - delta.bags, 0),
        )


@dataclass(frozen=True)
class GroupageLedgerKey:
    """
    Key of a GROUPAGE intake row.

    ``actor_id`` is the sending actor, ``opa_id`` the receiving OPA.
    Rows written by transfers always have ``parcel_id`` None; parcel-scoped
    rows belong to other subsystems.
    """

    actor_id: UUID
    campaign_id: UUID
    opa_id: UUID
    quality: str
    parcel_id: UUID | None = None


@dataclass(frozen=True)
class StoreLedgerKey:
    """Key of a STANDARD store stock row."""

    store_id: UUID
    actor_id: UUID
    campaign_id: UUID
    quality: str


@dataclass(frozen=True)
class StoreMovementKey:
    """
    The pair of store rows a STANDARD movement touches.

    Applying a movement in direction D applies D to ``receiver`` and the
    opposite of D to ``sender``.
    """

    sender: StoreLedgerKey
    receiver: StoreLedgerKey

    @property
    def quality(self) -> str:
        return self.receiver.quality
