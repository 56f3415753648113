"""
Transfer records -- pure value objects for product transfers.

Responsibility:
    Defines the transfer lifecycle enums, the product line and driver
    metadata value objects, and the two transfer variants.  A GROUPAGE
    transfer is single-sided intake from a producer to an OPA; a STANDARD
    transfer is a double-entry movement between two tracked stores.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - StandardTransfer cannot be constructed without ``sender_store_id``;
      the type, not a runtime branch, carries that rule.
    - ``validate_products`` is the single gate for product lists entering
      the system: non-empty, unique qualities, strictly positive weight and
      bag count, weight with at most two decimals.
    - Every transfer variant knows how to address its own ledger rows via
      ``ledger_key(quality)``.

Failure modes:
    - SenderStoreRequiredError from ``build_transfer`` for STANDARD without
      a sender store.
    - ProductsRequiredError / DuplicateProductQualityError /
      InvalidProductLineError from ``validate_products``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar
from uuid import UUID

from commodity_kernel.domain.ledger_keys import (
    GroupageLedgerKey,
    LedgerDelta,
    StoreLedgerKey,
    StoreMovementKey,
)
from commodity_kernel.exceptions import (
    DuplicateProductQualityError,
    InvalidProductLineError,
    ProductsRequiredError,
    SenderStoreRequiredError,
)

QUALITY_MAX_LENGTH = 100
_WEIGHT_QUANTUM = Decimal("0.01")


class TransferType(str, Enum):
    """Movement topology of a transfer."""

    GROUPAGE = "GROUPAGE"
    STANDARD = "STANDARD"


class TransferStatus(str, Enum):
    """
    Lifecycle status of a transfer.

    Only ``validated`` transfers contribute to the ledger.
    """

    PENDING = "pending"
    VALIDATED = "validated"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProductLine:
    """One quality of commodity in a transfer."""

    quality: str
    weight: Decimal
    number_of_bags: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "quality", str(self.quality).strip())
        if not isinstance(self.weight, Decimal):
            try:
                object.__setattr__(self, "weight", Decimal(str(self.weight)))
            except InvalidOperation as exc:
                raise InvalidProductLineError(
                    self.quality, f"weight is not a number: {self.weight!r}"
                ) from exc

    def as_delta(self) -> LedgerDelta:
        return LedgerDelta(weight=self.weight, bags=self.number_of_bags)

    def to_dict(self) -> dict[str, Any]:
        return {
            "quality": self.quality,
            "weight": str(self.weight),
            "number_of_bags": self.number_of_bags,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProductLine:
        return cls(
            quality=data["quality"],
            weight=Decimal(str(data["weight"])),
            number_of_bags=int(data["number_of_bags"]),
        )


def validate_products(products: Iterable[ProductLine]) -> tuple[ProductLine, ...]:
    """
    Check a submitted product list and return it as a tuple.

    Raises:
        ProductsRequiredError: empty list.
        InvalidProductLineError: empty or oversized quality, non-positive
            weight or bag count, weight with more than two decimals.
        DuplicateProductQualityError: a quality appears twice.
    """
    lines = tuple(products)
    if not lines:
        raise ProductsRequiredError()

    seen: set[str] = set()
    for line in lines:
        if not line.quality:
            raise InvalidProductLineError(line.quality, "quality is empty")
        if len(line.quality) > QUALITY_MAX_LENGTH:
            raise InvalidProductLineError(
                line.quality[:20], f"quality longer than {QUALITY_MAX_LENGTH} characters"
            )
        if not line.weight.is_finite() or line.weight <= 0:
            raise InvalidProductLineError(line.quality, "weight must be positive")
        if line.weight != line.weight.quantize(_WEIGHT_QUANTUM):
            raise InvalidProductLineError(
                line.quality, "weight has more than two decimal places"
            )
        bags = line.number_of_bags
        if isinstance(bags, bool) or not isinstance(bags, int) or bags <= 0:
            raise InvalidProductLineError(
                line.quality, "number of bags must be a positive integer"
            )
        if line.quality in seen:
            raise DuplicateProductQualityError(line.quality)
        seen.add(line.quality)
    return lines


@dataclass(frozen=True)
class DriverInfo:
    """Transport metadata.  Not ledger-relevant."""

    full_name: str | None = None
    vehicle_registration: str | None = None
    driving_license_number: str | None = None
    route_sheet_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "full_name": self.full_name,
            "vehicle_registration": self.vehicle_registration,
            "driving_license_number": self.driving_license_number,
            "route_sheet_code": self.route_sheet_code,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DriverInfo | None:
        if not data:
            return None
        return cls(
            full_name=data.get("full_name"),
            vehicle_registration=data.get("vehicle_registration"),
            driving_license_number=data.get("driving_license_number"),
            route_sheet_code=data.get("route_sheet_code"),
        )


# ---------------------------------------------------------------------------
# Transfer variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class Transfer(ABC):
    """
    Fields shared by both transfer variants.

    Use GroupageTransfer / StandardTransfer (or ``build_transfer``); this
    class is never instantiated directly.
    """

    transfer_type: ClassVar[TransferType]

    id: UUID
    code: str
    sender_actor_id: UUID
    receiver_actor_id: UUID
    receiver_store_id: UUID
    campaign_id: UUID
    transfer_date: date
    products: tuple[ProductLine, ...]
    status: TransferStatus = TransferStatus.VALIDATED
    driver_info: DriverInfo | None = None
    created_by_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def sender_store(self) -> UUID | None:
        return getattr(self, "sender_store_id", None)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @abstractmethod
    def ledger_key(self, quality: str) -> GroupageLedgerKey | StoreMovementKey:
        ...

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe view used for audit values."""
        return {
            "id": str(self.id),
            "code": self.code,
            "transfer_type": self.transfer_type.value,
            "sender_actor_id": str(self.sender_actor_id),
            "sender_store_id": str(self.sender_store) if self.sender_store else None,
            "receiver_actor_id": str(self.receiver_actor_id),
            "receiver_store_id": str(self.receiver_store_id),
            "campaign_id": str(self.campaign_id),
            "transfer_date": self.transfer_date.isoformat(),
            "products": [p.to_dict() for p in self.products],
            "status": self.status.value,
            "driver_info": self.driver_info.to_dict() if self.driver_info else None,
        }


@dataclass(frozen=True, kw_only=True)
class GroupageTransfer(Transfer):
    """
    Single-sided intake from a producer (sender) to an OPA (receiver).

    ``sender_store_id`` is informational; it takes no part in the ledger key.
    """

    transfer_type: ClassVar[TransferType] = TransferType.GROUPAGE

    sender_store_id: UUID | None = None

    def ledger_key(self, quality: str) -> GroupageLedgerKey:
        return GroupageLedgerKey(
            actor_id=self.sender_actor_id,
            campaign_id=self.campaign_id,
            opa_id=self.receiver_actor_id,
            quality=quality,
        )


@dataclass(frozen=True, kw_only=True)
class StandardTransfer(Transfer):
    """Double-entry movement from the sender's store to the receiver's store."""

    transfer_type: ClassVar[TransferType] = TransferType.STANDARD

    sender_store_id: UUID

    def ledger_key(self, quality: str) -> StoreMovementKey:
        return StoreMovementKey(
            sender=StoreLedgerKey(
                store_id=self.sender_store_id,
                actor_id=self.sender_actor_id,
                campaign_id=self.campaign_id,
                quality=quality,
            ),
            receiver=StoreLedgerKey(
                store_id=self.receiver_store_id,
                actor_id=self.receiver_actor_id,
                campaign_id=self.campaign_id,
                quality=quality,
            ),
        )


_VARIANTS: dict[TransferType, type[Transfer]] = {
    TransferType.GROUPAGE: GroupageTransfer,
    TransferType.STANDARD: StandardTransfer,
}


def build_transfer(
    transfer_type: TransferType | str,
    *,
    sender_store_id: UUID | None = None,
    **fields: Any,
) -> GroupageTransfer | StandardTransfer:
    """
    Construct the variant matching ``transfer_type``.

    Raises:
        SenderStoreRequiredError: STANDARD with no sender store.
        ValueError: unknown transfer type.
    """
    transfer_type = TransferType(transfer_type)
    if transfer_type is TransferType.STANDARD and sender_store_id is None:
        raise SenderStoreRequiredError(transfer_type.value)
    return _VARIANTS[transfer_type](sender_store_id=sender_store_id, **fields)


# ---------------------------------------------------------------------------
# Service inputs and outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class TransferDraft:
    """Input of TransferService.create()."""

    transfer_type: TransferType
    sender_actor_id: UUID
    receiver_actor_id: UUID
    receiver_store_id: UUID
    transfer_date: date
    products: Sequence[ProductLine]
    sender_store_id: UUID | None = None
    campaign_id: UUID | None = None
    status: TransferStatus | None = None
    driver_info: DriverInfo | None = None
    created_by_id: UUID | None = None


NON_PRODUCT_FIELDS: tuple[str, ...] = (
    "transfer_date",
    "sender_actor_id",
    "sender_store_id",
    "receiver_actor_id",
    "receiver_store_id",
    "driver_info",
)


@dataclass(frozen=True, kw_only=True)
class TransferUpdate:
    """
    Input of TransferService.update().

    None means "not supplied".  A supplied value equal to the stored one
    is not a change.
    """

    transfer_date: date | None = None
    sender_actor_id: UUID | None = None
    sender_store_id: UUID | None = None
    receiver_actor_id: UUID | None = None
    receiver_store_id: UUID | None = None
    driver_info: DriverInfo | None = None
    products: Sequence[ProductLine] | None = None

    def changed_fields(self, transfer: Transfer) -> list[str]:
        changed = [
            name
            for name in NON_PRODUCT_FIELDS
            if getattr(self, name) is not None
            and getattr(self, name) != getattr(transfer, name, None)
        ]
        if self.products is not None and tuple(self.products) != transfer.products:
            changed.append("products")
        return changed


@dataclass(frozen=True)
class AuditContext:
    """Who performed an operation, forwarded to the audit recorder."""

    user_id: UUID | None = None
    user_role: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True, kw_only=True)
class TransferFilters:
    """
    Input of TransferService.list().

    ``limit`` None means the configured default page size.  ``period`` is
    a number of days back from now, applied to ``created_at``.
    """

    page: int = 1
    limit: int | None = None
    transfer_type: TransferType | None = None
    status: TransferStatus | None = None
    sender_actor_id: UUID | None = None
    receiver_actor_id: UUID | None = None
    campaign_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    period: int | None = None
    search: str | None = None

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.limit is not None and self.limit < 1:
            raise ValueError(f"limit must be >= 1, got {self.limit}")
        if self.period is not None and self.period < 1:
            raise ValueError(f"period must be >= 1 day, got {self.period}")


@dataclass(frozen=True, kw_only=True)
class TransferQuery:
    """Fully resolved search criteria handed to a TransferRepository."""

    offset: int
    limit: int
    transfer_type: TransferType | None = None
    status: TransferStatus | None = None
    sender_actor_id: UUID | None = None
    receiver_actor_id: UUID | None = None
    campaign_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    created_since: datetime | None = None
    search: str | None = None


@dataclass(frozen=True)
class TransferPage:
    """One page of list() results plus pagination metadata."""

    items: tuple[Transfer, ...]
    total: int
    current_page: int
    per_page: int
    last_page: int = field(init=False)

    def __post_init__(self) -> None:
        last = -(-self.total // self.per_page) if self.per_page else 1
        object.__setattr__(self, "last_page", max(last, 1))
