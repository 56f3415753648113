"""
Collaborator ports consumed by the Transfer Service.

Structural ``Protocol`` types: the SQL implementations live in services/
and selectors/, the in-memory fakes used by the property tests live in
tests/.  Nothing here performs I/O.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Protocol, TypeVar
from uuid import UUID

from commodity_kernel.domain.ledger_keys import LedgerBalance, LedgerDelta
from commodity_kernel.domain.transfers import Transfer, TransferQuery, TransferType

ACTIVE = "active"

KeyT = TypeVar("KeyT", contravariant=True)


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ActorRef:
    id: UUID
    status: str
    family_name: str | None = None
    given_name: str | None = None
    oncc_id: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE


@dataclass(frozen=True)
class StoreRef:
    id: UUID
    campaign_ids: frozenset[UUID] = field(default_factory=frozenset)

    def is_in_campaign(self, campaign_id: UUID) -> bool:
        return campaign_id in self.campaign_ids


@dataclass(frozen=True)
class CampaignRef:
    id: UUID
    code: str
    status: str

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE


class ActorLookup(Protocol):
    def find_by_id(self, actor_id: UUID) -> ActorRef | None: ...


class StoreLookup(Protocol):
    def find_by_id(self, store_id: UUID) -> StoreRef | None: ...


class CampaignLookup(Protocol):
    def get_active(self) -> CampaignRef | None: ...

    def find_by_id(self, campaign_id: UUID) -> CampaignRef | None: ...


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class LedgerRepository(Protocol[KeyT]):
    """
    Atomic access to one aggregate table.

    ``upsert_delta`` increments the row, creating it with ``delta`` as its
    initial value when absent.  ``subtract_clamped`` decrements an existing
    row, flooring each total at zero, and returns None without writing
    when the row is absent.
    """

    def upsert_delta(self, key: KeyT, delta: LedgerDelta) -> LedgerBalance: ...

    def subtract_clamped(self, key: KeyT, delta: LedgerDelta) -> LedgerBalance | None: ...

    def get(self, key: KeyT) -> LedgerBalance | None: ...


class TransferRepository(Protocol):
    """Transfer persistence.  ``get`` and ``search`` never return soft-deleted rows."""

    def get(self, transfer_id: UUID) -> Transfer | None: ...

    def add(self, transfer: Transfer) -> None: ...

    def save(self, transfer: Transfer) -> None: ...

    def code_exists(self, code: str) -> bool: ...

    def search(self, query: TransferQuery) -> tuple[Sequence[Transfer], int]: ...


class SequenceSource(Protocol):
    def next_value(self, sequence_name: str) -> int: ...


class CodeGenerator(Protocol):
    def generate(self, transfer_type: TransferType) -> str: ...


class AuditRecorder(Protocol):
    def log_action(
        self,
        *,
        auditable_type: str,
        auditable_id: UUID,
        action: str,
        user_id: UUID | None,
        user_role: str | None,
        old_values: dict[str, Any] | None,
        new_values: dict[str, Any] | None,
        ip_address: str | None,
        user_agent: str | None,
    ) -> None: ...


class UnitOfWork(Protocol):
    """
    Transaction boundary of one service operation.

    Commits on normal exit and rolls back when the block raises; the
    exception always propagates.
    """

    def __enter__(self) -> UnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None: ...
