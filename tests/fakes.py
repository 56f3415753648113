"""
In-memory implementations of the Transfer Service ports.

Used by the service tests and the hypothesis property tests so ledger
invariants can be exercised without a database.  Every stateful fake
supports snapshot()/restore() so InMemoryUnitOfWork can roll back exactly
like a database transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from commodity_kernel.domain.clock import Clock, DeterministicClock
from commodity_kernel.domain.delta_calculator import COUPLED, DeltaPolicy
from commodity_kernel.domain.ledger_keys import LedgerBalance, LedgerDelta
from commodity_kernel.domain.ports import ActorRef, CampaignRef, StoreRef
from commodity_kernel.domain.transfers import (
    ProductLine,
    Transfer,
    TransferDraft,
    TransferQuery,
    TransferStatus,
    TransferType,
)
from commodity_kernel.services.quantity_applier import (
    GroupageQuantityApplier,
    StoreQuantityApplier,
    TransferLedger,
)
from commodity_kernel.services.transfer_code_service import TransferCodeGenerator
from commodity_kernel.services.transfer_service import TransferService


class InMemoryLedgerRepository:
    def __init__(self) -> None:
        self.rows: dict[Any, LedgerBalance] = {}
        self.calls: list[tuple[str, Any, LedgerDelta]] = []

    def upsert_delta(self, key, delta: LedgerDelta) -> LedgerBalance:
        self.calls.append(("upsert", key, delta))
        balance = self.rows.get(key, LedgerBalance.zero()).plus(delta)
        self.rows[key] = balance
        return balance

    def subtract_clamped(self, key, delta: LedgerDelta) -> LedgerBalance | None:
        self.calls.append(("subtract", key, delta))
        if key not in self.rows:
            return None
        balance = self.rows[key].minus_clamped(delta)
        self.rows[key] = balance
        return balance

    def get(self, key) -> LedgerBalance | None:
        return self.rows.get(key)

    def snapshot(self) -> Any:
        return dict(self.rows), list(self.calls)

    def restore(self, state: Any) -> None:
        rows, calls = state
        self.rows = dict(rows)
        self.calls = list(calls)


class InMemoryTransferRepository:
    def __init__(self, actors: FakeActorLookup | None = None) -> None:
        self.rows: dict[UUID, Transfer] = {}
        self._actors = actors

    def get(self, transfer_id: UUID) -> Transfer | None:
        transfer = self.rows.get(transfer_id)
        if transfer is None or transfer.is_deleted:
            return None
        return transfer

    def add(self, transfer: Transfer) -> None:
        if self.code_exists(transfer.code):
            raise AssertionError(f"duplicate code {transfer.code}")
        self.rows[transfer.id] = transfer

    def save(self, transfer: Transfer) -> None:
        assert transfer.id in self.rows
        self.rows[transfer.id] = transfer

    def code_exists(self, code: str) -> bool:
        return any(t.code == code for t in self.rows.values())

    def _search_text(self, transfer: Transfer) -> list[str]:
        texts = [transfer.code]
        if self._actors is not None:
            for actor_id in (transfer.sender_actor_id, transfer.receiver_actor_id):
                actor = self._actors.find_by_id(actor_id)
                if actor is not None:
                    texts.extend(
                        t for t in (actor.family_name, actor.given_name, actor.oncc_id) if t
                    )
        return texts

    def _matches(self, t: Transfer, q: TransferQuery) -> bool:
        checks = [
            q.transfer_type is None or t.transfer_type == q.transfer_type,
            q.status is None or t.status == q.status,
            q.sender_actor_id is None or t.sender_actor_id == q.sender_actor_id,
            q.receiver_actor_id is None or t.receiver_actor_id == q.receiver_actor_id,
            q.campaign_id is None or t.campaign_id == q.campaign_id,
            q.start_date is None or t.transfer_date >= q.start_date,
            q.end_date is None or t.transfer_date <= q.end_date,
            q.created_since is None or t.created_at >= q.created_since,
        ]
        if q.search:
            needle = q.search.strip().lower()
            checks.append(any(needle in text.lower() for text in self._search_text(t)))
        return all(checks)

    def search(self, query: TransferQuery):
        items = [t for t in self.rows.values() if not t.is_deleted and self._matches(t, query)]
        items.sort(key=lambda t: (t.created_at, t.code), reverse=True)
        return items[query.offset : query.offset + query.limit], len(items)

    def snapshot(self) -> Any:
        return dict(self.rows)

    def restore(self, state: Any) -> None:
        self.rows = dict(state)


class InMemorySequence:
    def __init__(self) -> None:
        self.counters: dict[str, int] = {}

    def next_value(self, sequence_name: str) -> int:
        self.counters[sequence_name] = self.counters.get(sequence_name, 0) + 1
        return self.counters[sequence_name]

    def snapshot(self) -> Any:
        return dict(self.counters)

    def restore(self, state: Any) -> None:
        self.counters = dict(state)


class InMemoryAuditRecorder:
    def __init__(self) -> None:
        self.entries: list[dict[str, Any]] = []
        self.fail = False

    def log_action(self, **kwargs: Any) -> None:
        if self.fail:
            raise RuntimeError("audit store unavailable")
        self.entries.append(kwargs)

    def actions(self) -> list[str]:
        return [e["action"] for e in self.entries]

    def snapshot(self) -> Any:
        return list(self.entries)

    def restore(self, state: Any) -> None:
        self.entries = list(state)


class FakeActorLookup:
    def __init__(self, actors: dict[UUID, ActorRef] | None = None) -> None:
        self.actors = dict(actors or {})

    def find_by_id(self, actor_id: UUID) -> ActorRef | None:
        return self.actors.get(actor_id)


class FakeStoreLookup:
    def __init__(self, stores: dict[UUID, StoreRef] | None = None) -> None:
        self.stores = dict(stores or {})

    def find_by_id(self, store_id: UUID) -> StoreRef | None:
        return self.stores.get(store_id)


class FakeCampaignLookup:
    def __init__(self, campaigns: dict[UUID, CampaignRef] | None = None) -> None:
        self.campaigns = dict(campaigns or {})

    def get_active(self) -> CampaignRef | None:
        return next((c for c in self.campaigns.values() if c.is_active), None)

    def find_by_id(self, campaign_id: UUID) -> CampaignRef | None:
        return self.campaigns.get(campaign_id)


class InMemoryUnitOfWork:
    """Snapshots every participant on entry, restores them all on error."""

    def __init__(self, participants: list[Any]) -> None:
        self._participants = participants
        self._states: list[Any] = []
        self.commits = 0
        self.rollbacks = 0

    def __enter__(self) -> InMemoryUnitOfWork:
        self._states = [p.snapshot() for p in self._participants]
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.commits += 1
        else:
            for participant, state in zip(self._participants, self._states):
                participant.restore(state)
            self.rollbacks += 1
        return False


@dataclass
class InMemoryWorld:
    """Reference data, fakes and a wired TransferService."""

    clock: Clock
    campaign_id: UUID
    inactive_campaign_id: UUID
    producer_id: UUID
    second_producer_id: UUID
    opa_id: UUID
    buyer_id: UUID
    inactive_actor_id: UUID
    store_a_id: UUID
    store_b_id: UUID
    store_outside_id: UUID
    actors: FakeActorLookup
    stores: FakeStoreLookup
    campaigns: FakeCampaignLookup
    transfers: InMemoryTransferRepository
    groupage_ledger: InMemoryLedgerRepository
    store_ledger: InMemoryLedgerRepository
    sequences: InMemorySequence
    audit: InMemoryAuditRecorder
    uow: InMemoryUnitOfWork
    service: TransferService

    def groupage_draft(self, products=None, **overrides: Any) -> TransferDraft:
        fields = dict(
            transfer_type=TransferType.GROUPAGE,
            sender_actor_id=self.producer_id,
            receiver_actor_id=self.opa_id,
            receiver_store_id=self.store_b_id,
            transfer_date=date(2024, 1, 1),
            products=products or [product("grade_1", "500", 25)],
        )
        fields.update(overrides)
        return TransferDraft(**fields)

    def standard_draft(self, products=None, **overrides: Any) -> TransferDraft:
        fields = dict(
            transfer_type=TransferType.STANDARD,
            sender_actor_id=self.opa_id,
            sender_store_id=self.store_a_id,
            receiver_actor_id=self.buyer_id,
            receiver_store_id=self.store_b_id,
            transfer_date=date(2024, 1, 1),
            products=products or [product("grade_1", "500", 25)],
        )
        fields.update(overrides)
        return TransferDraft(**fields)


def product(quality: str, weight: str | int | Decimal, bags: int) -> ProductLine:
    return ProductLine(quality=quality, weight=Decimal(str(weight)), number_of_bags=bags)


def build_world(
    clock: Clock | None = None,
    delta_policy: DeltaPolicy = COUPLED,
    default_status: TransferStatus = TransferStatus.VALIDATED,
    code_max_attempts: int = 10,
) -> InMemoryWorld:
    clock = clock or DeterministicClock()
    campaign_id, inactive_campaign_id = uuid4(), uuid4()
    producer_id, second_producer_id, opa_id, buyer_id, inactive_actor_id = (
        uuid4() for _ in range(5)
    )
    store_a_id, store_b_id, store_outside_id = uuid4(), uuid4(), uuid4()

    actors = FakeActorLookup(
        {
            producer_id: ActorRef(producer_id, "active", "Mbarga", "Paul", "ONCC-P-001"),
            second_producer_id: ActorRef(second_producer_id, "active", "Ngono", "Marie", "ONCC-P-002"),
            opa_id: ActorRef(opa_id, "active", "Coop Sud", None, "ONCC-OPA-010"),
            buyer_id: ActorRef(buyer_id, "active", "Export SA", None, "ONCC-B-100"),
            inactive_actor_id: ActorRef(inactive_actor_id, "inactive", "Dormant", None, None),
        }
    )
    stores = FakeStoreLookup(
        {
            store_a_id: StoreRef(store_a_id, frozenset({campaign_id})),
            store_b_id: StoreRef(store_b_id, frozenset({campaign_id})),
            store_outside_id: StoreRef(store_outside_id, frozenset({inactive_campaign_id})),
        }
    )
    campaigns = FakeCampaignLookup(
        {
            campaign_id: CampaignRef(campaign_id, "2024-2025", "active"),
            inactive_campaign_id: CampaignRef(inactive_campaign_id, "2023-2024", "inactive"),
        }
    )

    transfers = InMemoryTransferRepository(actors)
    groupage_ledger = InMemoryLedgerRepository()
    store_ledger = InMemoryLedgerRepository()
    sequences = InMemorySequence()
    audit = InMemoryAuditRecorder()
    uow = InMemoryUnitOfWork([transfers, groupage_ledger, store_ledger, sequences, audit])

    service = TransferService(
        transfers=transfers,
        ledger=TransferLedger(
            groupage=GroupageQuantityApplier(groupage_ledger),
            store=StoreQuantityApplier(store_ledger),
        ),
        actors=actors,
        stores=stores,
        campaigns=campaigns,
        codes=TransferCodeGenerator(sequences, transfers, clock, max_attempts=code_max_attempts),
        unit_of_work=lambda: uow,
        audit=audit,
        clock=clock,
        delta_policy=delta_policy,
        default_status=default_status,
    )

    return InMemoryWorld(
        clock=clock,
        campaign_id=campaign_id,
        inactive_campaign_id=inactive_campaign_id,
        producer_id=producer_id,
        second_producer_id=second_producer_id,
        opa_id=opa_id,
        buyer_id=buyer_id,
        inactive_actor_id=inactive_actor_id,
        store_a_id=store_a_id,
        store_b_id=store_b_id,
        store_outside_id=store_outside_id,
        actors=actors,
        stores=stores,
        campaigns=campaigns,
        transfers=transfers,
        groupage_ledger=groupage_ledger,
        store_ledger=store_ledger,
        sequences=sequences,
        audit=audit,
        uow=uow,
        service=service,
    )
