"""
LedgerSelector -- read access to the quantity ledgers.

Balances per key and per OPA/store, for stock screens and tests.  The
write path never goes through here.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from commodity_kernel.domain.ledger_keys import (
    GroupageLedgerKey,
    LedgerBalance,
    StoreLedgerKey,
)
from commodity_kernel.models.ledger import GroupageLedgerEntry, StoreLedgerEntry
from commodity_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class GroupageBalanceRow:
    key: GroupageLedgerKey
    balance: LedgerBalance


@dataclass(frozen=True)
class StoreBalanceRow:
    key: StoreLedgerKey
    balance: LedgerBalance


def _balance(total_weight, total_bags) -> LedgerBalance:
    return LedgerBalance(total_weight=Decimal(total_weight), total_bags=int(total_bags))


class LedgerSelector(BaseSelector):
    def groupage_balance(self, key: GroupageLedgerKey) -> LedgerBalance | None:
        e = GroupageLedgerEntry
        parcel_clause = (
            e.parcel_id.is_(None) if key.parcel_id is None else e.parcel_id == key.parcel_id
        )
        row = self.session.execute(
            select(e.total_weight, e.total_bags).where(
                e.actor_id == key.actor_id,
                e.campaign_id == key.campaign_id,
                e.opa_id == key.opa_id,
                e.quality == key.quality,
                parcel_clause,
            )
        ).one_or_none()
        return _balance(*row) if row else None

    def store_balance(self, key: StoreLedgerKey) -> LedgerBalance | None:
        e = StoreLedgerEntry
        row = self.session.execute(
            select(e.total_weight, e.total_bags).where(
                e.store_id == key.store_id,
                e.actor_id == key.actor_id,
                e.campaign_id == key.campaign_id,
                e.quality == key.quality,
            )
        ).one_or_none()
        return _balance(*row) if row else None

    def opa_intake(self, opa_id: UUID, campaign_id: UUID) -> list[GroupageBalanceRow]:
        """All GROUPAGE rows credited to an OPA in a campaign, ordered by actor and quality."""
        e = GroupageLedgerEntry
        rows = self.session.execute(
            select(e)
            .where(e.opa_id == opa_id, e.campaign_id == campaign_id)
            .order_by(e.actor_id, e.quality)
            .execution_options(populate_existing=True)
        ).scalars()
        return [
            GroupageBalanceRow(
                key=GroupageLedgerKey(
                    actor_id=r.actor_id,
                    campaign_id=r.campaign_id,
                    opa_id=r.opa_id,
                    quality=r.quality,
                    parcel_id=r.parcel_id,
                ),
                balance=_balance(r.total_weight, r.total_bags),
            )
            for r in rows
        ]

    def store_stock(self, store_id: UUID, campaign_id: UUID) -> list[StoreBalanceRow]:
        """All STANDARD rows of a store in a campaign, ordered by actor and quality."""
        e = StoreLedgerEntry
        rows = self.session.execute(
            select(e)
            .where(e.store_id == store_id, e.campaign_id == campaign_id)
            .order_by(e.actor_id, e.quality)
            .execution_options(populate_existing=True)
        ).scalars()
        return [
            StoreBalanceRow(
                key=StoreLedgerKey(
                    store_id=r.store_id,
                    actor_id=r.actor_id,
                    campaign_id=r.campaign_id,
                    quality=r.quality,
                ),
                balance=_balance(r.total_weight, r.total_bags),
            )
            for r in rows
        ]
