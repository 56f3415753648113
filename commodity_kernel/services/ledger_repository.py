"""
SQL ledger repositories -- atomic access to the two aggregate tables.

Responsibility:
    Implements the LedgerRepository port for GROUPAGE
    (``actor_product_quantities``) and STANDARD
    (``store_product_quantities``) rows.

Invariants enforced:
    - Increment is one ``INSERT ... ON CONFLICT DO UPDATE SET total = total
      + excluded.total`` statement.  Two concurrent increments of the same
      key cannot lose an update and two concurrent first credits cannot
      both insert.
    - Decrement is one ``UPDATE ... SET total = CASE WHEN total - d < 0
      THEN 0 ELSE total - d END``.  Each total is floored at zero on its
      own; an absent row matches nothing and stays absent.
    - Rows are never read, mutated in Python and written back.

Failure modes:
    - NotImplementedError for dialects without ON CONFLICT support.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Callable
from decimal import Decimal
from typing import Any, Generic, TypeVar
from uuid import uuid4

from sqlalchemy import Table, and_, case, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from commodity_kernel.domain.clock import Clock, SystemClock
from commodity_kernel.domain.ledger_keys import (
    GroupageLedgerKey,
    LedgerBalance,
    LedgerDelta,
    StoreLedgerKey,
)
from commodity_kernel.logging_config import get_logger
from commodity_kernel.models.ledger import GroupageLedgerEntry, StoreLedgerEntry
from commodity_kernel.services.base import BaseService

logger = get_logger("services.ledger_repository")

KeyT = TypeVar("KeyT")

_INSERTS: dict[str, Callable[[Table], Any]] = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _clamped_subtract(column: ColumnElement, amount: Any) -> ColumnElement:
    return case((column - amount < 0, 0), else_=column - amount)


class _SqlLedgerRepository(BaseService, Generic[KeyT]):
    """Shared upsert/decrement mechanics; subclasses map keys to columns."""

    table: Table
    conflict_columns: tuple[str, ...]

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    @abstractmethod
    def _key_values(self, key: KeyT) -> dict[str, Any]:
        ...

    def _conflict_where(self) -> ColumnElement | None:
        return None

    def _key_clause(self, key: KeyT) -> ColumnElement:
        clauses = []
        for name, value in self._key_values(key).items():
            column = self.table.c[name]
            clauses.append(column.is_(None) if value is None else column == value)
        return and_(*clauses)

    def _insert(self):
        try:
            return _INSERTS[self.dialect_name](self.table)
        except KeyError:
            raise NotImplementedError(
                f"Atomic ledger upsert is not supported on {self.dialect_name}"
            ) from None

    def upsert_delta(self, key: KeyT, delta: LedgerDelta) -> LedgerBalance:
        now = self._clock.now()
        t = self.table
        stmt = self._insert().values(
            id=uuid4(),
            total_weight=delta.weight,
            total_bags=delta.bags,
            created_at=now,
            updated_at=now,
            **self._key_values(key),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(self.conflict_columns),
            index_where=self._conflict_where(),
            set_={
                "total_weight": t.c.total_weight + stmt.excluded.total_weight,
                "total_bags": t.c.total_bags + stmt.excluded.total_bags,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(t.c.total_weight, t.c.total_bags)

        row = self.session.execute(stmt).one()
        return LedgerBalance(total_weight=Decimal(row.total_weight), total_bags=int(row.total_bags))

    def subtract_clamped(self, key: KeyT, delta: LedgerDelta) -> LedgerBalance | None:
        t = self.table
        stmt = (
            update(t)
            .where(self._key_clause(key))
            .values(
                total_weight=_clamped_subtract(t.c.total_weight, delta.weight),
                total_bags=_clamped_subtract(t.c.total_bags, delta.bags),
                updated_at=self._clock.now(),
            )
            .returning(t.c.total_weight, t.c.total_bags)
        )
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return LedgerBalance(total_weight=Decimal(row.total_weight), total_bags=int(row.total_bags))

    def get(self, key: KeyT) -> LedgerBalance | None:
        t = self.table
        row = self.session.execute(
            select(t.c.total_weight, t.c.total_bags).where(self._key_clause(key))
        ).one_or_none()
        if row is None:
            return None
        return LedgerBalance(total_weight=Decimal(row.total_weight), total_bags=int(row.total_bags))


class SqlGroupageLedgerRepository(_SqlLedgerRepository[GroupageLedgerKey]):
    """``actor_product_quantities``; transfer rows have parcel_id NULL."""

    table = GroupageLedgerEntry.__table__
    conflict_columns = ("actor_id", "campaign_id", "opa_id", "quality")

    def _key_values(self, key: GroupageLedgerKey) -> dict[str, Any]:
        return {
            "actor_id": key.actor_id,
            "campaign_id": key.campaign_id,
            "opa_id": key.opa_id,
            "quality": key.quality,
            "parcel_id": key.parcel_id,
        }

    def _conflict_where(self) -> ColumnElement | None:
        return self.table.c.parcel_id.is_(None)

    def upsert_delta(self, key: GroupageLedgerKey, delta: LedgerDelta) -> LedgerBalance:
        if key.parcel_id is not None:
            raise ValueError("Transfers only credit parcel-less GROUPAGE rows")
        return super().upsert_delta(key, delta)


class SqlStoreLedgerRepository(_SqlLedgerRepository[StoreLedgerKey]):
    """``store_product_quantities``."""

    table = StoreLedgerEntry.__table__
    conflict_columns = ("store_id", "actor_id", "campaign_id", "quality")

    def _key_values(self, key: StoreLedgerKey) -> dict[str, Any]:
        return {
            "store_id": key.store_id,
            "actor_id": key.actor_id,
            "campaign_id": key.campaign_id,
            "quality": key.quality,
        }
