"""
Module: commodity_kernel.models.ledger
Responsibility: ORM tables of the two quantity ledgers.
Architecture position: Kernel > Models.  May import from db/base.py only.
    Rows are written exclusively by services/ledger_repository.py with
    single atomic statements; never load, mutate and save them through
    the ORM.

Invariants enforced:
    - total_weight >= 0 and total_bags >= 0 (CHECK constraints back up the
      clamped decrement).
    - One row per business key.  GROUPAGE uniqueness is split into two
      partial indexes because ``parcel_id`` is NULL for transfer-driven
      rows and NULLs never collide in a plain unique index.
    - Rows are never deleted; a zero row is a legitimate terminal state.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Index, String, UniqueConstraint, func, text
from sqlalchemy.orm import Mapped, mapped_column

from commodity_kernel.db.base import Base, UUIDString

_PARCEL_IS_NULL = text("parcel_id IS NULL")
_PARCEL_IS_NOT_NULL = text("parcel_id IS NOT NULL")


class GroupageLedgerEntry(Base):
    """
    Cumulative GROUPAGE intake credited to an OPA from a sending actor.

    Single-sided: there is no compensating debit row.
    """

    __tablename__ = "actor_product_quantities"

    __table_args__ = (
        Index(
            "uq_actor_product_quantities_key",
            "actor_id",
            "campaign_id",
            "opa_id",
            "quality",
            unique=True,
            postgresql_where=_PARCEL_IS_NULL,
            sqlite_where=_PARCEL_IS_NULL,
        ),
        Index(
            "uq_actor_product_quantities_parcel_key",
            "actor_id",
            "campaign_id",
            "opa_id",
            "quality",
            "parcel_id",
            unique=True,
            postgresql_where=_PARCEL_IS_NOT_NULL,
            sqlite_where=_PARCEL_IS_NOT_NULL,
        ),
        Index("idx_actor_product_quantities_opa", "opa_id", "campaign_id"),
        CheckConstraint("total_weight >= 0", name="ck_apq_weight_non_negative"),
        CheckConstraint("total_bags >= 0", name="ck_apq_bags_non_negative"),
    )

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    campaign_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    opa_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    parcel_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    quality: Mapped[str] = mapped_column(String(100), nullable=False)

    total_weight: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_bags: Mapped[int] = mapped_column(nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class StoreLedgerEntry(Base):
    """Stock held by an actor in a store, per quality and campaign."""

    __tablename__ = "store_product_quantities"

    __table_args__ = (
        UniqueConstraint(
            "store_id",
            "actor_id",
            "campaign_id",
            "quality",
            name="uq_store_product_quantities_key",
        ),
        Index("idx_store_product_quantities_store", "store_id", "campaign_id"),
        CheckConstraint("total_weight >= 0", name="ck_spq_weight_non_negative"),
        CheckConstraint("total_bags >= 0", name="ck_spq_bags_non_negative"),
    )

    store_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    campaign_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    quality: Mapped[str] = mapped_column(String(100), nullable=False)

    total_weight: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_bags: Mapped[int] = mapped_column(nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
