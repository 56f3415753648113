"""
Module: commodity_kernel.models.reference
Responsibility: Minimal ORM mapping of the reference data a transfer points
    at -- actors, stores, campaigns and the store/campaign association.
    The administration screens that maintain these rows live elsewhere;
    the kernel only reads them through selectors.reference_selector.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from datetime import date
from enum import Enum
from uuid import UUID

from sqlalchemy import Column, ForeignKey, Index, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from commodity_kernel.db.base import Base, TrackedBase, UUIDString


class ActorStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class CampaignStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


store_campaigns = Table(
    "store_campaigns",
    Base.metadata,
    Column("store_id", UUIDString(), ForeignKey("stores.id"), primary_key=True),
    Column("campaign_id", UUIDString(), ForeignKey("campaigns.id"), primary_key=True),
)


class Actor(TrackedBase):
    """Producer, OPA, buyer or exporter taking part in transfers."""

    __tablename__ = "actors"

    __table_args__ = (
        Index("idx_actors_oncc_id", "oncc_id"),
        Index("idx_actors_status", "status"),
    )

    actor_type: Mapped[str] = mapped_column(String(50), nullable=False)
    family_name: Mapped[str] = mapped_column(String(255), nullable=False)
    given_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    oncc_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ActorStatus.ACTIVE.value
    )


class Campaign(TrackedBase):
    """Marketing campaign (season).  At most one is active at a time."""

    __tablename__ = "campaigns"

    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    start_date: Mapped[date | None] = mapped_column(nullable=True)
    end_date: Mapped[date | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CampaignStatus.INACTIVE.value
    )


class Store(TrackedBase):
    """Warehouse holding STANDARD stock; open for a set of campaigns."""

    __tablename__ = "stores"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50), nullable=True, unique=True)

    campaigns: Mapped[list[Campaign]] = relationship(
        secondary=store_campaigns,
        lazy="selectin",
    )

    @property
    def campaign_ids(self) -> frozenset[UUID]:
        return frozenset(c.id for c in self.campaigns)
