"""
Module: commodity_kernel.models.transfer
Responsibility: ORM persistence for product transfers.
Architecture position: Kernel > Models.  May import from db/base.py only.
    Conversion to the domain variants lives in selectors/transfer_selector.py.

Invariants enforced:
    - ``code`` is unique across all transfers, including soft-deleted ones.
    - ``products`` is a JSON list of {quality, weight, number_of_bags};
      weight is stored as a decimal string so no float rounding happens
      between the API and the ledger.
    - Soft delete only: ``deleted_at`` is set, the row is never removed.
"""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from commodity_kernel.db.base import TrackedBase, UUIDString


class ProductTransfer(TrackedBase):
    """One GROUPAGE or STANDARD movement of commodity."""

    __tablename__ = "product_transfers"

    __table_args__ = (
        Index("idx_product_transfers_campaign", "campaign_id"),
        Index("idx_product_transfers_status", "status"),
        Index("idx_product_transfers_created_at", "created_at"),
        Index("idx_product_transfers_sender", "sender_actor_id"),
        Index("idx_product_transfers_receiver", "receiver_actor_id"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    transfer_type: Mapped[str] = mapped_column(String(20), nullable=False)

    sender_actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    sender_store_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    receiver_actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    receiver_store_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    campaign_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    transfer_date: Mapped[date] = mapped_column(nullable=False)
    products: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    driver_info: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<ProductTransfer {self.code} {self.transfer_type} {self.status}>"
