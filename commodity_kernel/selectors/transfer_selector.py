"""
TransferSelector -- read paths over ``product_transfers``.

Responsibility:
    Loads transfers as domain variants and runs the filtered, paginated
    list query.  Soft-deleted rows are excluded from every query here.

Search semantics:
    ``search`` is a case-insensitive substring match on the transfer code
    and on the family name, given name and ONCC id of both the sender and
    the receiver actor.  ``%`` and ``_`` in the search text match
    themselves, not any character.  Results are ordered newest
    ``created_at`` first.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import aliased

from commodity_kernel.domain.transfers import (
    DriverInfo,
    ProductLine,
    Transfer,
    TransferQuery,
    TransferStatus,
    build_transfer,
)
from commodity_kernel.models.reference import Actor
from commodity_kernel.models.transfer import ProductTransfer
from commodity_kernel.selectors.base import BaseSelector

_LIKE_ESCAPE = "\\"


def _contains_pattern(text: str) -> str:
    """ILIKE pattern matching ``text`` literally anywhere in the column."""
    for char in (_LIKE_ESCAPE, "%", "_"):
        text = text.replace(char, _LIKE_ESCAPE + char)
    return f"%{text}%"


def transfer_from_model(row: ProductTransfer) -> Transfer:
    """Boundary converter: ORM row -> GroupageTransfer / StandardTransfer."""
    return build_transfer(
        row.transfer_type,
        id=row.id,
        code=row.code,
        sender_actor_id=row.sender_actor_id,
        sender_store_id=row.sender_store_id,
        receiver_actor_id=row.receiver_actor_id,
        receiver_store_id=row.receiver_store_id,
        campaign_id=row.campaign_id,
        transfer_date=row.transfer_date,
        products=tuple(ProductLine.from_dict(p) for p in row.products),
        status=TransferStatus(row.status),
        driver_info=DriverInfo.from_dict(row.driver_info),
        created_by_id=row.created_by_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )


class TransferSelector(BaseSelector):
    def get_row(self, transfer_id: UUID) -> ProductTransfer | None:
        return self.session.execute(
            select(ProductTransfer).where(
                ProductTransfer.id == transfer_id,
                ProductTransfer.deleted_at.is_(None),
            )
        ).scalar_one_or_none()

    def find_by_id(self, transfer_id: UUID) -> Transfer | None:
        row = self.get_row(transfer_id)
        return transfer_from_model(row) if row else None

    def find_by_code(self, code: str) -> Transfer | None:
        row = self.session.execute(
            select(ProductTransfer).where(
                ProductTransfer.code == code,
                ProductTransfer.deleted_at.is_(None),
            )
        ).scalar_one_or_none()
        return transfer_from_model(row) if row else None

    def code_exists(self, code: str) -> bool:
        """True when any transfer, soft-deleted included, holds ``code``."""
        return (
            self.session.execute(
                select(ProductTransfer.id).where(ProductTransfer.code == code).limit(1)
            ).first()
            is not None
        )

    def _filtered(self, query: TransferQuery) -> Select:
        stmt = select(ProductTransfer).where(ProductTransfer.deleted_at.is_(None))

        if query.transfer_type is not None:
            stmt = stmt.where(ProductTransfer.transfer_type == query.transfer_type.value)
        if query.status is not None:
            stmt = stmt.where(ProductTransfer.status == query.status.value)
        if query.sender_actor_id is not None:
            stmt = stmt.where(ProductTransfer.sender_actor_id == query.sender_actor_id)
        if query.receiver_actor_id is not None:
            stmt = stmt.where(ProductTransfer.receiver_actor_id == query.receiver_actor_id)
        if query.campaign_id is not None:
            stmt = stmt.where(ProductTransfer.campaign_id == query.campaign_id)
        if query.start_date is not None:
            stmt = stmt.where(ProductTransfer.transfer_date >= query.start_date)
        if query.end_date is not None:
            stmt = stmt.where(ProductTransfer.transfer_date <= query.end_date)
        if query.created_since is not None:
            stmt = stmt.where(ProductTransfer.created_at >= query.created_since)

        if query.search:
            pattern = _contains_pattern(query.search.strip())
            sender = aliased(Actor)
            receiver = aliased(Actor)
            stmt = (
                stmt.outerjoin(sender, sender.id == ProductTransfer.sender_actor_id)
                .outerjoin(receiver, receiver.id == ProductTransfer.receiver_actor_id)
                .where(
                    or_(
                        ProductTransfer.code.ilike(pattern, escape=_LIKE_ESCAPE),
                        sender.family_name.ilike(pattern, escape=_LIKE_ESCAPE),
                        sender.given_name.ilike(pattern, escape=_LIKE_ESCAPE),
                        sender.oncc_id.ilike(pattern, escape=_LIKE_ESCAPE),
                        receiver.family_name.ilike(pattern, escape=_LIKE_ESCAPE),
                        receiver.given_name.ilike(pattern, escape=_LIKE_ESCAPE),
                        receiver.oncc_id.ilike(pattern, escape=_LIKE_ESCAPE),
                    )
                )
            )
        return stmt

    def search(self, query: TransferQuery) -> tuple[Sequence[Transfer], int]:
        """Return (page of transfers, total matching count)."""
        filtered = self._filtered(query)
        total = self.session.execute(
            select(func.count()).select_from(filtered.subquery())
        ).scalar_one()

        rows = self.session.execute(
            filtered.order_by(ProductTransfer.created_at.desc(), ProductTransfer.code.desc())
            .offset(query.offset)
            .limit(query.limit)
        ).scalars().all()
        return [transfer_from_model(row) for row in rows], total
