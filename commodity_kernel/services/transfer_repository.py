"""
SQL transfer persistence and the session unit of work.

SqlTransferRepository implements the TransferRepository port: writes go
through the ORM row, reads are delegated to TransferSelector so both
sides share one soft-delete filter and one row -> variant converter.

SessionUnitOfWork is the transaction boundary of a TransferService
operation: it commits the session when the block completes and rolls it
back when the block raises.  Repositories, appliers and the sequence
service underneath only flush.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from commodity_kernel.domain.transfers import Transfer, TransferQuery
from commodity_kernel.exceptions import TransferNotFoundError
from commodity_kernel.logging_config import get_logger
from commodity_kernel.models.transfer import ProductTransfer
from commodity_kernel.selectors.transfer_selector import TransferSelector
from commodity_kernel.services.base import BaseService

logger = get_logger("services.transfer_repository")


def _row_values(transfer: Transfer) -> dict:
    return {
        "code": transfer.code,
        "transfer_type": transfer.transfer_type.value,
        "sender_actor_id": transfer.sender_actor_id,
        "sender_store_id": transfer.sender_store,
        "receiver_actor_id": transfer.receiver_actor_id,
        "receiver_store_id": transfer.receiver_store_id,
        "campaign_id": transfer.campaign_id,
        "transfer_date": transfer.transfer_date,
        "products": [p.to_dict() for p in transfer.products],
        "status": transfer.status.value,
        "driver_info": transfer.driver_info.to_dict() if transfer.driver_info else None,
        "deleted_at": transfer.deleted_at,
    }


class SqlTransferRepository(BaseService):
    def __init__(self, session: Session):
        super().__init__(session)
        self._selector = TransferSelector(session)

    def get(self, transfer_id: UUID) -> Transfer | None:
        return self._selector.find_by_id(transfer_id)

    def add(self, transfer: Transfer) -> None:
        row = ProductTransfer(id=transfer.id, created_by_id=transfer.created_by_id, **_row_values(transfer))
        if transfer.created_at is not None:
            row.created_at = transfer.created_at
            row.updated_at = transfer.updated_at or transfer.created_at
        self.session.add(row)
        self.session.flush()

    def save(self, transfer: Transfer) -> None:
        row = self.session.get(ProductTransfer, transfer.id)
        if row is None:
            raise TransferNotFoundError(transfer.id)
        for name, value in _row_values(transfer).items():
            setattr(row, name, value)
        if transfer.updated_at is not None:
            row.updated_at = transfer.updated_at
        self.session.flush()

    def code_exists(self, code: str) -> bool:
        return self._selector.code_exists(code)

    def search(self, query: TransferQuery) -> tuple[Sequence[Transfer], int]:
        return self._selector.search(query)


class SessionUnitOfWork:
    """Commit-or-rollback around one service operation."""

    def __init__(self, session: Session):
        self.session = session

    def __enter__(self) -> SessionUnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.session.commit()
            logger.debug("transaction_committed")
        else:
            self.session.rollback()
            logger.debug(
                "transaction_rolled_back",
                extra={"error_type": exc_type.__name__},
            )
        return False
