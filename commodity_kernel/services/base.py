"""
BaseService -- common base for the SQL-backed kernel services.

Services receive a caller-owned ``Session`` and only ``flush()``.  The
commit/rollback boundary belongs to the unit of work wrapped around each
TransferService operation (services/transfer_repository.py).
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for session-backed services.

    Guarantees:
        - Never calls ``session.commit()`` or ``session.rollback()``.
    """

    def __init__(self, session: Session):
        self.session = session

    @property
    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name
