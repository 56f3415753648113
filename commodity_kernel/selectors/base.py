"""
Module: commodity_kernel.selectors.base
Responsibility: Base class for read-only query selectors (the "Q" side of
    the kernel's CQRS-lite split).
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/ value objects.  MUST NOT import from services/.

Invariants enforced:
    - Read-only: selectors never add, delete, flush or commit.
    - Selectors return domain value objects or frozen DTOs, not ORM rows.
    - The caller owns the session and its transaction.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """Abstract base class for all selectors."""

    def __init__(self, session: Session):
        self.session = session
