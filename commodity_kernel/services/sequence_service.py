"""
SequenceService -- monotonic counters via locked rows.

Responsibility:
    Hands out strictly increasing integers per named sequence.  Transfer
    codes (``GRP-2024-00042``) draw their number from a counter named
    ``transfer_code.<PREFIX>.<YEAR>``.

Invariants enforced:
    - The counter row is the only source of truth.  Scanning existing
      codes for a max and adding one is never done: it races, and a
      single malformed legacy code poisons it.
    - ``SELECT ... FOR UPDATE`` serializes concurrent allocations of the
      same sequence (PostgreSQL; SQLite serializes writers anyway).
    - The increment is only visible once the caller's transaction
      commits; a rollback returns the value.

Failure modes:
    - IntegrityError on a concurrent first use is absorbed by a savepoint
      and a locked re-read.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, mapped_column

from commodity_kernel.db.base import Base
from commodity_kernel.logging_config import get_logger
from commodity_kernel.services.base import BaseService

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """One row per named sequence."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService(BaseService):
    """
    Transactional sequence allocation.

    Non-goals:
        - Does NOT commit; the caller's unit of work does.
    """

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self.session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock (or create) the counter row, increment it and return the new value.

        Postconditions:
            - Returns an integer > 0, strictly greater than any value
              previously returned for ``sequence_name``.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use; a concurrent creator may win the unique constraint
            savepoint = self.session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self.session.add(counter)
                self.session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self.session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing, or None if never used."""
        return self.session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one_or_none()

    def reset(self, sequence_name: str, value: int = 0) -> None:
        """
        Set a sequence to ``value``.

        WARNING: tests and data migrations only.  The next allocation
        returns ``value + 1``.
        """
        counter = self._locked_counter(sequence_name)
        if counter is None:
            self.session.add(SequenceCounter(name=sequence_name, current_value=value))
        else:
            counter.current_value = value
        self.session.flush()
