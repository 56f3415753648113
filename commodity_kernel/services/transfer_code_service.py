"""
TransferCodeGenerator -- human-readable transfer codes.

Format ``<PREFIX>-<YYYY>-<NNNNN>``, e.g. ``GRP-2024-00042`` for the 42nd
GROUPAGE transfer of 2024.  The number comes from a per-prefix, per-year
counter; the year from the injected Clock.

A counter value whose code already exists (imported legacy data, a
counter reset) is skipped.  The loop is bounded: after ``max_attempts``
taken codes in a row TransferCodeExhaustedError is raised instead of
spinning.
"""

from __future__ import annotations

from collections.abc import Mapping

from commodity_kernel.domain.clock import Clock
from commodity_kernel.domain.ports import SequenceSource, TransferRepository
from commodity_kernel.domain.transfers import TransferType
from commodity_kernel.exceptions import TransferCodeExhaustedError
from commodity_kernel.logging_config import get_logger

logger = get_logger("services.transfer_code")

DEFAULT_PREFIXES: Mapping[TransferType, str] = {
    TransferType.GROUPAGE: "GRP",
    TransferType.STANDARD: "TRP",
}


def format_transfer_code(prefix: str, year: int, number: int, padding: int = 5) -> str:
    return f"{prefix}-{year}-{str(number).zfill(padding)}"


def sequence_name_for(prefix: str, year: int) -> str:
    return f"transfer_code.{prefix}.{year}"


class TransferCodeGenerator:
    """Allocates unique codes per (transfer type, year)."""

    def __init__(
        self,
        sequences: SequenceSource,
        transfers: TransferRepository,
        clock: Clock,
        prefixes: Mapping[TransferType, str] | None = None,
        padding: int = 5,
        max_attempts: int = 10,
    ):
        if padding < 1:
            raise ValueError(f"padding must be >= 1, got {padding}")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._sequences = sequences
        self._transfers = transfers
        self._clock = clock
        self._prefixes = dict(prefixes or DEFAULT_PREFIXES)
        self._padding = padding
        self._max_attempts = max_attempts

    def prefix_for(self, transfer_type: TransferType) -> str:
        return self._prefixes[TransferType(transfer_type)]

    def generate(self, transfer_type: TransferType) -> str:
        prefix = self.prefix_for(transfer_type)
        year = self._clock.current_year()
        sequence_name = sequence_name_for(prefix, year)

        for attempt in range(1, self._max_attempts + 1):
            number = self._sequences.next_value(sequence_name)
            code = format_transfer_code(prefix, year, number, self._padding)
            if not self._transfers.code_exists(code):
                logger.debug(
                    "transfer_code_allocated",
                    extra={"code": code, "attempt": attempt},
                )
                return code
            logger.info(
                "transfer_code_collision",
                extra={"code": code, "attempt": attempt},
            )

        raise TransferCodeExhaustedError(prefix, year, self._max_attempts)
