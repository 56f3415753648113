"""
Kernel settings schema.

Frozen dataclasses parsed from YAML by ``commodity_config.loader``.
Validation happens in ``__post_init__`` so an invalid file fails at load
time, not on the first transfer.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DELTA_POLICIES = ("coupled", "independent")
INITIAL_STATUSES = ("pending", "validated")


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite://"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url must not be empty")
        if self.pool_size < 1:
            raise ValueError(f"database.pool_size must be >= 1, got {self.pool_size}")
        if self.max_overflow < 0:
            raise ValueError(f"database.max_overflow must be >= 0, got {self.max_overflow}")


@dataclass(frozen=True)
class CodeSettings:
    """Transfer code format ``<PREFIX>-<YYYY>-<NNNNN>``."""

    prefixes: dict[str, str] = field(
        default_factory=lambda: {"GROUPAGE": "GRP", "STANDARD": "TRP"}
    )
    padding: int = 5
    max_attempts: int = 10

    def __post_init__(self) -> None:
        missing = {"GROUPAGE", "STANDARD"} - set(self.prefixes)
        if missing:
            raise ValueError(f"codes.prefixes missing transfer types: {sorted(missing)}")
        if self.padding < 1:
            raise ValueError(f"codes.padding must be >= 1, got {self.padding}")
        if self.max_attempts < 1:
            raise ValueError(f"codes.max_attempts must be >= 1, got {self.max_attempts}")


@dataclass(frozen=True)
class LedgerSettings:
    delta_policy: str = "coupled"

    def __post_init__(self) -> None:
        if self.delta_policy not in DELTA_POLICIES:
            raise ValueError(
                f"ledger.delta_policy must be one of {DELTA_POLICIES}, got {self.delta_policy!r}"
            )


@dataclass(frozen=True)
class TransferSettings:
    default_status: str = "validated"
    default_page_size: int = 20

    def __post_init__(self) -> None:
        if self.default_status not in INITIAL_STATUSES:
            raise ValueError(
                f"transfers.default_status must be one of {INITIAL_STATUSES}, "
                f"got {self.default_status!r}"
            )
        if self.default_page_size < 1:
            raise ValueError(
                f"transfers.default_page_size must be >= 1, got {self.default_page_size}"
            )


@dataclass(frozen=True)
class KernelSettings:
    """Root of the configuration tree."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    codes: CodeSettings = field(default_factory=CodeSettings)
    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    transfers: TransferSettings = field(default_factory=TransferSettings)
