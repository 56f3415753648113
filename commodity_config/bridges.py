"""
Config -> Kernel Bridges.

Turn KernelSettings into kernel objects.  These live in commodity_config
(the producer) because the kernel must never import commodity_config.

Usage:
    settings = get_active_config()
    init_engine_from_settings(settings)
    with session_scope() as session:
        service = build_transfer_service(session, settings)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from commodity_config.schema import KernelSettings
from commodity_kernel.db.engine import init_engine_from_url
from commodity_kernel.domain.clock import Clock
from commodity_kernel.domain.delta_calculator import get_delta_policy
from commodity_kernel.domain.transfers import TransferStatus, TransferType
from commodity_kernel.services.transfer_service import (
    TransferService,
    build_sql_transfer_service,
)


def code_prefixes(settings: KernelSettings) -> dict[TransferType, str]:
    return {TransferType(name): prefix for name, prefix in settings.codes.prefixes.items()}


def init_engine_from_settings(settings: KernelSettings) -> Engine:
    db = settings.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
    )


def build_transfer_service(
    session: Session,
    settings: KernelSettings,
    clock: Clock | None = None,
    audit_enabled: bool = True,
) -> TransferService:
    return build_sql_transfer_service(
        session,
        clock=clock,
        delta_policy=get_delta_policy(settings.ledger.delta_policy),
        default_status=TransferStatus(settings.transfers.default_status),
        default_page_size=settings.transfers.default_page_size,
        code_prefixes=code_prefixes(settings),
        code_padding=settings.codes.padding,
        code_max_attempts=settings.codes.max_attempts,
        audit_enabled=audit_enabled,
    )
