"""
SqlAuditRecorder -- writes ``audit_logs`` rows.

Implements the AuditRecorder port.  Only flushes; TransferService runs
each audit write in its own unit of work after the ledger unit of work
has committed, and swallows (logs) any failure.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from commodity_kernel.domain.clock import Clock, SystemClock
from commodity_kernel.logging_config import get_logger
from commodity_kernel.models.audit_log import AuditLog
from commodity_kernel.services.base import BaseService

logger = get_logger("services.audit")


class SqlAuditRecorder(BaseService):
    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def log_action(
        self,
        *,
        auditable_type: str,
        auditable_id: UUID,
        action: str,
        user_id: UUID | None,
        user_role: str | None,
        old_values: dict[str, Any] | None,
        new_values: dict[str, Any] | None,
        ip_address: str | None,
        user_agent: str | None,
    ) -> None:
        entry = AuditLog(
            auditable_type=auditable_type,
            auditable_id=auditable_id,
            action=action,
            user_id=user_id,
            user_role=user_role,
            old_values=old_values,
            new_values=new_values,
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=self._clock.now(),
        )
        self.session.add(entry)
        self.session.flush()
        logger.debug(
            "audit_log_recorded",
            extra={"auditable_type": auditable_type, "action": action},
        )

    def history(self, auditable_type: str, auditable_id: UUID) -> list[AuditLog]:
        """Audit rows of one record, oldest first."""
        return list(
            self.session.execute(
                select(AuditLog)
                .where(
                    AuditLog.auditable_type == auditable_type,
                    AuditLog.auditable_id == auditable_id,
                )
                .order_by(AuditLog.created_at, AuditLog.id)
            ).scalars()
        )
