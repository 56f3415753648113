"""
Module: commodity_kernel.models.audit_log
Responsibility: ORM persistence for the user-facing audit trail of
    transfer operations (create, update, update_status, delete).
Architecture position: Kernel > Models.  May import from db/base.py only.

Audit relevance:
    Written best-effort after the ledger transaction commits.  A missing
    audit row never implies a missing ledger effect.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from commodity_kernel.db.base import Base, UUIDString


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    UPDATE_STATUS = "update_status"
    DELETE = "delete"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    __table_args__ = (
        Index("idx_audit_logs_auditable", "auditable_type", "auditable_id"),
    )

    auditable_type: Mapped[str] = mapped_column(String(50), nullable=False)
    auditable_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)

    user_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    user_role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    old_values: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    new_values: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
