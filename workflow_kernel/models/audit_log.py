"""
Module: workflow_kernel.models.audit_log
Responsibility: ORM persistence for the append-only audit log.

Every mutation the engine makes (document submitted, submission left
unrouted, approval request created, reminder sent) gets one row with
before/after values.  Rows are written by AuditorService on a best-effort
basis and are never updated or deleted.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import Index, String, event
from sqlalchemy.orm import Mapped, mapped_column

from workflow_kernel.db.base import Base, UUIDString
from workflow_kernel.exceptions import ImmutabilityViolationError


class AuditAction(str, Enum):
    DOCUMENT_SUBMITTED = "document_submitted"
    SUBMISSION_UNROUTED = "submission_unrouted"
    APPROVAL_REQUEST_CREATED = "approval_request_created"
    REMINDER_SENT = "reminder_sent"


class AuditLogEntry(Base):
    __tablename__ = "audit_log_entries"

    __table_args__ = (
        Index("idx_audit_log_entity", "entity_type", "entity_id", "occurred_at"),
        Index("idx_audit_log_org", "organization_id", "occurred_at"),
    )

    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    old_values: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)
    new_values: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLogEntry {self.action} {self.entity_type}/{self.entity_id}>"


@event.listens_for(AuditLogEntry, "before_update")
def prevent_audit_update(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="AuditLogEntry",
        entity_id=str(target.id),
        reason="Audit log entries are append-only -- cannot modify",
    )


@event.listens_for(AuditLogEntry, "before_delete")
def prevent_audit_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="AuditLogEntry",
        entity_id=str(target.id),
        reason="Audit log entries are append-only -- cannot delete",
    )
