"""
AuditorService -- append-only audit emitter.

Responsibility:
    Records one before/after entry per mutation the engine performs, and
    answers audit trail queries for an entity.

Architecture position:
    Kernel > Services -- called by ApprovalEngine and EscalationSequencer
    after their critical-path writes.

Invariants enforced:
    - Append-only: AuditLogEntry rows are never modified or deleted (ORM
      listeners on the model).
    - Best-effort: a failed audit insert is rolled back to its own
      SAVEPOINT, logged as ``audit_write_failed``, and does not undo the
      mutation being audited.

Failure modes:
    - None raised from ``record()``; store and serialization errors are
      logged and swallowed.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from workflow_kernel.domain.clock import Clock, SystemClock
from workflow_kernel.logging_config import get_logger
from workflow_kernel.models.audit_log import AuditAction, AuditLogEntry
from workflow_kernel.services.base import BaseService
from workflow_kernel.utils.serialization import to_jsonable

logger = get_logger("services.auditor")


@dataclass(frozen=True)
class AuditRecord:
    """A single entry in an entity's audit trail."""

    entry_id: UUID
    organization_id: UUID
    actor_id: UUID
    action: AuditAction
    entity_type: str
    entity_id: UUID
    old_values: dict[str, Any] | None
    new_values: dict[str, Any] | None
    occurred_at: datetime


def _to_record(entry: AuditLogEntry) -> AuditRecord:
    return AuditRecord(
        entry_id=entry.id,
        organization_id=entry.organization_id,
        actor_id=entry.actor_id,
        action=AuditAction(entry.action),
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        old_values=entry.old_values,
        new_values=entry.new_values,
        occurred_at=entry.occurred_at,
    )


class AuditorService(BaseService[AuditLogEntry]):
    """Best-effort audit trail writer."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record(
        self,
        organization_id: UUID,
        actor_id: UUID,
        action: AuditAction,
        entity_type: str,
        entity_id: UUID,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> AuditRecord | None:
        """
        Append one audit entry.

        Returns:
            The written AuditRecord, or None if the write failed.
        """
        try:
            entry = AuditLogEntry(
                organization_id=organization_id,
                actor_id=actor_id,
                action=action.value,
                entity_type=entity_type,
                entity_id=entity_id,
                old_values=to_jsonable(old_values),
                new_values=to_jsonable(new_values),
                occurred_at=self._clock.now(),
            )
            with self.session.begin_nested():
                self._write(entry)
        except Exception:
            logger.error(
                "audit_write_failed",
                exc_info=True,
                extra={
                    "operation": action.value,
                    "entity_type": entity_type,
                    "entity_id": str(entity_id),
                },
            )
            return None

        logger.debug(
            "audit_recorded",
            extra={"action": action.value, "entity_id": str(entity_id)},
        )
        return _to_record(entry)

    def _write(self, entry: AuditLogEntry) -> None:
        self.session.add(entry)
        self.session.flush()

    def trail_for(self, entity_type: str, entity_id: UUID) -> list[AuditRecord]:
        """Audit entries for one entity, oldest first."""
        rows = self.session.execute(
            select(AuditLogEntry)
            .where(
                AuditLogEntry.entity_type == entity_type,
                AuditLogEntry.entity_id == entity_id,
            )
            .order_by(AuditLogEntry.occurred_at, AuditLogEntry.action)
        ).scalars().all()
        return [_to_record(row) for row in rows]
