"""
Module: workflow_kernel.selectors.reminder_selector
Responsibility: Reads for the escalation sequencer -- the organization's
    reminder sequence, the set of step ids already logged for an invoice,
    and the reminder history.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Sequence choice: among active sequences, the default-flagged one wins;
      ties fall back to most recently created.
    - History is ordered most-recent-first.
"""

from uuid import UUID

from sqlalchemy import select

from workflow_kernel.domain.reminders import ReminderLogEntry, ReminderSequence
from workflow_kernel.models.reminder import ReminderLogEntryModel, ReminderSequenceModel
from workflow_kernel.selectors.base import BaseSelector


class ReminderSelector(BaseSelector[ReminderLogEntryModel]):

    def active_sequence(self, organization_id: UUID) -> ReminderSequence | None:
        row = self.session.execute(
            select(ReminderSequenceModel)
            .where(
                ReminderSequenceModel.organization_id == organization_id,
                ReminderSequenceModel.is_active.is_(True),
            )
            .order_by(
                ReminderSequenceModel.is_default.desc(),
                ReminderSequenceModel.created_at.desc(),
                ReminderSequenceModel.id.desc(),
            )
            .limit(1)
        ).scalar_one_or_none()
        return row.to_dto() if row is not None else None

    def sent_step_ids(self, invoice_id: UUID) -> frozenset[UUID]:
        """Step ids with a log entry for ``invoice_id`` (fallback sends excluded)."""
        rows = self.session.execute(
            select(ReminderLogEntryModel.step_id).where(
                ReminderLogEntryModel.invoice_id == invoice_id,
                ReminderLogEntryModel.step_id.is_not(None),
            )
        ).scalars().all()
        return frozenset(rows)

    def list_reminders(self, invoice_id: UUID) -> list[ReminderLogEntry]:
        rows = self.session.execute(
            select(ReminderLogEntryModel)
            .where(ReminderLogEntryModel.invoice_id == invoice_id)
            .order_by(
                ReminderLogEntryModel.sent_at.desc(),
                ReminderLogEntryModel.days_overdue.desc(),
            )
        ).scalars().all()
        return [row.to_dto() for row in rows]
