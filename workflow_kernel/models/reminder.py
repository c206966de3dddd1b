"""
Module: workflow_kernel.models.reminder
Responsibility: ORM persistence for reminder sequences, their steps, and
    the reminder log.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - UNIQUE(invoice_id, step_id) on the log: two senders racing for the
      same step cannot both commit; the second insert fails.
    - The log is append-only (ORM listeners below).
    - Step numbers are unique within a sequence.

Failure modes:
    - IntegrityError on a duplicate (invoice_id, step_id) log row.
    - ImmutabilityViolationError on log UPDATE/DELETE.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workflow_kernel.db.base import Base, TrackedBase, UUIDString
from workflow_kernel.domain.reminders import (
    EscalationLevel,
    ReminderLogEntry,
    ReminderSequence,
    ReminderStep,
)
from workflow_kernel.exceptions import ImmutabilityViolationError

_LEVEL_CHECK = "escalation_level IN ('standard', 'urgent', 'final')"


class ReminderSequenceModel(TrackedBase):
    __tablename__ = "reminder_sequences"

    __table_args__ = (
        Index("idx_reminder_sequences_org", "organization_id", "is_active", "is_default"),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("organizations.id"), nullable=False,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    steps: Mapped[list[ReminderStepModel]] = relationship(
        back_populates="sequence",
        order_by="ReminderStepModel.step_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dto(self) -> ReminderSequence:
        return ReminderSequence(
            sequence_id=self.id,
            organization_id=self.organization_id,
            name=self.name,
            is_default=self.is_default,
            steps=tuple(step.to_dto() for step in self.steps),
        )


class ReminderStepModel(Base):
    __tablename__ = "reminder_steps"

    __table_args__ = (
        UniqueConstraint("sequence_id", "step_number", name="uq_reminder_step_number"),
        CheckConstraint("days_after_due >= 0", name="ck_reminder_steps_days_non_negative"),
        CheckConstraint(_LEVEL_CHECK, name="ck_reminder_steps_valid_level"),
    )

    sequence_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("reminder_sequences.id"), nullable=False,
    )
    step_number: Mapped[int] = mapped_column(Integer, nullable=False)
    days_after_due: Mapped[int] = mapped_column(Integer, nullable=False)
    subject_template: Mapped[str] = mapped_column(String(500), nullable=False)
    body_template: Mapped[str] = mapped_column(Text, nullable=False, default="")
    escalation_level: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EscalationLevel.STANDARD.value,
    )

    sequence: Mapped[ReminderSequenceModel] = relationship(back_populates="steps")

    def to_dto(self) -> ReminderStep:
        return ReminderStep(
            step_id=self.id,
            step_number=self.step_number,
            days_after_due=self.days_after_due,
            subject_template=self.subject_template,
            body_template=self.body_template,
            escalation_level=EscalationLevel(self.escalation_level),
        )


class ReminderLogEntryModel(Base):
    """Durable proof that one reminder (step) went out for one invoice."""

    __tablename__ = "reminder_log_entries"

    __table_args__ = (
        UniqueConstraint("invoice_id", "step_id", name="uq_reminder_log_invoice_step"),
        CheckConstraint(_LEVEL_CHECK, name="ck_reminder_log_valid_level"),
        Index("idx_reminder_log_invoice_sent", "invoice_id", "sent_at"),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("organizations.id"), nullable=False,
    )
    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("invoices.id"), nullable=False,
    )
    # NULL for a fallback reminder sent without a configured step.
    step_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("reminder_steps.id"), nullable=True,
    )
    recipient_email: Mapped[str] = mapped_column(String(320), nullable=False)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    escalation_level: Mapped[str] = mapped_column(String(20), nullable=False)
    days_overdue: Mapped[int] = mapped_column(Integer, nullable=False)
    sent_at: Mapped[datetime] = mapped_column(nullable=False)
    sent_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    def __repr__(self) -> str:
        return f"<ReminderLogEntry invoice={self.invoice_id} step={self.step_id}>"

    def to_dto(self) -> ReminderLogEntry:
        return ReminderLogEntry(
            entry_id=self.id,
            organization_id=self.organization_id,
            invoice_id=self.invoice_id,
            step_id=self.step_id,
            recipient_email=self.recipient_email,
            subject=self.subject,
            escalation_level=EscalationLevel(self.escalation_level),
            days_overdue=self.days_overdue,
            sent_at=self.sent_at,
            sent_by_id=self.sent_by_id,
        )


# =============================================================================
# ORM-Level Immutability for the Reminder Log (Append-Only)
# =============================================================================


@event.listens_for(ReminderLogEntryModel, "before_update")
def prevent_reminder_log_update(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="ReminderLogEntry",
        entity_id=str(target.id),
        reason="Reminder log entries are append-only -- cannot modify",
    )


@event.listens_for(ReminderLogEntryModel, "before_delete")
def prevent_reminder_log_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="ReminderLogEntry",
        entity_id=str(target.id),
        reason="Reminder log entries are append-only -- cannot delete",
    )
