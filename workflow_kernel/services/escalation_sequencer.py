"""
EscalationSequencer -- overdue invoice reminders.

Responsibility:
    Plans the next reminder for an invoice (pure planning lives in
    ``domain.reminders``), writes the reminder log entry that makes the
    step unrepeatable, then notifies the invoice owner, hands the message
    to the outbound mailer and emits an audit entry.

Invariants enforced:
    - A step with a log entry for an invoice is never selected again.
    - The log insert is the serialization point.  UNIQUE(invoice_id,
      step_id) means a sender working from a stale ``sent_step_ids`` loses
      with ReminderAlreadySentError instead of sending a duplicate.
    - Only the log write is critical; notification, mail and audit are
      best-effort.

Failure modes:
    - InvoiceNotFoundError, InvoiceAlreadyPaidError, InvoiceStillDraftError,
      InvoiceCancelledError, InvoiceNotYetOverdueError,
      NoReminderStepDueError, NoReminderRecipientError.
    - ReminderAlreadySentError on a lost race for the same step.
    - DownstreamUnavailableError when the store fails on the critical path.
"""

from typing import Protocol
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workflow_kernel.domain.clock import Clock, SystemClock
from workflow_kernel.domain.notifications import reminder_sent_message
from workflow_kernel.domain.reminders import (
    ReminderLogEntry,
    ReminderPlan,
    ReminderPolicy,
    ReminderSendResult,
    ReminderStep,
    plan_reminder,
)
from workflow_kernel.exceptions import InvoiceNotFoundError, ReminderAlreadySentError
from workflow_kernel.logging_config import LogContext, get_logger
from workflow_kernel.models.audit_log import AuditAction
from workflow_kernel.models.invoice import Invoice
from workflow_kernel.models.reminder import ReminderLogEntryModel
from workflow_kernel.selectors.reminder_selector import ReminderSelector
from workflow_kernel.services.auditor_service import AuditorService
from workflow_kernel.services.base import BaseService, downstream_guard
from workflow_kernel.services.notification_service import NotificationService

logger = get_logger("services.escalation")


class ReminderMailer(Protocol):
    """Outbound delivery channel for reminder e-mails."""

    def send(self, recipient: str, subject: str, body: str) -> None:
        ...


class EscalationSequencer(BaseService[ReminderLogEntryModel]):

    def __init__(
        self,
        session: Session,
        auditor: AuditorService,
        notifications: NotificationService,
        clock: Clock | None = None,
        policy: ReminderPolicy | None = None,
        mailer: ReminderMailer | None = None,
    ):
        super().__init__(session)
        self._auditor = auditor
        self._notifications = notifications
        self._clock = clock or SystemClock()
        self._policy = policy or ReminderPolicy()
        self._mailer = mailer
        self._reminders = ReminderSelector(session)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load_invoice(self, invoice_id: UUID) -> Invoice:
        with downstream_guard("load_invoice"):
            invoice = self.session.get(Invoice, invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(str(invoice_id))
        return invoice

    def preview(self, invoice_id: UUID) -> ReminderPlan:
        """Plan the next reminder without writing anything."""
        facts = self._load_invoice(invoice_id).to_facts()
        with downstream_guard("load_reminder_state"):
            sequence = self._reminders.active_sequence(facts.organization_id)
            sent = self._reminders.sent_step_ids(invoice_id)
        return plan_reminder(facts, sequence, sent, self._clock.now(), self._policy)

    def next_step(self, invoice_id: UUID) -> ReminderStep | None:
        """The configured step the next send would fire, if any."""
        return self.preview(invoice_id).step

    def list_reminders(self, invoice_id: UUID) -> list[ReminderLogEntry]:
        """Reminder history for an invoice, most recent first."""
        self._load_invoice(invoice_id)
        with downstream_guard("list_reminders"):
            return self._reminders.list_reminders(invoice_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def send_reminder(self, invoice_id: UUID, actor_id: UUID) -> ReminderSendResult:
        """Plan and send the next reminder for ``invoice_id``."""
        with LogContext.bind(actor_id=actor_id, entity_type="invoice", entity_id=invoice_id):
            plan = self.preview(invoice_id)
            return self.send(plan, actor_id)

    def send(self, plan: ReminderPlan, actor_id: UUID) -> ReminderSendResult:
        """
        Record and deliver a planned reminder.

        The log write happens first; everything after it is best-effort.

        Raises:
            ReminderAlreadySentError: The plan's step was logged by someone
                else since the plan was computed.
        """
        row = ReminderLogEntryModel(
            organization_id=plan.organization_id,
            invoice_id=plan.invoice_id,
            step_id=plan.step_id,
            recipient_email=plan.recipient_email,
            subject=plan.subject,
            escalation_level=plan.escalation_level.value,
            days_overdue=plan.days_overdue,
            sent_at=self._clock.now(),
            sent_by_id=actor_id,
        )

        try:
            with downstream_guard("write_reminder_log"):
                with self.session.begin_nested():
                    self.session.add(row)
                    self.session.flush()
        except IntegrityError as exc:
            logger.warning(
                "reminder_already_sent",
                extra={
                    "invoice_id": str(plan.invoice_id),
                    "step_id": str(plan.step_id),
                },
            )
            raise ReminderAlreadySentError(str(plan.invoice_id), str(plan.step_id)) from exc

        entry = row.to_dto()
        logger.info(
            "reminder_sent",
            extra={
                "invoice_id": str(plan.invoice_id),
                "step_id": str(plan.step_id) if plan.step_id else None,
                "escalation_level": plan.escalation_level.value,
                "days_overdue": plan.days_overdue,
            },
        )

        self._deliver(plan)
        self._notifications.notify(
            plan.organization_id,
            [plan.owner_id],
            lambda _recipient: reminder_sent_message(plan),
        )
        self._auditor.record(
            organization_id=plan.organization_id,
            actor_id=actor_id,
            action=AuditAction.REMINDER_SENT,
            entity_type="invoice",
            entity_id=plan.invoice_id,
            new_values={
                "reminder_log_entry_id": entry.entry_id,
                "step_id": plan.step_id,
                "step_number": plan.step.step_number if plan.step else None,
                "recipient": plan.recipient_email,
                "subject": plan.subject,
                "escalation_level": plan.escalation_level,
                "days_overdue": plan.days_overdue,
            },
        )

        return ReminderSendResult(
            log_entry=entry,
            recipient=plan.recipient_email,
            subject=plan.subject,
            days_overdue=plan.days_overdue,
            escalation_level=plan.escalation_level,
        )

    def _deliver(self, plan: ReminderPlan) -> None:
        if self._mailer is None:
            return
        try:
            self._mailer.send(plan.recipient_email, plan.subject, plan.body)
        except Exception:
            logger.warning(
                "reminder_mail_failed",
                exc_info=True,
                extra={
                    "operation": "send_reminder_mail",
                    "invoice_id": str(plan.invoice_id),
                },
            )
