"""
Invoice reminder stepping (``workflow_kernel.domain.reminders``).

Responsibility
--------------
Pure functions behind the escalation sequencer: how overdue an invoice
is, whether it may be reminded at all, which configured step fires
next, and what the rendered subject and body say.  The service layer
supplies the data and writes the log entry; nothing here touches a
session.

Invariants enforced
-------------------
* Days overdue is ``floor((now - due_date) / 1 day)`` with the due date
  taken as midnight UTC.
* Steps are considered in ascending ``step_number``.  The first step
  that is unsent and whose ``days_after_due`` threshold is met wins,
  even when a later step is also eligible.
* A step id present in ``sent_step_ids`` is never selected.
* Without an active sequence the reminder is still plannable; subject
  and escalation level are synthesized from days overdue.  With a
  sequence, a call that finds no step due plans nothing.

Failure modes
-------------
* InvoiceAlreadyPaidError / InvoiceStillDraftError /
  InvoiceCancelledError from the invoice status, checked before
  InvoiceNotYetOverdueError.
* NoReminderStepDueError when a sequence is configured but none of its
  unsent steps has reached its threshold.
* NoReminderRecipientError when neither contact nor company has an
  email address.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping
from uuid import UUID

from workflow_kernel.exceptions import (
    InvoiceAlreadyPaidError,
    InvoiceCancelledError,
    InvoiceNotYetOverdueError,
    InvoiceStillDraftError,
    NoReminderRecipientError,
    NoReminderStepDueError,
)


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


class EscalationLevel(str, Enum):
    STANDARD = "standard"
    URGENT = "urgent"
    FINAL = "final"


DEFAULT_SUBJECT_TEMPLATES: dict[EscalationLevel, str] = {
    EscalationLevel.STANDARD: "Payment reminder: Invoice {{invoice_number}}",
    EscalationLevel.URGENT: "Urgent: Invoice {{invoice_number}} is {{days_overdue}} days overdue",
    EscalationLevel.FINAL: "Final notice: Invoice {{invoice_number}}",
}

DEFAULT_BODY_TEMPLATE = (
    "Dear {{client_name}},\n\n"
    "Invoice {{invoice_number}} for {{amount_due}} was due on {{due_date}} "
    "and is now {{days_overdue}} days overdue. Please arrange payment at "
    "your earliest convenience."
)


@dataclass(frozen=True)
class ReminderPolicy:
    """Fallback subject, body and levels for organizations without a sequence."""

    urgent_after_days: int = 30
    final_after_days: int = 60
    subject_templates: Mapping[EscalationLevel, str] = field(
        default_factory=lambda: dict(DEFAULT_SUBJECT_TEMPLATES)
    )
    body_template: str = DEFAULT_BODY_TEMPLATE


@dataclass(frozen=True)
class ReminderStep:
    step_id: UUID
    step_number: int
    days_after_due: int
    subject_template: str
    body_template: str
    escalation_level: EscalationLevel


@dataclass(frozen=True)
class ReminderSequence:
    sequence_id: UUID
    organization_id: UUID
    name: str
    is_default: bool
    steps: tuple[ReminderStep, ...] = ()


@dataclass(frozen=True)
class InvoiceFacts:
    """What the planner needs to know about one invoice."""

    invoice_id: UUID
    organization_id: UUID
    owner_id: UUID
    invoice_number: str
    status: InvoiceStatus
    due_date: date
    amount_due: Decimal
    currency: str
    client_name: str
    contact_email: str | None = None
    company_email: str | None = None

    @property
    def recipient_email(self) -> str | None:
        return self.contact_email or self.company_email or None


@dataclass(frozen=True)
class ReminderPlan:
    """Everything a send needs, computed before anything is written."""

    invoice_id: UUID
    organization_id: UUID
    owner_id: UUID
    invoice_number: str
    days_overdue: int
    escalation_level: EscalationLevel
    subject: str
    body: str
    recipient_email: str
    step: ReminderStep | None = None
    sequence_id: UUID | None = None

    @property
    def step_id(self) -> UUID | None:
        return self.step.step_id if self.step is not None else None


@dataclass(frozen=True)
class ReminderLogEntry:
    entry_id: UUID
    organization_id: UUID
    invoice_id: UUID
    step_id: UUID | None
    recipient_email: str
    subject: str
    escalation_level: EscalationLevel
    days_overdue: int
    sent_at: datetime
    sent_by_id: UUID


@dataclass(frozen=True)
class ReminderSendResult:
    log_entry: ReminderLogEntry
    recipient: str
    subject: str
    days_overdue: int
    escalation_level: EscalationLevel


# =========================================================================
# Pure functions
# =========================================================================


def days_overdue(due_date: date, now: datetime) -> int:
    """Whole days since midnight UTC of ``due_date``; negative before it."""
    due_start = datetime.combine(due_date, time.min, tzinfo=timezone.utc)
    elapsed = now.astimezone(timezone.utc) - due_start
    return math.floor(elapsed.total_seconds() / 86400)


def check_remindable(invoice: InvoiceFacts, overdue_days: int) -> None:
    """Raise the matching PreconditionFailedError if no reminder may go out."""
    if invoice.status is InvoiceStatus.PAID:
        raise InvoiceAlreadyPaidError(invoice.invoice_number)
    if invoice.status is InvoiceStatus.DRAFT:
        raise InvoiceStillDraftError(invoice.invoice_number)
    if invoice.status is InvoiceStatus.CANCELLED:
        raise InvoiceCancelledError(invoice.invoice_number)
    if overdue_days < 0:
        raise InvoiceNotYetOverdueError(invoice.invoice_number, -overdue_days)


def select_next_step(
    steps: Iterable[ReminderStep],
    sent_step_ids: frozenset[UUID] | set[UUID],
    overdue_days: int,
) -> ReminderStep | None:
    """First unsent step, by ascending step_number, whose threshold is met."""
    for step in sorted(steps, key=lambda s: s.step_number):
        if step.step_id in sent_step_ids:
            continue
        if overdue_days >= step.days_after_due:
            return step
    return None


def fallback_escalation_level(overdue_days: int, policy: ReminderPolicy) -> EscalationLevel:
    if overdue_days > policy.final_after_days:
        return EscalationLevel.FINAL
    if overdue_days > policy.urgent_after_days:
        return EscalationLevel.URGENT
    return EscalationLevel.STANDARD


_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render_template(template: str, values: Mapping[str, object]) -> str:
    """Substitute ``{{name}}`` placeholders; unknown names are left as-is."""

    def _sub(match: re.Match) -> str:
        key = match.group(1)
        if key in values:
            return str(values[key])
        return match.group(0)

    return _PLACEHOLDER.sub(_sub, template)


def template_values(invoice: InvoiceFacts, overdue_days: int) -> dict[str, object]:
    return {
        "invoice_number": invoice.invoice_number,
        "client_name": invoice.client_name,
        "days_overdue": overdue_days,
        "amount_due": f"{invoice.currency} {invoice.amount_due:.2f}",
        "due_date": invoice.due_date.isoformat(),
    }


def plan_reminder(
    invoice: InvoiceFacts,
    sequence: ReminderSequence | None,
    sent_step_ids: frozenset[UUID],
    now: datetime,
    policy: ReminderPolicy,
) -> ReminderPlan:
    """
    Decide what the next reminder for ``invoice`` looks like.

    Raises:
        InvoiceAlreadyPaidError, InvoiceStillDraftError, InvoiceCancelledError,
        InvoiceNotYetOverdueError, NoReminderStepDueError,
        NoReminderRecipientError.
    """
    overdue = days_overdue(invoice.due_date, now)
    check_remindable(invoice, overdue)

    step = None
    if sequence is not None:
        step = select_next_step(sequence.steps, sent_step_ids, overdue)
        if step is None:
            pending = [s.days_after_due for s in sequence.steps if s.step_id not in sent_step_ids]
            raise NoReminderStepDueError(
                invoice.invoice_number, overdue, min(pending) if pending else None,
            )

    values = template_values(invoice, overdue)
    if step is not None:
        level = step.escalation_level
        subject = render_template(step.subject_template, values)
        body = render_template(step.body_template or policy.body_template, values)
    else:
        level = fallback_escalation_level(overdue, policy)
        subject = render_template(policy.subject_templates[level], values)
        body = render_template(policy.body_template, values)

    recipient = invoice.recipient_email
    if not recipient:
        raise NoReminderRecipientError(invoice.invoice_number)

    return ReminderPlan(
        invoice_id=invoice.invoice_id,
        organization_id=invoice.organization_id,
        owner_id=invoice.owner_id,
        invoice_number=invoice.invoice_number,
        days_overdue=overdue,
        escalation_level=level,
        subject=subject,
        body=body,
        recipient_email=recipient,
        step=step,
        sequence_id=sequence.sequence_id if sequence is not None else None,
    )
