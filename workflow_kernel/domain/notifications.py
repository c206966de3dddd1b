"""Notification message builders for approval routing and reminders."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from workflow_kernel.domain.approval import NotificationMessage
from workflow_kernel.domain.documents import DocumentSnapshot
from workflow_kernel.domain.reminders import ReminderPlan

APPROVAL_REQUIRED = "approval_required"
INVOICE_REMINDER_SENT = "invoice_reminder_sent"


def approval_required_message(
    document: DocumentSnapshot,
    approval_request_id: UUID | None,
) -> NotificationMessage:
    return NotificationMessage(
        notification_type=APPROVAL_REQUIRED,
        title=f"{document.label} awaiting approval",
        message=(
            f"{document.label} {document.reference} was submitted and "
            f"needs your review."
        ),
        payload={
            "entity_type": document.entity_type.value,
            "entity_id": str(document.document_id),
            "approval_request_id": (
                str(approval_request_id) if approval_request_id else None
            ),
        },
    )


def reminder_sent_message(plan: ReminderPlan) -> NotificationMessage:
    return NotificationMessage(
        notification_type=INVOICE_REMINDER_SENT,
        title=f"Reminder sent for invoice {plan.invoice_number}",
        message=(
            f"A {plan.escalation_level.value} reminder was sent to "
            f"{plan.recipient_email} ({plan.days_overdue} days overdue)."
        ),
        payload={
            "entity_type": "invoice",
            "entity_id": str(plan.invoice_id),
            "step_id": str(plan.step_id) if plan.step_id else None,
            "escalation_level": plan.escalation_level.value,
        },
    )


@dataclass(frozen=True)
class NotificationRecord:
    notification_id: UUID
    organization_id: UUID
    recipient_id: UUID
    notification_type: str
    title: str
    message: str
    payload: dict[str, Any]
    is_read: bool
    created_at: datetime
