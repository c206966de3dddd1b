"""Services for the workflow kernel (write side)."""

from workflow_kernel.services.approval_engine import ApprovalEngine
from workflow_kernel.services.approval_ledger import ApprovalLedger
from workflow_kernel.services.auditor_service import AuditorService
from workflow_kernel.services.escalation_sequencer import EscalationSequencer, ReminderMailer
from workflow_kernel.services.notification_service import NotificationService
from workflow_kernel.services.submission_guard import SubmissionGuard

__all__ = [
    "ApprovalEngine",
    "ApprovalLedger",
    "AuditorService",
    "EscalationSequencer",
    "NotificationService",
    "ReminderMailer",
    "SubmissionGuard",
]
