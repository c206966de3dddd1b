"""ORM models.  Importing this package registers every table on Base.metadata."""

from workflow_kernel.models.audit_log import AuditAction, AuditLogEntry
from workflow_kernel.models.documents import (
    DOCUMENT_MODELS,
    Expense,
    PurchaseRequisition,
    RequisitionLineItem,
    SubmittableDocument,
    Timesheet,
    TimesheetEntry,
)
from workflow_kernel.models.invoice import Company, Contact, Invoice
from workflow_kernel.models.notification import NotificationModel
from workflow_kernel.models.organization import Department, Organization, OrganizationMember
from workflow_kernel.models.reminder import (
    ReminderLogEntryModel,
    ReminderSequenceModel,
    ReminderStepModel,
)
from workflow_kernel.models.workflow import ApprovalRequestModel, ApprovalWorkflowModel

__all__ = [
    "AuditAction",
    "AuditLogEntry",
    "DOCUMENT_MODELS",
    "SubmittableDocument",
    "Timesheet",
    "TimesheetEntry",
    "Expense",
    "PurchaseRequisition",
    "RequisitionLineItem",
    "Company",
    "Contact",
    "Invoice",
    "NotificationModel",
    "Organization",
    "Department",
    "OrganizationMember",
    "ReminderSequenceModel",
    "ReminderStepModel",
    "ReminderLogEntryModel",
    "ApprovalWorkflowModel",
    "ApprovalRequestModel",
]
