"""
Submittable document kinds (``workflow_kernel.domain.documents``).

Responsibility
--------------
Names the three document kinds that can enter the approval pipeline,
their status vocabularies, and the frozen snapshot the services hand
back to callers.  The registry here is the one place that says which
status a kind is submitted *from* and *to*.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from workflow_kernel.exceptions import UnknownDocumentTypeError


class DocumentKind(str, Enum):
    TIMESHEET = "timesheet"
    EXPENSE = "expense"
    PURCHASE_REQUISITION = "purchase_requisition"


class TimesheetStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class ExpenseStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    REIMBURSED = "reimbursed"


class RequisitionStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    ORDERED = "ordered"
    RECEIVED = "received"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class DocumentKindSpec:
    """Static facts about one document kind."""

    kind: DocumentKind
    label: str
    statuses: tuple[str, ...]
    initial_status: str = "draft"
    submitted_status: str = "submitted"

    def status_check_sql(self) -> str:
        """SQL fragment for the kind's status CHECK constraint."""
        quoted = ", ".join(f"'{s}'" for s in self.statuses)
        return f"status IN ({quoted})"


DOCUMENT_KINDS: dict[DocumentKind, DocumentKindSpec] = {
    DocumentKind.TIMESHEET: DocumentKindSpec(
        kind=DocumentKind.TIMESHEET,
        label="Timesheet",
        statuses=tuple(s.value for s in TimesheetStatus),
    ),
    DocumentKind.EXPENSE: DocumentKindSpec(
        kind=DocumentKind.EXPENSE,
        label="Expense",
        statuses=tuple(s.value for s in ExpenseStatus),
    ),
    DocumentKind.PURCHASE_REQUISITION: DocumentKindSpec(
        kind=DocumentKind.PURCHASE_REQUISITION,
        label="Purchase requisition",
        statuses=tuple(s.value for s in RequisitionStatus),
    ),
}


def lookup_kind(entity_type: str | DocumentKind) -> DocumentKindSpec:
    """Return the kind descriptor for ``entity_type`` or raise UnknownDocumentTypeError."""
    try:
        return DOCUMENT_KINDS[DocumentKind(entity_type)]
    except ValueError:
        raise UnknownDocumentTypeError(str(entity_type)) from None


@dataclass(frozen=True)
class DocumentSnapshot:
    """Read-only view of a submittable document after a guard decision."""

    entity_type: DocumentKind
    document_id: UUID
    organization_id: UUID
    owner_id: UUID
    status: str
    reference: str
    submitted_at: datetime | None = None
    submitted_by_id: UUID | None = None

    @property
    def label(self) -> str:
        return DOCUMENT_KINDS[self.entity_type].label
