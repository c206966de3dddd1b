"""
Module: workflow_kernel.models.documents
Responsibility: ORM persistence for the submittable documents (timesheets,
    expenses, purchase requisitions) and their child rows.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - Status values are limited to each kind's vocabulary by a CHECK
      constraint.
    - ``status`` leaves ``draft`` only through the SubmissionGuard's
      conditional UPDATE; nothing in this module mutates it.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workflow_kernel.db.base import Base, TrackedBase, UUIDString
from workflow_kernel.db.types import UTCDateTime
from workflow_kernel.domain.documents import (
    DOCUMENT_KINDS,
    DocumentKind,
    DocumentSnapshot,
)


class SubmittableDocument(TrackedBase):
    """Columns shared by every document that can be submitted for approval."""

    __abstract__ = True

    # Set by each concrete document class.
    document_kind = None

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("organizations.id"), nullable=False,
    )
    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft")
    submitted_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    submitted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    @property
    def reference(self) -> str:
        """Short human reference used in messages."""
        return str(self.id)

    def to_snapshot(self) -> DocumentSnapshot:
        return DocumentSnapshot(
            entity_type=self.document_kind,
            document_id=self.id,
            organization_id=self.organization_id,
            owner_id=self.owner_id,
            status=self.status,
            reference=self.reference,
            submitted_at=self.submitted_at,
            submitted_by_id=self.submitted_by_id,
        )


# =============================================================================
# Timesheets
# =============================================================================


class Timesheet(SubmittableDocument):
    __tablename__ = "timesheets"
    document_kind = DocumentKind.TIMESHEET

    __table_args__ = (
        CheckConstraint(
            DOCUMENT_KINDS[DocumentKind.TIMESHEET].status_check_sql(),
            name="ck_timesheets_valid_status",
        ),
        Index("idx_timesheet_org_owner", "organization_id", "owner_id"),
    )

    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    entries: Mapped[list[TimesheetEntry]] = relationship(
        back_populates="timesheet",
        order_by="TimesheetEntry.work_date",
        cascade="all, delete-orphan",
    )

    @property
    def reference(self) -> str:
        return f"{self.period_start.isoformat()} to {self.period_end.isoformat()}"


class TimesheetEntry(Base):
    __tablename__ = "timesheet_entries"

    timesheet_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("timesheets.id"), nullable=False, index=True,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    hours: Mapped[Decimal] = mapped_column(nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    timesheet: Mapped[Timesheet] = relationship(back_populates="entries")


# =============================================================================
# Expenses
# =============================================================================


class Expense(SubmittableDocument):
    __tablename__ = "expenses"
    document_kind = DocumentKind.EXPENSE

    __table_args__ = (
        CheckConstraint(
            DOCUMENT_KINDS[DocumentKind.EXPENSE].status_check_sql(),
            name="ck_expenses_valid_status",
        ),
        Index("idx_expense_org_owner", "organization_id", "owner_id"),
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    is_reimbursable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    receipt_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    @property
    def reference(self) -> str:
        return f"'{self.title}'"


# =============================================================================
# Purchase requisitions
# =============================================================================


class PurchaseRequisition(SubmittableDocument):
    __tablename__ = "purchase_requisitions"
    document_kind = DocumentKind.PURCHASE_REQUISITION

    __table_args__ = (
        CheckConstraint(
            DOCUMENT_KINDS[DocumentKind.PURCHASE_REQUISITION].status_check_sql(),
            name="ck_purchase_requisitions_valid_status",
        ),
        Index("idx_requisition_org_owner", "organization_id", "owner_id"),
    )

    requisition_number: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)

    line_items: Mapped[list[RequisitionLineItem]] = relationship(
        back_populates="requisition",
        cascade="all, delete-orphan",
    )

    @property
    def reference(self) -> str:
        return self.requisition_number


class RequisitionLineItem(Base):
    __tablename__ = "requisition_line_items"

    requisition_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("purchase_requisitions.id"), nullable=False, index=True,
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    requisition: Mapped[PurchaseRequisition] = relationship(back_populates="line_items")


DOCUMENT_MODELS: dict[DocumentKind, type[SubmittableDocument]] = {
    DocumentKind.TIMESHEET: Timesheet,
    DocumentKind.EXPENSE: Expense,
    DocumentKind.PURCHASE_REQUISITION: PurchaseRequisition,
}
