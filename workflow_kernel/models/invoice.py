"""
Module: workflow_kernel.models.invoice
Responsibility: ORM persistence for invoices and the counterparties a
    reminder is addressed to (company, contact).
Architecture position: Kernel > Models.  May import from db/ and domain/.

Only the fields the reminder sequencer reads are modelled; invoice line
items and payments live elsewhere.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workflow_kernel.db.base import TrackedBase, UUIDString
from workflow_kernel.domain.reminders import InvoiceFacts, InvoiceStatus


class Company(TrackedBase):
    __tablename__ = "companies"

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("organizations.id"), nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    def __repr__(self) -> str:
        return f"<Company {self.name}>"


class Contact(TrackedBase):
    __tablename__ = "contacts"

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("organizations.id"), nullable=False,
    )
    company_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("companies.id"), nullable=True,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Invoice(TrackedBase):
    __tablename__ = "invoices"

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'sent', 'viewed', 'partially_paid', 'paid', "
            "'overdue', 'cancelled', 'disputed')",
            name="ck_invoices_valid_status",
        ),
        UniqueConstraint("organization_id", "invoice_number", name="uq_invoice_number"),
        Index("idx_invoices_org_status_due", "organization_id", "status", "due_date"),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("organizations.id"), nullable=False,
    )
    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft")
    company_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("companies.id"), nullable=True,
    )
    contact_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("contacts.id"), nullable=True,
    )
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    company: Mapped[Company | None] = relationship(lazy="joined")
    contact: Mapped[Contact | None] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number} status={self.status}>"

    @property
    def amount_due(self) -> Decimal:
        return (self.total_amount or Decimal("0")) - (self.amount_paid or Decimal("0"))

    def to_facts(self) -> InvoiceFacts:
        """Snapshot the fields the reminder planner reads."""
        if self.company is not None:
            client_name = self.company.name
        elif self.contact is not None:
            client_name = self.contact.full_name
        else:
            client_name = "Customer"
        return InvoiceFacts(
            invoice_id=self.id,
            organization_id=self.organization_id,
            owner_id=self.owner_id,
            invoice_number=self.invoice_number,
            status=InvoiceStatus(self.status),
            due_date=self.due_date,
            amount_due=self.amount_due,
            currency=self.currency,
            client_name=client_name,
            contact_email=self.contact.email if self.contact is not None else None,
            company_email=self.company.email if self.company is not None else None,
        )
