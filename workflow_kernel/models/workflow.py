"""
Module: workflow_kernel.models.workflow
Responsibility: ORM persistence for workflow configurations and approval
    requests.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - approval_type limited to the three known routing tags.
    - At most one *pending* approval request per (entity_type, entity_id):
      a partial unique index on both PostgreSQL and SQLite turns a second
      concurrent insert into an IntegrityError.
    - Approval requests are never deleted.

Failure modes:
    - IntegrityError on a duplicate pending request.
    - ImmutabilityViolationError on approval request DELETE.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    event,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from workflow_kernel.db.base import Base, TrackedBase, UUIDString
from workflow_kernel.domain.approval import (
    ApprovalRequest,
    ApprovalRequestStatus,
    WorkflowConfig,
    parse_routing,
    total_steps_from_config,
)
from workflow_kernel.domain.documents import DocumentKind
from workflow_kernel.exceptions import (
    ImmutabilityViolationError,
    InvalidWorkflowConfigError,
)


class ApprovalWorkflowModel(TrackedBase):
    """Per-organization, per-entity-type routing configuration."""

    __tablename__ = "approval_workflows"

    __table_args__ = (
        CheckConstraint(
            "approval_type IN ('manager_hierarchy', 'role_based', 'single_approver')",
            name="ck_approval_workflows_valid_type",
        ),
        Index(
            "idx_approval_workflows_lookup",
            "organization_id", "entity_type", "is_active", "created_at",
        ),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("organizations.id"), nullable=False,
    )
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    approval_type: Mapped[str] = mapped_column(String(30), nullable=False)
    config: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return (
            f"<ApprovalWorkflow {self.name} {self.entity_type} "
            f"type={self.approval_type} active={self.is_active}>"
        )

    def to_dto(self) -> WorkflowConfig:
        """Convert to the frozen domain config, parsing the routing blob."""
        try:
            routing = parse_routing(self.approval_type, self.config)
            entity_type = DocumentKind(self.entity_type)
        except ValueError as exc:
            raise InvalidWorkflowConfigError(str(self.id), str(exc)) from exc
        return WorkflowConfig(
            workflow_id=self.id,
            organization_id=self.organization_id,
            entity_type=entity_type,
            name=self.name,
            routing=routing,
            total_steps=total_steps_from_config(self.config),
            is_active=self.is_active,
            created_at=self.created_at,
        )


class ApprovalRequestModel(Base):
    """One in-flight review of one submitted document."""

    __tablename__ = "approval_requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'escalated', 'cancelled')",
            name="ck_approval_requests_valid_status",
        ),
        Index(
            "uq_approval_requests_one_pending",
            "entity_type", "entity_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index(
            "idx_approval_requests_org_status",
            "organization_id", "status", "requested_at",
        ),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("organizations.id"), nullable=False,
    )
    workflow_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("approval_workflows.id"), nullable=False,
    )
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApprovalRequestStatus.PENDING.value,
    )
    requested_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    requested_at: Mapped[datetime] = mapped_column(nullable=False)
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total_steps: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return (
            f"<ApprovalRequest {self.id} {self.entity_type}/{self.entity_id} "
            f"status={self.status}>"
        )

    def to_dto(self) -> ApprovalRequest:
        return ApprovalRequest(
            request_id=self.id,
            organization_id=self.organization_id,
            workflow_id=self.workflow_id,
            entity_type=DocumentKind(self.entity_type),
            entity_id=self.entity_id,
            status=ApprovalRequestStatus(self.status),
            requested_by_id=self.requested_by_id,
            requested_at=self.requested_at,
            current_step=self.current_step,
            total_steps=self.total_steps,
        )


@event.listens_for(ApprovalRequestModel, "before_delete")
def prevent_approval_request_delete(mapper, connection, target):
    """Approval requests are only ever transitioned, never removed."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalRequest",
        entity_id=str(target.id),
        reason="Approval requests cannot be deleted",
    )
