"""
Module: workflow_kernel.selectors.workflow_selector
Responsibility: Workflow resolution -- find the one active workflow for an
    (organization, entity type) pair -- and approval request lookups.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Deterministic tie-break: when more than one active workflow matches
      (a configuration error), the most recently created wins, then the
      highest id.  The choice is logged so the misconfiguration is visible.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from workflow_kernel.domain.approval import (
    ApprovalRequest,
    ApprovalRequestStatus,
    WorkflowConfig,
)
from workflow_kernel.domain.documents import DocumentKind
from workflow_kernel.logging_config import get_logger
from workflow_kernel.models.workflow import ApprovalRequestModel, ApprovalWorkflowModel
from workflow_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.workflow")


class WorkflowSelector(BaseSelector[ApprovalWorkflowModel]):

    def __init__(self, session: Session):
        super().__init__(session)

    def resolve_active(
        self,
        organization_id: UUID,
        entity_type: DocumentKind | str,
    ) -> WorkflowConfig | None:
        """
        Return the active workflow for ``entity_type`` in ``organization_id``.

        Returns:
            WorkflowConfig, or None when the organization has not configured
            approvals for this kind.

        Raises:
            InvalidWorkflowConfigError: If the chosen row cannot be parsed.
        """
        tag = DocumentKind(entity_type).value
        criteria = (
            ApprovalWorkflowModel.organization_id == organization_id,
            ApprovalWorkflowModel.entity_type == tag,
            ApprovalWorkflowModel.is_active.is_(True),
        )

        row = self.session.execute(
            select(ApprovalWorkflowModel)
            .where(*criteria)
            .order_by(
                ApprovalWorkflowModel.created_at.desc(),
                ApprovalWorkflowModel.id.desc(),
            )
            .limit(1)
        ).scalar_one_or_none()

        if row is None:
            return None

        active_count = self.session.execute(
            select(func.count(ApprovalWorkflowModel.id)).where(*criteria)
        ).scalar_one()
        if active_count > 1:
            logger.warning(
                "multiple_active_workflows",
                extra={
                    "organization_id": str(organization_id),
                    "entity_type": tag,
                    "active_count": active_count,
                    "chosen_workflow_id": str(row.id),
                },
            )

        return row.to_dto()

    def pending_request_for(
        self,
        entity_type: DocumentKind | str,
        entity_id: UUID,
    ) -> ApprovalRequest | None:
        row = self.session.execute(
            select(ApprovalRequestModel).where(
                ApprovalRequestModel.entity_type == DocumentKind(entity_type).value,
                ApprovalRequestModel.entity_id == entity_id,
                ApprovalRequestModel.status == ApprovalRequestStatus.PENDING.value,
            )
        ).scalar_one_or_none()
        return row.to_dto() if row is not None else None

    def requests_for(
        self,
        entity_type: DocumentKind | str,
        entity_id: UUID,
    ) -> list[ApprovalRequest]:
        """All approval requests for a document, oldest first."""
        rows = self.session.execute(
            select(ApprovalRequestModel)
            .where(
                ApprovalRequestModel.entity_type == DocumentKind(entity_type).value,
                ApprovalRequestModel.entity_id == entity_id,
            )
            .order_by(ApprovalRequestModel.requested_at)
        ).scalars().all()
        return [row.to_dto() for row in rows]
