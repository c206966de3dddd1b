"""
ApprovalLedger -- creates the tracking record for an in-flight approval.

Responsibility:
    One pending ApprovalRequest per routed submission.  ``total_steps`` is
    seeded from the workflow config's step list (else 1) and
    ``current_step`` starts at 1; neither is advanced here.

Invariants enforced:
    - At most one pending request per (entity_type, entity_id).  Checked
      up front and backed by a partial unique index, so a concurrent
      duplicate insert fails cleanly instead of creating a second row.

Failure modes:
    - DuplicateApprovalRequestError: a pending request already exists.
    - DownstreamUnavailableError: the store failed.
"""

from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workflow_kernel.domain.approval import (
    ApprovalRequest,
    ApprovalRequestStatus,
    WorkflowConfig,
)
from workflow_kernel.domain.clock import Clock, SystemClock
from workflow_kernel.domain.documents import DocumentSnapshot
from workflow_kernel.exceptions import DuplicateApprovalRequestError
from workflow_kernel.logging_config import get_logger
from workflow_kernel.models.workflow import ApprovalRequestModel
from workflow_kernel.selectors.workflow_selector import WorkflowSelector
from workflow_kernel.services.base import BaseService, downstream_guard

logger = get_logger("services.approval_ledger")


class ApprovalLedger(BaseService[ApprovalRequestModel]):

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._selector = WorkflowSelector(session)

    def create(
        self,
        workflow: WorkflowConfig,
        document: DocumentSnapshot,
        requested_by_id: UUID,
    ) -> ApprovalRequest:
        """Insert a pending approval request for ``document``."""
        entity_type = document.entity_type.value

        with downstream_guard("check_pending_request"):
            existing = self._selector.pending_request_for(entity_type, document.document_id)
        if existing is not None:
            raise DuplicateApprovalRequestError(entity_type, str(document.document_id))

        model = ApprovalRequestModel(
            id=uuid4(),
            organization_id=document.organization_id,
            workflow_id=workflow.workflow_id,
            entity_type=entity_type,
            entity_id=document.document_id,
            status=ApprovalRequestStatus.PENDING.value,
            requested_by_id=requested_by_id,
            requested_at=self._clock.now(),
            current_step=1,
            total_steps=workflow.total_steps,
        )

        try:
            with downstream_guard("create_approval_request"):
                with self.session.begin_nested():
                    self.session.add(model)
                    self.session.flush()
        except IntegrityError as exc:
            logger.warning(
                "approval_request_duplicate",
                extra={"entity_type": entity_type, "entity_id": str(document.document_id)},
            )
            raise DuplicateApprovalRequestError(
                entity_type, str(document.document_id),
            ) from exc

        logger.info(
            "approval_request_created",
            extra={
                "request_id": str(model.id),
                "workflow_id": str(workflow.workflow_id),
                "approval_type": workflow.approval_type.value,
                "entity_type": entity_type,
                "entity_id": str(document.document_id),
                "total_steps": workflow.total_steps,
            },
        )
        return model.to_dto()
