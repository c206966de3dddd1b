"""
SubmissionGuard -- the draft -> submitted gate.

Responsibility:
    Validates that a document exists, is still a draft, and satisfies its
    kind-specific precondition, then moves it to ``submitted``.

Architecture position:
    Kernel > Services.  First step of ApprovalEngine.submit_document().

Invariants enforced:
    - At most one successful draft -> submitted transition per document.
      The write is a single conditional UPDATE (``WHERE status = 'draft'``),
      not read-then-write, so two concurrent submitters cannot both win.
      The loser sees zero affected rows and gets InvalidDocumentStateError
      carrying the status the winner left behind.

Failure modes (checked in this order):
    - UnknownDocumentTypeError: entity_type is not a submittable kind.
    - DocumentNotFoundError: no such document.
    - InvalidDocumentStateError: status is not ``draft`` (or the
      conditional write lost a race).
    - EmptySubmissionError / MissingReceiptError: kind precondition.
    - DownstreamUnavailableError: the store failed.
"""

from typing import Callable
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from workflow_kernel.domain.clock import Clock, SystemClock
from workflow_kernel.domain.documents import DocumentKind, DocumentSnapshot, lookup_kind
from workflow_kernel.exceptions import (
    DocumentNotFoundError,
    EmptySubmissionError,
    InvalidDocumentStateError,
    MissingReceiptError,
)
from workflow_kernel.logging_config import get_logger
from workflow_kernel.models.documents import (
    DOCUMENT_MODELS,
    RequisitionLineItem,
    SubmittableDocument,
    TimesheetEntry,
)
from workflow_kernel.services.base import BaseService, downstream_guard

logger = get_logger("services.submission_guard")


def _require_timesheet_entries(session: Session, document: SubmittableDocument) -> None:
    count = session.execute(
        select(func.count(TimesheetEntry.id)).where(TimesheetEntry.timesheet_id == document.id)
    ).scalar_one()
    if count == 0:
        raise EmptySubmissionError(DocumentKind.TIMESHEET.value, str(document.id), "time entries")


def _require_receipt(session: Session, document: SubmittableDocument) -> None:
    if document.is_reimbursable and not (document.receipt_url or "").strip():
        raise MissingReceiptError(str(document.id))


def _require_line_items(session: Session, document: SubmittableDocument) -> None:
    count = session.execute(
        select(func.count(RequisitionLineItem.id)).where(
            RequisitionLineItem.requisition_id == document.id
        )
    ).scalar_one()
    if count == 0:
        raise EmptySubmissionError(
            DocumentKind.PURCHASE_REQUISITION.value, str(document.id), "line items"
        )


_PRECONDITIONS: dict[DocumentKind, Callable[[Session, SubmittableDocument], None]] = {
    DocumentKind.TIMESHEET: _require_timesheet_entries,
    DocumentKind.EXPENSE: _require_receipt,
    DocumentKind.PURCHASE_REQUISITION: _require_line_items,
}


class SubmissionGuard(BaseService[SubmittableDocument]):

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def submit(
        self,
        entity_type: DocumentKind | str,
        document_id: UUID,
        actor_id: UUID,
    ) -> DocumentSnapshot:
        """
        Move one document from ``draft`` to ``submitted``.

        Postconditions:
            - ``status == 'submitted'``, ``submitted_at`` stamped from the
              clock, ``submitted_by_id == actor_id``.
            - Nothing else is written.

        Returns:
            Snapshot of the submitted document.
        """
        spec = lookup_kind(entity_type)
        model = DOCUMENT_MODELS[spec.kind]

        with downstream_guard("load_document"):
            document = self.session.get(model, document_id)
        if document is None:
            raise DocumentNotFoundError(spec.kind.value, str(document_id))

        if document.status != spec.initial_status:
            raise InvalidDocumentStateError(
                spec.kind.value, spec.label, str(document_id), document.status,
            )

        with downstream_guard("check_preconditions"):
            _PRECONDITIONS[spec.kind](self.session, document)

        now = self._clock.now()
        with downstream_guard("submit_document"):
            result = self.session.execute(
                update(model)
                .where(model.id == document_id, model.status == spec.initial_status)
                .values(
                    status=spec.submitted_status,
                    submitted_at=now,
                    submitted_by_id=actor_id,
                    updated_by_id=actor_id,
                )
                .execution_options(synchronize_session=False)
            )

            if result.rowcount != 1:
                current = self.session.execute(
                    select(model.status).where(model.id == document_id)
                ).scalar_one()
                logger.warning(
                    "submission_lost_race",
                    extra={
                        "entity_type": spec.kind.value,
                        "document_id": str(document_id),
                        "current_status": current,
                    },
                )
                raise InvalidDocumentStateError(
                    spec.kind.value, spec.label, str(document_id), current,
                )

            self.session.refresh(document)

        logger.info(
            "document_submitted",
            extra={
                "entity_type": spec.kind.value,
                "document_id": str(document_id),
                "organization_id": str(document.organization_id),
                "submitted_at": now,
            },
        )
        return document.to_snapshot()
