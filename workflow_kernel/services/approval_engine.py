"""
ApprovalEngine -- entry points for submission and invoice reminders.

Responsibility:
    Wires the guard, workflow resolver, approver strategies, approval
    ledger, notification fan-out, audit emitter and escalation sequencer
    into the three operations callers use:

        submit_document(entity_type, document_id, actor_id)
        send_reminder(invoice_id, actor_id)
        list_reminders(invoice_id)

Control flow (submission):
    SubmissionGuard -> WorkflowSelector.resolve_active -> resolve_approvers
    -> ApprovalLedger.create -> NotificationService.notify
    -> AuditorService.record

    The guard's conditional write and the ledger insert are the critical
    path.  Notification and audit writes are best-effort and cannot fail
    the call.

Unrouted submissions:
    With no active workflow, or a workflow that resolves to nobody, the
    document still ends ``submitted`` but no approval request exists.  The
    result says so (``RoutingOutcome.NO_WORKFLOW`` / ``NO_APPROVERS``), a
    ``submission_unrouted`` warning is logged and a matching audit entry is
    written, so these documents can be found and re-routed.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from workflow_kernel.domain.approval import (
    ApprovalRequest,
    FanoutReport,
    OrgDirectory,
    RoutingOutcome,
    SubmissionResult,
    WorkflowConfig,
)
from workflow_kernel.domain.approver_strategies import resolve_approvers
from workflow_kernel.domain.clock import Clock, SystemClock
from workflow_kernel.domain.documents import DocumentKind, DocumentSnapshot
from workflow_kernel.domain.notifications import approval_required_message
from workflow_kernel.domain.reminders import (
    ReminderLogEntry,
    ReminderPlan,
    ReminderPolicy,
    ReminderSendResult,
)
from workflow_kernel.logging_config import LogContext, get_logger
from workflow_kernel.models.audit_log import AuditAction
from workflow_kernel.selectors.org_directory_selector import OrgDirectorySelector
from workflow_kernel.selectors.workflow_selector import WorkflowSelector
from workflow_kernel.services.approval_ledger import ApprovalLedger
from workflow_kernel.services.auditor_service import AuditorService
from workflow_kernel.services.base import downstream_guard
from workflow_kernel.services.escalation_sequencer import (
    EscalationSequencer,
    ReminderMailer,
)
from workflow_kernel.services.notification_service import NotificationService
from workflow_kernel.services.submission_guard import SubmissionGuard

logger = get_logger("services.approval_engine")


class ApprovalEngine:
    """Facade over the approval and escalation services for one session."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        reminder_policy: ReminderPolicy | None = None,
        mailer: ReminderMailer | None = None,
        directory: OrgDirectory | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._auditor = AuditorService(session, self._clock)
        self._guard = SubmissionGuard(session, self._clock)
        self._workflows = WorkflowSelector(session)
        self._directory = directory or OrgDirectorySelector(session)
        self._ledger = ApprovalLedger(session, self._clock)
        self._notifications = NotificationService(session, self._clock)
        self._sequencer = EscalationSequencer(
            session,
            self._auditor,
            self._notifications,
            clock=self._clock,
            policy=reminder_policy,
            mailer=mailer,
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_document(
        self,
        entity_type: DocumentKind | str,
        document_id: UUID,
        actor_id: UUID,
    ) -> SubmissionResult:
        """
        Submit a draft document and route it for approval.

        Raises:
            UnknownDocumentTypeError, DocumentNotFoundError,
            InvalidDocumentStateError, EmptySubmissionError,
            MissingReceiptError, DuplicateApprovalRequestError,
            DownstreamUnavailableError.
        """
        tag = getattr(entity_type, "value", entity_type)
        with LogContext.bind(actor_id=actor_id, entity_type=tag, entity_id=document_id):
            document = self._guard.submit(entity_type, document_id, actor_id)

            with LogContext.bind(organization_id=document.organization_id):
                return self._route(document, actor_id)

    def _route(self, document: DocumentSnapshot, actor_id: UUID) -> SubmissionResult:
        with downstream_guard("resolve_workflow"):
            workflow = self._workflows.resolve_active(
                document.organization_id, document.entity_type,
            )
        if workflow is None:
            logger.info("workflow_not_found", extra={"entity_type": document.entity_type.value})
            return self._unrouted(document, actor_id, RoutingOutcome.NO_WORKFLOW, None)

        with downstream_guard("resolve_approvers"):
            approvers = resolve_approvers(
                workflow.routing,
                document.organization_id,
                document.owner_id,
                self._directory,
            )
        if not approvers:
            return self._unrouted(document, actor_id, RoutingOutcome.NO_APPROVERS, workflow)

        request = self._ledger.create(workflow, document, actor_id)

        report = self._notifications.notify(
            document.organization_id,
            approvers,
            lambda _recipient: approval_required_message(document, request.request_id),
        )

        self._audit_submission(document, actor_id, RoutingOutcome.ROUTED)
        self._audit_request(request, actor_id, approvers)

        logger.info(
            "submission_routed",
            extra={
                "workflow_id": str(workflow.workflow_id),
                "approval_type": workflow.approval_type.value,
                "approval_request_id": str(request.request_id),
                "approver_count": len(approvers),
                "notifications_failed": len(report.failed),
            },
        )
        return SubmissionResult(
            document=document,
            outcome=RoutingOutcome.ROUTED,
            approval_request=request,
            workflow=workflow,
            approver_ids=approvers,
            notifications=report,
        )

    def _unrouted(
        self,
        document: DocumentSnapshot,
        actor_id: UUID,
        outcome: RoutingOutcome,
        workflow: WorkflowConfig | None,
    ) -> SubmissionResult:
        logger.warning(
            "submission_unrouted",
            extra={
                "outcome": outcome.value,
                "workflow_id": str(workflow.workflow_id) if workflow else None,
            },
        )
        self._audit_submission(document, actor_id, outcome)
        self._auditor.record(
            organization_id=document.organization_id,
            actor_id=actor_id,
            action=AuditAction.SUBMISSION_UNROUTED,
            entity_type=document.entity_type.value,
            entity_id=document.document_id,
            new_values={
                "outcome": outcome,
                "workflow_id": workflow.workflow_id if workflow else None,
            },
        )
        return SubmissionResult(
            document=document,
            outcome=outcome,
            workflow=workflow,
            notifications=FanoutReport(),
        )

    def _audit_submission(
        self,
        document: DocumentSnapshot,
        actor_id: UUID,
        outcome: RoutingOutcome,
    ) -> None:
        self._auditor.record(
            organization_id=document.organization_id,
            actor_id=actor_id,
            action=AuditAction.DOCUMENT_SUBMITTED,
            entity_type=document.entity_type.value,
            entity_id=document.document_id,
            old_values={"status": "draft"},
            new_values={
                "status": document.status,
                "submitted_at": document.submitted_at,
                "routing": outcome,
            },
        )

    def _audit_request(
        self,
        request: ApprovalRequest,
        actor_id: UUID,
        approvers: frozenset[UUID],
    ) -> None:
        self._auditor.record(
            organization_id=request.organization_id,
            actor_id=actor_id,
            action=AuditAction.APPROVAL_REQUEST_CREATED,
            entity_type="approval_request",
            entity_id=request.request_id,
            new_values={
                "status": request.status,
                "entity_type": request.entity_type,
                "entity_id": request.entity_id,
                "workflow_id": request.workflow_id,
                "current_step": request.current_step,
                "total_steps": request.total_steps,
                "approvers": approvers,
            },
        )

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    def send_reminder(self, invoice_id: UUID, actor_id: UUID) -> ReminderSendResult:
        return self._sequencer.send_reminder(invoice_id, actor_id)

    def preview_reminder(self, invoice_id: UUID) -> ReminderPlan:
        return self._sequencer.preview(invoice_id)

    def list_reminders(self, invoice_id: UUID) -> list[ReminderLogEntry]:
        return self._sequencer.list_reminders(invoice_id)
