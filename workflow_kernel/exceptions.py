"""
Typed Exception Hierarchy for the Workflow Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from WorkflowKernelError. The category classes map
one-to-one onto how a caller is expected to react:

    WorkflowKernelError (base)
    |
    +-- ValidationError              caller sent a malformed request
    |   +-- UnknownDocumentTypeError
    |   +-- InvalidWorkflowConfigError
    |
    +-- NotFoundError                referenced entity is absent
    |   +-- DocumentNotFoundError
    |   +-- InvoiceNotFoundError
    |
    +-- StateConflictError           re-fetch and retry with fresh state
    |   +-- InvalidDocumentStateError
    |   +-- DuplicateApprovalRequestError
    |   +-- ReminderAlreadySentError
    |
    +-- PreconditionFailedError      domain rule violated, correct the input
    |   +-- EmptySubmissionError
    |   +-- MissingReceiptError
    |   +-- InvoiceAlreadyPaidError
    |   +-- InvoiceStillDraftError
    |   +-- InvoiceCancelledError
    |   +-- InvoiceNotYetOverdueError
    |   +-- NoReminderStepDueError
    |   +-- NoReminderRecipientError
    |
    +-- DownstreamUnavailableError   the store itself failed
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | UNKNOWN_DOCUMENT_TYPE       | entity_type is not a submittable kind
                | INVALID_WORKFLOW_CONFIG     | workflow row has an unknown approval_type
----------------|-----------------------------|-----------------------------------------
Not Found       | DOCUMENT_NOT_FOUND          | document id does not exist
                | INVOICE_NOT_FOUND           | invoice id does not exist
----------------|-----------------------------|-----------------------------------------
State Conflict  | INVALID_DOCUMENT_STATE      | document is not in draft
                | DUPLICATE_APPROVAL_REQUEST  | pending request already exists
                | REMINDER_ALREADY_SENT       | step already logged for invoice
----------------|-----------------------------|-----------------------------------------
Precondition    | EMPTY_SUBMISSION            | no entries / line items
                | MISSING_RECEIPT             | reimbursable expense without receipt
                | INVOICE_ALREADY_PAID        | reminder for a paid invoice
                | INVOICE_STILL_DRAFT         | reminder for a draft invoice
                | INVOICE_CANCELLED           | reminder for a cancelled invoice
                | INVOICE_NOT_YET_OVERDUE     | due date is in the future
                | NO_REMINDER_STEP_DUE        | sequence has no unsent step due yet
                | NO_REMINDER_RECIPIENT       | neither contact nor company email
----------------|-----------------------------|-----------------------------------------
Downstream      | DOWNSTREAM_UNAVAILABLE      | database error on the critical path
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | update/delete of an append-only row

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        result = engine.submit_document("expense", expense_id, actor_id)
    except InvalidDocumentStateError as e:
        # Someone else submitted first, or the document moved on.
        refresh_and_show(e.current_status)
    except PreconditionFailedError as e:
        return {"error": e.code, "message": str(e)}
"""


class WorkflowKernelError(Exception):
    """
    Base exception for all workflow kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "WORKFLOW_KERNEL_ERROR"


# Validation


class ValidationError(WorkflowKernelError):
    """Base exception for malformed requests."""

    code: str = "VALIDATION_ERROR"


class UnknownDocumentTypeError(ValidationError):
    """entity_type does not name a submittable document kind."""

    code: str = "UNKNOWN_DOCUMENT_TYPE"

    def __init__(self, entity_type: str):
        self.entity_type = entity_type
        super().__init__(f"Unknown document type: {entity_type!r}")


class InvalidWorkflowConfigError(ValidationError):
    """A workflow configuration row cannot be interpreted."""

    code: str = "INVALID_WORKFLOW_CONFIG"

    def __init__(self, workflow_id: str, reason: str):
        self.workflow_id = workflow_id
        self.reason = reason
        super().__init__(f"Workflow {workflow_id} is misconfigured: {reason}")


# Not found


class NotFoundError(WorkflowKernelError):
    """Base exception for absent entities."""

    code: str = "NOT_FOUND"


class DocumentNotFoundError(NotFoundError):
    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, entity_type: str, document_id: str):
        self.entity_type = entity_type
        self.document_id = document_id
        super().__init__(f"{entity_type} not found: {document_id}")


class InvoiceNotFoundError(NotFoundError):
    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


# State conflict


class StateConflictError(WorkflowKernelError):
    """Base exception for state the caller must re-fetch before retrying."""

    code: str = "STATE_CONFLICT"


class InvalidDocumentStateError(StateConflictError):
    """
    Document is not in its submittable state.

    Raised both when the status read up front is wrong and when the
    conditional draft -> submitted write loses a race.
    """

    code: str = "INVALID_DOCUMENT_STATE"

    def __init__(self, entity_type: str, label: str, document_id: str, current_status: str):
        self.entity_type = entity_type
        self.document_id = document_id
        self.current_status = current_status
        super().__init__(
            f"{label} with status '{current_status}' cannot be submitted"
        )


class DuplicateApprovalRequestError(StateConflictError):
    code: str = "DUPLICATE_APPROVAL_REQUEST"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"A pending approval request already exists for {entity_type} {entity_id}"
        )


class ReminderAlreadySentError(StateConflictError):
    """A concurrent sender logged this step first."""

    code: str = "REMINDER_ALREADY_SENT"

    def __init__(self, invoice_id: str, step_id: str | None):
        self.invoice_id = invoice_id
        self.step_id = step_id
        super().__init__(
            f"Reminder step {step_id} was already sent for invoice {invoice_id}"
        )


# Precondition failed


class PreconditionFailedError(WorkflowKernelError):
    """Base exception for violated domain rules."""

    code: str = "PRECONDITION_FAILED"


class EmptySubmissionError(PreconditionFailedError):
    code: str = "EMPTY_SUBMISSION"

    def __init__(self, entity_type: str, document_id: str, what: str):
        self.entity_type = entity_type
        self.document_id = document_id
        self.what = what
        super().__init__(f"Cannot submit {entity_type} {document_id} with no {what}")


class MissingReceiptError(PreconditionFailedError):
    code: str = "MISSING_RECEIPT"

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(
            f"Reimbursable expense {document_id} requires a receipt before submission"
        )


class InvoiceAlreadyPaidError(PreconditionFailedError):
    code: str = "INVOICE_ALREADY_PAID"

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(
            f"Invoice {invoice_number} is already paid; no reminder needed"
        )


class InvoiceStillDraftError(PreconditionFailedError):
    code: str = "INVOICE_STILL_DRAFT"

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(
            f"Invoice {invoice_number} is still a draft; send it before reminding"
        )


class InvoiceCancelledError(PreconditionFailedError):
    code: str = "INVOICE_CANCELLED"

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(f"Invoice {invoice_number} is cancelled")


class InvoiceNotYetOverdueError(PreconditionFailedError):
    code: str = "INVOICE_NOT_YET_OVERDUE"

    def __init__(self, invoice_number: str, days_until_due: int):
        self.invoice_number = invoice_number
        self.days_until_due = days_until_due
        super().__init__(
            f"Invoice {invoice_number} is not overdue yet (due in {days_until_due} days)"
        )


class NoReminderStepDueError(PreconditionFailedError):
    """The reminder sequence has no unsent step whose threshold is met."""

    code: str = "NO_REMINDER_STEP_DUE"

    def __init__(self, invoice_number: str, days_overdue: int, next_step_days: int | None):
        self.invoice_number = invoice_number
        self.days_overdue = days_overdue
        self.next_step_days = next_step_days
        if next_step_days is None:
            detail = "every step has already been sent"
        else:
            detail = f"the next step is due at {next_step_days} days overdue"
        super().__init__(
            f"Invoice {invoice_number} has no reminder step due at "
            f"{days_overdue} days overdue; {detail}"
        )


class NoReminderRecipientError(PreconditionFailedError):
    code: str = "NO_REMINDER_RECIPIENT"

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(
            f"Invoice {invoice_number} has no contact or company email to remind"
        )


# Downstream


class DownstreamUnavailableError(WorkflowKernelError):
    """The persistent store failed during a critical-path write."""

    code: str = "DOWNSTREAM_UNAVAILABLE"

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        message = f"Store unavailable during {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# Immutability


class ImmutabilityError(WorkflowKernelError):
    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
