"""
Invoice reminders: preview, send, history, and the exactly-once step log.
"""

from datetime import date
from uuid import uuid4

import pytest

from workflow_kernel.domain.reminders import EscalationLevel, ReminderPolicy
from workflow_kernel.exceptions import (
    InvoiceAlreadyPaidError,
    InvoiceCancelledError,
    InvoiceNotFoundError,
    InvoiceNotYetOverdueError,
    InvoiceStillDraftError,
    NoReminderRecipientError,
    NoReminderStepDueError,
    ReminderAlreadySentError,
)
from workflow_kernel.models import AuditAction
from workflow_kernel.selectors.notification_selector import NotificationSelector
from workflow_kernel.services.approval_engine import ApprovalEngine
from workflow_kernel.services.auditor_service import AuditorService
from workflow_kernel.services.escalation_sequencer import EscalationSequencer
from workflow_kernel.services.notification_service import NotificationService


class RecordingMailer:
    def __init__(self, fail: bool = False):
        self.sent: list[tuple[str, str, str]] = []
        self.fail = fail

    def send(self, recipient: str, subject: str, body: str) -> None:
        if self.fail:
            raise ConnectionError("SMTP relay refused connection")
        self.sent.append((recipient, subject, body))


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def sequencer(session, deterministic_clock, auditor_service, mailer):
    return EscalationSequencer(
        session,
        auditor_service,
        NotificationService(session, deterministic_clock),
        clock=deterministic_clock,
        mailer=mailer,
    )


# =============================================================================
# Stepping through a sequence
# =============================================================================


class TestSequenceStepping:
    """Thresholds [0, 7, 14] at 10 days overdue."""

    def test_sends_eligible_steps_in_order_then_stops(
        self, sequencer, mailer, create_invoice, create_reminder_sequence, test_actor_id,
    ):
        sequence = create_reminder_sequence()
        step_ids = [step.id for step in sequence.steps]
        invoice = create_invoice(invoice_number="INV-1001")

        first = sequencer.send_reminder(invoice.id, test_actor_id)
        second = sequencer.send_reminder(invoice.id, test_actor_id)

        assert first.log_entry.step_id == step_ids[0]
        assert first.subject == "Step 1: Invoice INV-1001"
        assert first.escalation_level is EscalationLevel.STANDARD
        assert second.log_entry.step_id == step_ids[1]
        assert second.escalation_level is EscalationLevel.URGENT
        assert all(r.days_overdue == 10 for r in (first, second))

        # Step 3 needs 14 days.
        with pytest.raises(NoReminderStepDueError) as exc_info:
            sequencer.send_reminder(invoice.id, test_actor_id)

        assert exc_info.value.days_overdue == 10
        assert exc_info.value.next_step_days == 14
        assert len(sequencer.list_reminders(invoice.id)) == 2
        assert len(mailer.sent) == 2

    def test_exhausted_sequence_never_steps_down(
        self, sequencer, mailer, create_invoice, create_reminder_sequence, test_actor_id,
    ):
        create_reminder_sequence(steps=[(0, "final")])
        invoice = create_invoice()

        final = sequencer.send_reminder(invoice.id, test_actor_id)
        for _ in range(2):
            with pytest.raises(NoReminderStepDueError) as exc_info:
                sequencer.send_reminder(invoice.id, test_actor_id)
            assert exc_info.value.next_step_days is None

        assert final.escalation_level is EscalationLevel.FINAL
        history = sequencer.list_reminders(invoice.id)
        assert [entry.escalation_level for entry in history] == [EscalationLevel.FINAL]
        assert [subject for _, subject, _ in mailer.sent] == [final.subject]

    def test_sequence_with_no_step_due_sends_nothing(
        self, session, sequencer, mailer, create_invoice, create_reminder_sequence, test_actor_id,
    ):
        create_reminder_sequence(steps=[(14, "standard"), (30, "final")])
        invoice = create_invoice()

        with pytest.raises(NoReminderStepDueError) as exc_info:
            sequencer.send_reminder(invoice.id, test_actor_id)

        assert exc_info.value.code == "NO_REMINDER_STEP_DUE"
        assert exc_info.value.next_step_days == 14
        assert sequencer.list_reminders(invoice.id) == []
        assert mailer.sent == []
        assert AuditorService(session).trail_for("invoice", invoice.id) == []

    def test_later_step_unlocks_as_time_passes(
        self, sequencer, deterministic_clock, create_invoice, create_reminder_sequence, test_actor_id,
    ):
        sequence = create_reminder_sequence()
        invoice = create_invoice()
        sequencer.send_reminder(invoice.id, test_actor_id)
        sequencer.send_reminder(invoice.id, test_actor_id)

        deterministic_clock.advance_days(5)
        result = sequencer.send_reminder(invoice.id, test_actor_id)

        assert result.log_entry.step_id == sequence.steps[2].id
        assert result.escalation_level is EscalationLevel.FINAL
        assert result.days_overdue == 15

    def test_next_step_is_read_only(self, sequencer, create_invoice, create_reminder_sequence):
        sequence = create_reminder_sequence()
        invoice = create_invoice()

        assert sequencer.next_step(invoice.id).step_id == sequence.steps[0].id
        assert sequencer.next_step(invoice.id).step_id == sequence.steps[0].id
        assert sequencer.list_reminders(invoice.id) == []

    def test_default_sequence_preferred(self, sequencer, create_invoice, create_reminder_sequence):
        create_reminder_sequence(steps=[(0, "final")], is_default=False, name="Aggressive")
        default = create_reminder_sequence(steps=[(0, "standard")], is_default=True)
        create_reminder_sequence(steps=[(0, "urgent")], is_default=False, is_active=False, name="Off")
        invoice = create_invoice()

        plan = sequencer.preview(invoice.id)

        assert plan.sequence_id == default.id


# =============================================================================
# Fallback escalation
# =============================================================================


class TestFallback:
    """No configured sequence: level and subject come from the policy."""

    @pytest.mark.parametrize(
        "due, level, subject",
        [
            (date(2023, 12, 22), EscalationLevel.STANDARD, "Payment reminder: Invoice INV-9"),
            (date(2023, 11, 20), EscalationLevel.URGENT, "Urgent: Invoice INV-9 is 42 days overdue"),
            (date(2023, 10, 1), EscalationLevel.FINAL, "Final notice: Invoice INV-9"),
        ],
    )
    def test_level_from_days_overdue(self, sequencer, create_invoice, test_actor_id, due, level, subject):
        invoice = create_invoice(due_date=due, invoice_number="INV-9")

        result = sequencer.send_reminder(invoice.id, test_actor_id)

        assert result.escalation_level is level
        assert result.subject == subject
        assert result.log_entry.step_id is None

    def test_policy_thresholds_are_honoured(
        self, session, deterministic_clock, auditor_service, create_invoice, test_actor_id,
    ):
        sequencer = EscalationSequencer(
            session,
            auditor_service,
            NotificationService(session, deterministic_clock),
            clock=deterministic_clock,
            policy=ReminderPolicy(urgent_after_days=3, final_after_days=9),
        )
        invoice = create_invoice()

        assert sequencer.send_reminder(invoice.id, test_actor_id).escalation_level is EscalationLevel.FINAL


# =============================================================================
# Side effects of a send
# =============================================================================


class TestSendEffects:
    def test_mail_notification_and_audit(
        self, sequencer, session, mailer, create_invoice, create_reminder_sequence, test_actor_id,
    ):
        create_reminder_sequence()
        invoice = create_invoice(invoice_number="INV-1002", total_amount="1500.00", amount_paid="250.00")

        result = sequencer.send_reminder(invoice.id, test_actor_id)

        assert result.recipient == "accounts@globex.example.com"
        [(recipient, subject, body)] = mailer.sent
        assert recipient == "accounts@globex.example.com"
        assert subject == "Step 1: Invoice INV-1002"
        assert body == "Hello Globex Corporation, USD 1250.00 is 10 days late."

        [note] = NotificationSelector(session).for_recipient(invoice.owner_id)
        assert note.notification_type == "invoice_reminder_sent"
        assert note.payload["entity_id"] == str(invoice.id)
        assert note.payload["escalation_level"] == "standard"

        [audit] = AuditorService(session).trail_for("invoice", invoice.id)
        assert audit.action is AuditAction.REMINDER_SENT
        assert audit.new_values["step_id"] == str(result.log_entry.step_id)
        assert audit.new_values["days_overdue"] == 10

    def test_falls_back_to_company_email(self, sequencer, create_invoice, test_actor_id):
        invoice = create_invoice(contact_email=None)

        assert sequencer.send_reminder(invoice.id, test_actor_id).recipient == "billing@globex.example.com"

    def test_mailer_failure_is_swallowed(
        self, session, deterministic_clock, auditor_service, create_invoice, test_actor_id, captured_logs,
    ):
        sequencer = EscalationSequencer(
            session,
            auditor_service,
            NotificationService(session, deterministic_clock),
            clock=deterministic_clock,
            mailer=RecordingMailer(fail=True),
        )
        invoice = create_invoice()

        result = sequencer.send_reminder(invoice.id, test_actor_id)

        assert result.log_entry is not None
        assert len(sequencer.list_reminders(invoice.id)) == 1
        assert any(r["message"] == "reminder_mail_failed" for r in captured_logs())

    def test_logs_reminder_sent(self, sequencer, create_invoice, test_actor_id, captured_logs):
        invoice = create_invoice()

        sequencer.send_reminder(invoice.id, test_actor_id)

        sent = next(r for r in captured_logs() if r["message"] == "reminder_sent")
        assert sent["entity_type"] == "invoice"
        assert sent["entity_id"] == str(invoice.id)
        assert sent["days_overdue"] == 10


# =============================================================================
# Exactly once per step
# =============================================================================


class TestStepIdempotency:
    def test_stale_plan_loses_to_the_log(
        self, sequencer, create_invoice, create_reminder_sequence, test_actor_id,
    ):
        create_reminder_sequence()
        invoice = create_invoice()
        stale = sequencer.preview(invoice.id)
        sequencer.send(sequencer.preview(invoice.id), test_actor_id)

        with pytest.raises(ReminderAlreadySentError) as exc_info:
            sequencer.send(stale, test_actor_id)

        assert exc_info.value.step_id == str(stale.step_id)
        assert len(sequencer.list_reminders(invoice.id)) == 1

    def test_fallback_sends_may_repeat(self, sequencer, create_invoice, test_actor_id):
        invoice = create_invoice()

        sequencer.send_reminder(invoice.id, test_actor_id)
        sequencer.send_reminder(invoice.id, test_actor_id)

        assert len(sequencer.list_reminders(invoice.id)) == 2


# =============================================================================
# Preconditions
# =============================================================================


class TestReminderPreconditions:
    def test_unknown_invoice(self, sequencer, test_actor_id):
        with pytest.raises(InvoiceNotFoundError):
            sequencer.send_reminder(uuid4(), test_actor_id)

    @pytest.mark.parametrize(
        "status, error",
        [
            ("paid", InvoiceAlreadyPaidError),
            ("draft", InvoiceStillDraftError),
            ("cancelled", InvoiceCancelledError),
        ],
    )
    def test_blocking_statuses(self, sequencer, create_invoice, test_actor_id, status, error):
        invoice = create_invoice(status=status)

        with pytest.raises(error):
            sequencer.send_reminder(invoice.id, test_actor_id)

        assert sequencer.list_reminders(invoice.id) == []

    @pytest.mark.parametrize("status", ["sent", "viewed", "partially_paid", "overdue", "disputed"])
    def test_remindable_statuses(self, sequencer, create_invoice, test_actor_id, status):
        invoice = create_invoice(status=status)

        assert sequencer.send_reminder(invoice.id, test_actor_id).days_overdue == 10

    def test_not_yet_overdue(self, sequencer, create_invoice, test_actor_id):
        invoice = create_invoice(due_date=date(2024, 1, 15))

        with pytest.raises(InvoiceNotYetOverdueError):
            sequencer.send_reminder(invoice.id, test_actor_id)

    def test_no_recipient(self, sequencer, mailer, create_invoice, test_actor_id):
        invoice = create_invoice(contact_email=None, company_email=None)

        with pytest.raises(NoReminderRecipientError):
            sequencer.send_reminder(invoice.id, test_actor_id)

        assert mailer.sent == []
        assert sequencer.list_reminders(invoice.id) == []


# =============================================================================
# History
# =============================================================================


class TestListReminders:
    def test_most_recent_first(
        self, session, deterministic_clock, create_invoice, create_reminder_sequence, test_actor_id,
    ):
        engine = ApprovalEngine(session, deterministic_clock)
        create_reminder_sequence()
        invoice = create_invoice()

        engine.send_reminder(invoice.id, test_actor_id)
        deterministic_clock.advance_days(1)
        engine.send_reminder(invoice.id, test_actor_id)
        deterministic_clock.advance_days(4)
        engine.send_reminder(invoice.id, test_actor_id)

        history = engine.list_reminders(invoice.id)

        assert [entry.days_overdue for entry in history] == [15, 11, 10]
        assert history[0].sent_at > history[1].sent_at > history[2].sent_at
        assert all(entry.sent_by_id == test_actor_id for entry in history)

    def test_unknown_invoice(self, session, deterministic_clock):
        with pytest.raises(InvoiceNotFoundError):
            ApprovalEngine(session, deterministic_clock).list_reminders(uuid4())

    def test_preview_writes_nothing(self, session, deterministic_clock, create_invoice, test_actor_id):
        engine = ApprovalEngine(session, deterministic_clock)
        invoice = create_invoice()

        plan = engine.preview_reminder(invoice.id)

        assert plan.days_overdue == 10
        assert engine.list_reminders(invoice.id) == []
        assert AuditorService(session).trail_for("invoice", invoice.id) == []
