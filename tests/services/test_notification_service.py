"""
NotificationService fan-out and the inbox selector.
"""

from uuid import uuid4

from workflow_kernel.domain.approval import NotificationMessage
from workflow_kernel.models import NotificationModel
from workflow_kernel.selectors.notification_selector import NotificationSelector
from workflow_kernel.services.notification_service import NotificationService


def _builder(entity_id):
    def build(recipient_id):
        return NotificationMessage(
            notification_type="approval_required",
            title="Expense awaiting approval",
            message=f"For {recipient_id}",
            payload={"entity_type": "expense", "entity_id": str(entity_id)},
        )

    return build


class TestFanOut:
    def test_duplicates_collapse_and_order_is_sorted(self, session, organization, deterministic_clock):
        a, b, c = sorted([uuid4(), uuid4(), uuid4()])
        service = NotificationService(session, deterministic_clock)

        report = service.notify(organization.id, [c, a, b, a, c], _builder(uuid4()))

        assert report.delivered == (a, b, c)
        assert report.failed == ()
        assert report.all_delivered

    def test_message_built_per_recipient(self, session, organization, deterministic_clock):
        recipient = uuid4()
        NotificationService(session, deterministic_clock).notify(organization.id, [recipient], _builder(uuid4()))

        [note] = NotificationSelector(session).for_recipient(recipient)
        assert note.message == f"For {recipient}"

    def test_failing_builder_skips_only_that_recipient(self, session, organization, deterministic_clock, captured_logs):
        a, b, c = sorted([uuid4(), uuid4(), uuid4()])
        build = _builder(uuid4())

        def flaky(recipient_id):
            if recipient_id == b:
                raise KeyError("manager_name")
            return build(recipient_id)

        report = NotificationService(session, deterministic_clock).notify(organization.id, [a, b, c], flaky)

        assert report.delivered == (a, c)
        assert report.failed == (b,)
        assert NotificationSelector(session).for_recipient(b) == []
        [failure] = [r for r in captured_logs() if r["message"] == "notification_failed"]
        assert failure["recipient_id"] == str(b)
        assert failure["operation"] == "build_message"

    def test_no_recipients_is_a_no_op(self, session, organization, deterministic_clock):
        report = NotificationService(session, deterministic_clock).notify(organization.id, [], _builder(uuid4()))

        assert report.delivered == ()
        assert report.all_delivered


class TestNotificationSelector:
    def test_unread_only(self, session, organization, deterministic_clock):
        recipient = uuid4()
        service = NotificationService(session, deterministic_clock)
        service.notify(organization.id, [recipient], _builder(uuid4()))
        deterministic_clock.advance(60)
        service.notify(organization.id, [recipient], _builder(uuid4()))

        selector = NotificationSelector(session)
        newest, oldest = selector.for_recipient(recipient)
        assert newest.created_at > oldest.created_at

        session.get(NotificationModel, oldest.notification_id).is_read = True
        session.flush()

        assert [n.notification_id for n in selector.for_recipient(recipient, unread_only=True)] == [
            newest.notification_id
        ]

    def test_for_entity(self, session, organization, deterministic_clock):
        entity_id = uuid4()
        service = NotificationService(session, deterministic_clock)
        service.notify(organization.id, [uuid4(), uuid4()], _builder(entity_id))
        service.notify(organization.id, [uuid4()], _builder(uuid4()))

        notes = NotificationSelector(session).for_entity(entity_id)

        assert len(notes) == 2
        assert all(n.payload["entity_id"] == str(entity_id) for n in notes)
