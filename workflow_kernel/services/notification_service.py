"""
NotificationService -- best-effort fan-out of in-app notifications.

Responsibility:
    Writes one notification per recipient.  Each write happens in its own
    SAVEPOINT; a failure rolls back that one row, is logged as
    ``notification_failed`` and the loop moves on to the next recipient.

Invariants enforced:
    - Recipients are de-duplicated and processed in sorted order.
    - A failed recipient never blocks the others, and ``notify()`` never
      raises, whether the store or the message builder failed.
"""

from typing import Callable, Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from workflow_kernel.domain.approval import FanoutReport, NotificationMessage
from workflow_kernel.domain.clock import Clock, SystemClock
from workflow_kernel.logging_config import get_logger
from workflow_kernel.models.notification import NotificationModel
from workflow_kernel.services.base import BaseService
from workflow_kernel.utils.serialization import to_jsonable

logger = get_logger("services.notifications")

MessageBuilder = Callable[[UUID], NotificationMessage]


class NotificationService(BaseService[NotificationModel]):

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def notify(
        self,
        organization_id: UUID,
        recipient_ids: Iterable[UUID],
        message_builder: MessageBuilder,
    ) -> FanoutReport:
        """
        Emit one notification per recipient.

        Args:
            organization_id: Owning organization of every row.
            recipient_ids: User ids to notify (duplicates collapse).
            message_builder: Builds the message for one recipient.

        Returns:
            FanoutReport listing delivered and failed recipients.
        """
        delivered: list[UUID] = []
        failed: list[UUID] = []

        for recipient_id in sorted(set(recipient_ids)):
            message = None
            try:
                message = message_builder(recipient_id)
                with self.session.begin_nested():
                    self._insert(organization_id, recipient_id, message)
            except Exception:
                failed.append(recipient_id)
                logger.warning(
                    "notification_failed",
                    exc_info=True,
                    extra={
                        "operation": message.notification_type if message else "build_message",
                        "recipient_id": str(recipient_id),
                        "entity_id": message.payload.get("entity_id") if message else None,
                    },
                )
                continue
            delivered.append(recipient_id)

        logger.info(
            "notifications_fanned_out",
            extra={
                "delivered_count": len(delivered),
                "failed_count": len(failed),
            },
        )
        return FanoutReport(delivered=tuple(delivered), failed=tuple(failed))

    def _insert(
        self,
        organization_id: UUID,
        recipient_id: UUID,
        message: NotificationMessage,
    ) -> NotificationModel:
        row = NotificationModel(
            organization_id=organization_id,
            recipient_id=recipient_id,
            notification_type=message.notification_type,
            title=message.title,
            message=message.message,
            payload=to_jsonable(message.payload),
            is_read=False,
            created_at=self._clock.now(),
        )
        self.session.add(row)
        self.session.flush()
        return row
