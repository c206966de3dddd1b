"""
Module: workflow_kernel.selectors.notification_selector
Responsibility: Inbox reads over the notifications table.
"""

from uuid import UUID

from sqlalchemy import select

from workflow_kernel.domain.notifications import NotificationRecord
from workflow_kernel.models.notification import NotificationModel
from workflow_kernel.selectors.base import BaseSelector


class NotificationSelector(BaseSelector[NotificationModel]):

    def for_recipient(
        self,
        recipient_id: UUID,
        unread_only: bool = False,
    ) -> list[NotificationRecord]:
        """Notifications for one user, newest first."""
        query = select(NotificationModel).where(
            NotificationModel.recipient_id == recipient_id,
        )
        if unread_only:
            query = query.where(NotificationModel.is_read.is_(False))
        rows = self.session.execute(
            query.order_by(NotificationModel.created_at.desc())
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def for_entity(self, entity_id: UUID) -> list[NotificationRecord]:
        """Notifications whose payload points at ``entity_id``."""
        rows = self.session.execute(
            select(NotificationModel).order_by(NotificationModel.created_at)
        ).scalars().all()
        return [
            row.to_dto() for row in rows
            if (row.payload or {}).get("entity_id") == str(entity_id)
        ]
