"""
Module: workflow_kernel.models.notification
Responsibility: ORM persistence for in-app notifications.

Notifications are a side channel.  Nothing links them to an approval
request except the ``payload`` reference, and a missing row is
recoverable.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from workflow_kernel.db.base import Base, UUIDString
from workflow_kernel.domain.notifications import NotificationRecord


class NotificationModel(Base):
    __tablename__ = "notifications"

    __table_args__ = (
        Index("idx_notifications_recipient", "recipient_id", "is_read", "created_at"),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("organizations.id"), nullable=False,
    )
    recipient_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Notification {self.notification_type} to={self.recipient_id}>"

    def to_dto(self) -> NotificationRecord:
        return NotificationRecord(
            notification_id=self.id,
            organization_id=self.organization_id,
            recipient_id=self.recipient_id,
            notification_type=self.notification_type,
            title=self.title,
            message=self.message,
            payload=dict(self.payload or {}),
            is_read=self.is_read,
            created_at=self.created_at,
        )
