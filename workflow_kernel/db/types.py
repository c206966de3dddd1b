"""
Module: workflow_kernel.db.types
Responsibility: Portable column types shared by every model.

SQLite has neither a native UUID type nor timezone-aware timestamps, so
both are stored in a dialect-neutral form and converted on the way in and
out.  Values read back are always ``uuid.UUID`` and aware UTC datetimes.
"""

from datetime import timezone
from uuid import UUID

from sqlalchemy import DateTime, String
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """``uuid.UUID`` stored as its 36-character text form."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class UTCDateTime(TypeDecorator):
    """
    Aware datetime column normalized to UTC.

    Naive values going in are taken to be UTC already.  On SQLite the
    offset is stripped before binding and re-attached after loading.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None or value.tzinfo is None:
            return value
        value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None) if dialect.name == "sqlite" else value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
