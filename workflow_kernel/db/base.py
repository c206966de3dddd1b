"""
Module: workflow_kernel.db.base
Responsibility: Declarative bases for the workflow models.

Every table gets a uuid4 primary key.  ``TrackedBase`` adds who/when
columns to the mutable business tables (documents, invoices, workflows);
the append-only logs derive from ``Base`` directly and carry their own
timestamps.

Nothing in this module imports from models/, services/ or selectors/.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import JSON, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from workflow_kernel.db.types import UTCDateTime, UUIDString

# Hours, quantities and money all fit Numeric(19, 4).
AMOUNT = Numeric(19, 4)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        datetime: UTCDateTime(),
        Decimal: AMOUNT,
        dict[str, Any]: JSON,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Abstract base with creation/update stamps and the acting user ids."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(),
    )
    created_by_id: Mapped[UUID] = mapped_column()
    updated_by_id: Mapped[UUID | None] = mapped_column()


__all__ = ["AMOUNT", "Base", "TrackedBase", "UUIDString"]
