"""Database layer - engine, declarative bases and portable column types."""

from workflow_kernel.db.base import Base, TrackedBase
from workflow_kernel.db.engine import create_tables, get_engine, get_session, session_scope
from workflow_kernel.db.types import UTCDateTime, UUIDString

__all__ = [
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "UUIDString",
    "create_tables",
    "get_engine",
    "get_session",
    "session_scope",
]
