"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session contract for every service.  Services
    receive a SQLAlchemy ``Session`` and persist with ``session.flush()``;
    they never commit or roll back the caller's transaction.

Critical path vs. best-effort tail:
    The document status write, the approval request insert and the reminder
    log insert are the critical path: their failures propagate.  Store
    outages there surface as ``DownstreamUnavailableError`` via
    ``downstream_guard``.  Notifications and audit rows are the tail: each
    is written inside its own SAVEPOINT so that a failure rolls back only
    that row and is logged, not raised.
"""

from abc import ABC
from contextlib import contextmanager
from typing import Generator, Generic, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session

from workflow_kernel.db.base import Base
from workflow_kernel.exceptions import DownstreamUnavailableError
from workflow_kernel.logging_config import get_logger

ModelType = TypeVar("ModelType", bound=Base)

logger = get_logger("services.base")


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
    """

    def __init__(self, session: Session):
        self.session = session


@contextmanager
def downstream_guard(operation: str) -> Generator[None, None, None]:
    """Translate connection-level store failures into DownstreamUnavailableError."""
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        logger.error(
            "downstream_unavailable",
            exc_info=True,
            extra={"operation": operation},
        )
        detail = str(exc.orig) if exc.orig is not None else str(exc)
        raise DownstreamUnavailableError(operation, detail) from exc
