"""
Approval domain types (``workflow_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for approval routing: the three approver-resolution
variants, the workflow configuration they are parsed from, the approval
request record, and the result of a submission.

Routing is a closed tagged union.  ``ApprovalType`` is the tag; each
variant is a frozen dataclass carrying only the payload that variant
reads.  ``parse_routing`` is the single place an opaque workflow
``config`` blob is interpreted.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Protocol, Union
from uuid import UUID

from workflow_kernel.domain.documents import DocumentKind, DocumentSnapshot


class ApprovalType(str, Enum):
    MANAGER_HIERARCHY = "manager_hierarchy"
    ROLE_BASED = "role_based"
    SINGLE_APPROVER = "single_approver"


class ApprovalRequestStatus(str, Enum):
    """Approval request lifecycle states.

    This kernel only ever writes PENDING; the other values belong to the
    external decision process.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ESCALATED = "escalated"
    CANCELLED = "cancelled"


class RoutingOutcome(str, Enum):
    """How a successful submission was (or was not) routed."""

    ROUTED = "routed"
    NO_WORKFLOW = "no_workflow"
    NO_APPROVERS = "no_approvers"


# =========================================================================
# Routing variants
# =========================================================================


@dataclass(frozen=True)
class ManagerHierarchyRouting:
    """Direct department manager of the document owner (one level only)."""

    approval_type: ClassVar[ApprovalType] = ApprovalType.MANAGER_HIERARCHY


@dataclass(frozen=True)
class RoleBasedRouting:
    """Every active member of the organization holding ``approver_role_id``."""

    approver_role_id: UUID | None
    approval_type: ClassVar[ApprovalType] = ApprovalType.ROLE_BASED


@dataclass(frozen=True)
class SingleApproverRouting:
    approver_id: UUID | None
    approval_type: ClassVar[ApprovalType] = ApprovalType.SINGLE_APPROVER


ApproverRouting = Union[
    ManagerHierarchyRouting,
    RoleBasedRouting,
    SingleApproverRouting,
]


def _optional_uuid(value: Any) -> UUID | None:
    """Coerce a config value to UUID; anything unusable becomes None."""
    if value is None or value == "":
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def parse_routing(approval_type: ApprovalType | str, config: dict[str, Any] | None) -> ApproverRouting:
    """
    Interpret a workflow's ``config`` blob for its ``approval_type``.

    Missing or malformed ids are carried as ``None`` so that resolution
    yields an empty approver set rather than an error.

    Raises:
        ValueError: If ``approval_type`` is not a known tag.
    """
    tag = ApprovalType(approval_type)
    cfg = config or {}
    if tag is ApprovalType.MANAGER_HIERARCHY:
        return ManagerHierarchyRouting()
    if tag is ApprovalType.ROLE_BASED:
        return RoleBasedRouting(approver_role_id=_optional_uuid(cfg.get("approver_role_id")))
    return SingleApproverRouting(approver_id=_optional_uuid(cfg.get("approver_id")))


def total_steps_from_config(config: dict[str, Any] | None) -> int:
    """``len(config["steps"])`` when it is a non-empty list, else 1."""
    steps = (config or {}).get("steps")
    if isinstance(steps, (list, tuple)) and steps:
        return len(steps)
    return 1


# =========================================================================
# Records
# =========================================================================


@dataclass(frozen=True)
class WorkflowConfig:
    """One active workflow for an (organization, entity type) pair."""

    workflow_id: UUID
    organization_id: UUID
    entity_type: DocumentKind
    name: str
    routing: ApproverRouting
    total_steps: int = 1
    is_active: bool = True
    created_at: datetime | None = None

    @property
    def approval_type(self) -> ApprovalType:
        return self.routing.approval_type


@dataclass(frozen=True)
class ApprovalRequest:
    request_id: UUID
    organization_id: UUID
    workflow_id: UUID
    entity_type: DocumentKind
    entity_id: UUID
    status: ApprovalRequestStatus
    requested_by_id: UUID
    requested_at: datetime
    current_step: int
    total_steps: int


@dataclass(frozen=True)
class NotificationMessage:
    """Content of one in-app notification."""

    notification_type: str
    title: str
    message: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FanoutReport:
    """Per-recipient outcome of a notification fan-out."""

    delivered: tuple[UUID, ...] = ()
    failed: tuple[UUID, ...] = ()

    @property
    def all_delivered(self) -> bool:
        return not self.failed


@dataclass(frozen=True)
class SubmissionResult:
    document: DocumentSnapshot
    outcome: RoutingOutcome
    approval_request: ApprovalRequest | None = None
    workflow: WorkflowConfig | None = None
    approver_ids: frozenset[UUID] = frozenset()
    notifications: FanoutReport = field(default_factory=FanoutReport)

    @property
    def is_routed(self) -> bool:
        return self.outcome is RoutingOutcome.ROUTED


# =========================================================================
# OrgDirectory Protocol
# =========================================================================


class OrgDirectory(Protocol):
    """Lookups approver resolution needs from the organization graph."""

    def department_of(self, organization_id: UUID, user_id: UUID) -> UUID | None:
        """Department of the user's active membership, if any."""
        ...

    def manager_of(self, department_id: UUID) -> UUID | None:
        ...

    def members_with_role(self, organization_id: UUID, role_id: UUID) -> frozenset[UUID]:
        """User ids of active members holding ``role_id``."""
        ...
