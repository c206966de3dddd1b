"""
Approver resolution (``workflow_kernel.domain.approver_strategies``).

Responsibility
--------------
``resolve_approvers`` maps (routing variant, document owner, org graph)
to the set of user ids that must review a submission.  Dispatch is one
table keyed by ``ApprovalType``; there is no strategy class hierarchy.

Invariants enforced
-------------------
* Pure: the result depends only on the routing payload and what the
  ``OrgDirectory`` answers.  Repeated calls give equal sets.
* Total: missing data (no membership, no department manager, no role id,
  no approver id) yields an empty frozenset, never an exception.
* ``manager_hierarchy`` resolves the direct department manager only.
  It does not climb to the manager's manager.
"""

from __future__ import annotations

from typing import Callable
from uuid import UUID

from workflow_kernel.domain.approval import (
    ApprovalType,
    ApproverRouting,
    OrgDirectory,
)

_NOBODY: frozenset[UUID] = frozenset()


def _manager_hierarchy(routing, organization_id, owner_id, directory) -> frozenset[UUID]:
    department_id = directory.department_of(organization_id, owner_id)
    if department_id is None:
        return _NOBODY
    manager_id = directory.manager_of(department_id)
    if manager_id is None:
        return _NOBODY
    return frozenset({manager_id})


def _role_based(routing, organization_id, owner_id, directory) -> frozenset[UUID]:
    if routing.approver_role_id is None:
        return _NOBODY
    return frozenset(directory.members_with_role(organization_id, routing.approver_role_id))


def _single_approver(routing, organization_id, owner_id, directory) -> frozenset[UUID]:
    if routing.approver_id is None:
        return _NOBODY
    return frozenset({routing.approver_id})


_Resolver = Callable[[ApproverRouting, UUID, UUID, OrgDirectory], frozenset[UUID]]

_RESOLVERS: dict[ApprovalType, _Resolver] = {
    ApprovalType.MANAGER_HIERARCHY: _manager_hierarchy,
    ApprovalType.ROLE_BASED: _role_based,
    ApprovalType.SINGLE_APPROVER: _single_approver,
}


def resolve_approvers(
    routing: ApproverRouting,
    organization_id: UUID,
    owner_id: UUID,
    directory: OrgDirectory,
) -> frozenset[UUID]:
    """
    Compute who must approve a document owned by ``owner_id``.

    Args:
        routing: Parsed routing variant from the active workflow.
        organization_id: Organization the document belongs to.
        owner_id: The document's owning user.
        directory: Organization graph lookups.

    Returns:
        Possibly-empty frozenset of approver user ids.  The caller treats
        an empty set as "no one to notify", not as an error.
    """
    return _RESOLVERS[routing.approval_type](routing, organization_id, owner_id, directory)
