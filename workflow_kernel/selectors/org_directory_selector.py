"""
Module: workflow_kernel.selectors.org_directory_selector
Responsibility: Database-backed OrgDirectory for approver resolution.

Only active memberships count.  A user with an inactive membership has no
department (so no manager) and is never a role-based approver.
"""

from uuid import UUID

from sqlalchemy import select

from workflow_kernel.models.organization import Department, OrganizationMember
from workflow_kernel.selectors.base import BaseSelector


class OrgDirectorySelector(BaseSelector[OrganizationMember]):
    """Implements the ``OrgDirectory`` protocol against the organization tables."""

    def department_of(self, organization_id: UUID, user_id: UUID) -> UUID | None:
        return self.session.execute(
            select(OrganizationMember.department_id).where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.user_id == user_id,
                OrganizationMember.is_active.is_(True),
            )
        ).scalar_one_or_none()

    def manager_of(self, department_id: UUID) -> UUID | None:
        return self.session.execute(
            select(Department.manager_id).where(Department.id == department_id)
        ).scalar_one_or_none()

    def members_with_role(self, organization_id: UUID, role_id: UUID) -> frozenset[UUID]:
        rows = self.session.execute(
            select(OrganizationMember.user_id).where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.role_id == role_id,
                OrganizationMember.is_active.is_(True),
            )
        ).scalars().all()
        return frozenset(rows)
