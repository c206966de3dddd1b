"""
Module: workflow_kernel.models.organization
Responsibility: ORM persistence for organizations, departments and
    memberships -- the graph approver resolution walks.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One membership per (organization, user).
    - A membership's department must belong to the same organization
      (enforced by the service that maintains memberships; not re-checked
      here).

Users and roles are owned by the identity layer; they appear here only as
opaque UUIDs.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from workflow_kernel.db.base import Base, TrackedBase, UUIDString


class Organization(Base):
    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Organization {self.slug}>"


class Department(TrackedBase):
    """A department and its (single) manager."""

    __tablename__ = "departments"

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_department_org_name"),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("organizations.id"), nullable=False,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    manager_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<Department {self.name} manager={self.manager_id}>"


class OrganizationMember(TrackedBase):
    __tablename__ = "organization_members"

    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_member_org_user"),
        Index("idx_member_org_role", "organization_id", "role_id", "is_active"),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("organizations.id"), nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    role_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    department_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("departments.id"), nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<OrganizationMember user={self.user_id} active={self.is_active}>"
