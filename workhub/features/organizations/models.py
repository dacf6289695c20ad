"""
Organization membership models.

Organizations own departments; departments own org-level permission keys.
Non-owner members receive org permissions only through the departments
they are assigned to.
"""
from datetime import datetime
from sqlalchemy import String, ForeignKey, DateTime, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum

from workhub.core.database.base import Base, TimestampMixin, generate_ulid, utcnow


class OrganizationRole(str, enum.Enum):
    """Role of a member within an organization."""
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    MEMBER = "MEMBER"


class OrgMemberStatus(str, enum.Enum):
    """Membership status. Members are deactivated, never deleted."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Organization(Base, TimestampMixin):
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    members: Mapped[list["OrganizationMember"]] = relationship(
        "OrganizationMember",
        back_populates="organization",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r})>"


class OrganizationMember(Base, TimestampMixin):
    """
    A user's membership in an organization.

    Created on invite acceptance. Removal flips ``status`` to INACTIVE so
    historical records stay resolvable for audit logs.
    """
    __tablename__ = "organization_members"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_organization_members_org_user"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    role: Mapped[OrganizationRole] = mapped_column(
        SQLEnum(OrganizationRole),
        default=OrganizationRole.MEMBER,
        nullable=False
    )
    status: Mapped[OrgMemberStatus] = mapped_column(
        SQLEnum(OrgMemberStatus),
        default=OrgMemberStatus.ACTIVE,
        nullable=False,
        index=True
    )

    # Denormalized profile fields for member listings
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="members",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<OrganizationMember(id={self.id}, org_id={self.organization_id}, user_id={self.user_id}, role={self.role})>"


class Department(Base, TimestampMixin):
    """
    Organization-scoped group that owns a set of org permission keys.
    """
    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def __repr__(self) -> str:
        return f"<Department(id={self.id}, name={self.name!r}, org_id={self.organization_id})>"


class DepartmentPermission(Base):
    """An org permission key granted to every member of a department."""
    __tablename__ = "department_permissions"
    __table_args__ = (
        UniqueConstraint("department_id", "permission_key", name="uq_department_permissions_dept_key"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    department_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("departments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    permission_key: Mapped[str] = mapped_column(String(100), nullable=False)
    granted_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<DepartmentPermission(department_id={self.department_id}, key={self.permission_key})>"


class OrgMemberDepartment(Base):
    """Assignment of an organization member to a department."""
    __tablename__ = "org_member_departments"
    __table_args__ = (
        UniqueConstraint("org_member_id", "department_id", name="uq_org_member_departments_pair"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    org_member_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organization_members.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    department_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("departments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    def __repr__(self) -> str:
        return f"<OrgMemberDepartment(org_member_id={self.org_member_id}, department_id={self.department_id})>"
