"""
Workspace models.

A workspace is either PERSONAL (no organization, owned by one user) or
scoped to an organization.
"""
from sqlalchemy import String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
import enum

from workhub.core.database.base import Base, TimestampMixin, generate_ulid


class WorkspaceMemberRole(str, enum.Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    # Legacy admin role name still present on older membership records
    WS_ADMIN = "WS_ADMIN"


class WorkspaceMemberStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    DELETED = "DELETED"


# Roles able to write workspace data / administer the workspace
WORKSPACE_WRITE_ROLES = frozenset({
    WorkspaceMemberRole.OWNER,
    WorkspaceMemberRole.ADMIN,
    WorkspaceMemberRole.WS_ADMIN,
    WorkspaceMemberRole.MEMBER,
})
WORKSPACE_ADMIN_ROLES = frozenset({
    WorkspaceMemberRole.OWNER,
    WorkspaceMemberRole.ADMIN,
    WorkspaceMemberRole.WS_ADMIN,
})


class Workspace(Base, TimestampMixin):
    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Null for personal workspaces
    organization_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    owner_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    @property
    def is_personal(self) -> bool:
        return self.organization_id is None

    def __repr__(self) -> str:
        return f"<Workspace(id={self.id}, name={self.name!r}, org_id={self.organization_id})>"


class WorkspaceMember(Base, TimestampMixin):
    """
    Direct workspace membership.

    ``role`` is stored as plain text because legacy records carry role names
    outside the current enum. A DELETED status counts as no membership.
    """
    __tablename__ = "workspace_members"
    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_workspace_members_ws_user"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    workspace_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=WorkspaceMemberRole.MEMBER.value)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=WorkspaceMemberStatus.ACTIVE.value)

    @property
    def is_deleted(self) -> bool:
        return self.status == WorkspaceMemberStatus.DELETED.value

    def __repr__(self) -> str:
        return f"<WorkspaceMember(id={self.id}, ws_id={self.workspace_id}, user_id={self.user_id}, role={self.role})>"
