"""
Project membership, team and permission models.

Project access requires a ProjectMember record (or a higher-scope
override); teams and permission grants never cross project boundaries.
"""
from datetime import datetime
from sqlalchemy import String, ForeignKey, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
import enum

from workhub.core.database.base import Base, TimestampMixin, generate_ulid, utcnow


class ProjectMemberRole(str, enum.Enum):
    PROJECT_OWNER = "PROJECT_OWNER"   # Full control, cannot be removed
    PROJECT_ADMIN = "PROJECT_ADMIN"   # Manage members, teams, permissions
    MEMBER = "MEMBER"                 # Standard access based on team permissions
    VIEWER = "VIEWER"                 # Read-only access


class ProjectMemberStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INVITED = "INVITED"
    REMOVED = "REMOVED"


class ProjectPermissionKey(str, enum.Enum):
    """Project-scoped permission keys."""
    VIEW_PROJECT = "project.view"
    VIEW_TASKS = "tasks.view"
    VIEW_SPRINTS = "sprints.view"
    VIEW_DOCS = "docs.view"
    VIEW_MEMBERS = "members.view"
    VIEW_TEAMS = "teams.view"

    CREATE_TASKS = "tasks.create"
    CREATE_SPRINTS = "sprints.create"
    CREATE_DOCS = "docs.create"

    EDIT_TASKS = "tasks.edit"
    EDIT_SPRINTS = "sprints.edit"
    EDIT_DOCS = "docs.edit"

    DELETE_TASKS = "tasks.delete"
    DELETE_SPRINTS = "sprints.delete"
    DELETE_DOCS = "docs.delete"

    START_SPRINT = "sprints.start"
    COMPLETE_SPRINT = "sprints.complete"

    MANAGE_MEMBERS = "members.manage"
    MANAGE_TEAMS = "teams.manage"
    MANAGE_PERMISSIONS = "permissions.manage"
    EDIT_SETTINGS = "settings.edit"
    DELETE_PROJECT = "project.delete"


ALL_PROJECT_PERMISSIONS: tuple[ProjectPermissionKey, ...] = tuple(ProjectPermissionKey)


class Project(Base, TimestampMixin):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    workspace_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name!r}, ws_id={self.workspace_id})>"


class ProjectRole(Base, TimestampMixin):
    """Custom role document referenced by ProjectMember.role_id."""
    __tablename__ = "project_roles"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    project_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    permissions: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<ProjectRole(id={self.id}, name={self.name!r})>"


class ProjectMember(Base, TimestampMixin):
    """
    Direct project membership.

    Records come in two shapes depending on how they were created: either
    ``role`` holds a ProjectMemberRole value, or ``role_id`` points at a
    ProjectRole with ``role_name`` denormalized ("OWNER", "ADMIN", ...).
    ``status`` may be missing on older records.
    """
    __tablename__ = "project_members"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    project_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    role: Mapped[str | None] = mapped_column(String(32), nullable=True)
    role_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("project_roles.id", ondelete="SET NULL"),
        nullable=True
    )
    role_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    added_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<ProjectMember(id={self.id}, project_id={self.project_id}, user_id={self.user_id}, role={self.role})>"


class ProjectTeam(Base, TimestampMixin):
    __tablename__ = "project_teams"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    project_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<ProjectTeam(id={self.id}, name={self.name!r}, project_id={self.project_id})>"


class ProjectTeamMember(Base, TimestampMixin):
    """Links a user to a team within one project."""
    __tablename__ = "project_team_members"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    project_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    team_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("project_teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    team_role: Mapped[str | None] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<ProjectTeamMember(team_id={self.team_id}, user_id={self.user_id})>"


class ProjectPermission(Base):
    """
    A project permission granted to a team OR a single user.
    """
    __tablename__ = "project_permissions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    project_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    permission_key: Mapped[str] = mapped_column(String(100), nullable=False)

    # Exactly one of these is set
    assigned_to_team_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("project_teams.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    assigned_to_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    granted_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<ProjectPermission(project_id={self.project_id}, key={self.permission_key})>"
