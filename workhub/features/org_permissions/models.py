"""
Organization permission keys and the legacy explicit-grant record.
"""
from datetime import datetime
from sqlalchemy import String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
import enum

from workhub.core.database.base import Base, generate_ulid, utcnow


class OrgPermissionKey(str, enum.Enum):
    """
    Fine-grained org-level capabilities.

    Format: ``org.<category>.<action>``. OWNER implicitly holds every key.
    """
    # Billing
    BILLING_VIEW = "org.billing.view"
    BILLING_MANAGE = "org.billing.manage"

    # Members
    MEMBERS_VIEW = "org.members.view"
    MEMBERS_MANAGE = "org.members.manage"

    # Settings
    SETTINGS_MANAGE = "org.settings.manage"

    # Audit & Compliance
    AUDIT_VIEW = "org.audit.view"
    COMPLIANCE_VIEW = "org.compliance.view"

    # Departments
    DEPARTMENTS_MANAGE = "org.departments.manage"

    # Security
    SECURITY_VIEW = "org.security.view"

    # Workspaces
    WORKSPACE_CREATE = "org.workspace.create"
    WORKSPACE_ASSIGN = "org.workspace.assign"

    # Permission management
    PERMISSIONS_MANAGE = "org.permissions.manage"


ALL_ORG_PERMISSIONS: tuple[OrgPermissionKey, ...] = tuple(OrgPermissionKey)


def parse_org_permission(value: str) -> OrgPermissionKey | None:
    """Return the enum member for ``value`` or None if it is not a known key."""
    try:
        return OrgPermissionKey(value)
    except ValueError:
        return None


ORG_PERMISSION_METADATA: dict[OrgPermissionKey, dict[str, str]] = {
    OrgPermissionKey.BILLING_VIEW: {
        "label": "View Billing",
        "description": "View billing information and invoices",
        "category": "Billing",
    },
    OrgPermissionKey.BILLING_MANAGE: {
        "label": "Manage Billing",
        "description": "Manage payment methods and billing settings",
        "category": "Billing",
    },
    OrgPermissionKey.MEMBERS_VIEW: {
        "label": "View Members",
        "description": "View organization members list",
        "category": "Members",
    },
    OrgPermissionKey.MEMBERS_MANAGE: {
        "label": "Manage Members",
        "description": "Add, remove, and update member roles",
        "category": "Members",
    },
    OrgPermissionKey.SETTINGS_MANAGE: {
        "label": "Manage Settings",
        "description": "Modify organization settings",
        "category": "Settings",
    },
    OrgPermissionKey.AUDIT_VIEW: {
        "label": "View Audit Logs",
        "description": "View organization activity logs",
        "category": "Audit",
    },
    OrgPermissionKey.COMPLIANCE_VIEW: {
        "label": "View Compliance",
        "description": "View compliance reports and status",
        "category": "Audit",
    },
    OrgPermissionKey.DEPARTMENTS_MANAGE: {
        "label": "Manage Departments",
        "description": "Create, edit, and delete departments",
        "category": "Departments",
    },
    OrgPermissionKey.SECURITY_VIEW: {
        "label": "View Security",
        "description": "View security settings and logs",
        "category": "Security",
    },
    OrgPermissionKey.WORKSPACE_CREATE: {
        "label": "Create Workspaces",
        "description": "Create new workspaces",
        "category": "Workspaces",
    },
    OrgPermissionKey.WORKSPACE_ASSIGN: {
        "label": "Assign to Workspaces",
        "description": "Assign members to workspaces",
        "category": "Workspaces",
    },
    OrgPermissionKey.PERMISSIONS_MANAGE: {
        "label": "Manage Permissions",
        "description": "Grant and revoke member permissions",
        "category": "Permissions",
    },
}


PERMISSION_CATEGORIES: tuple[dict, ...] = (
    {
        "id": "billing",
        "label": "Billing & Payments",
        "permissions": (OrgPermissionKey.BILLING_VIEW, OrgPermissionKey.BILLING_MANAGE),
    },
    {
        "id": "members",
        "label": "Member Management",
        "permissions": (OrgPermissionKey.MEMBERS_VIEW, OrgPermissionKey.MEMBERS_MANAGE),
    },
    {
        "id": "settings",
        "label": "Organization Settings",
        "permissions": (OrgPermissionKey.SETTINGS_MANAGE,),
    },
    {
        "id": "audit",
        "label": "Audit & Compliance",
        "permissions": (OrgPermissionKey.AUDIT_VIEW, OrgPermissionKey.COMPLIANCE_VIEW),
    },
    {
        "id": "departments",
        "label": "Departments",
        "permissions": (OrgPermissionKey.DEPARTMENTS_MANAGE,),
    },
    {
        "id": "security",
        "label": "Security",
        "permissions": (OrgPermissionKey.SECURITY_VIEW,),
    },
    {
        "id": "workspaces",
        "label": "Workspaces",
        "permissions": (OrgPermissionKey.WORKSPACE_CREATE, OrgPermissionKey.WORKSPACE_ASSIGN),
    },
    {
        "id": "permissions",
        "label": "Permissions",
        "permissions": (OrgPermissionKey.PERMISSIONS_MANAGE,),
    },
)


class OrgMemberPermission(Base):
    """
    Explicit permission grant to an organization member (legacy model).

    One record per (org_member_id, permission_key). Grants are hard-deleted
    on revoke; ``granted_by``/``granted_at`` carry the audit trail.
    """
    __tablename__ = "org_member_permissions"
    __table_args__ = (
        UniqueConstraint("org_member_id", "permission_key", name="uq_org_member_permissions_member_key"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    org_member_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organization_members.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    permission_key: Mapped[str] = mapped_column(String(100), nullable=False)
    granted_by: Mapped[str] = mapped_column(String(64), nullable=False)
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<OrgMemberPermission(org_member_id={self.org_member_id}, key={self.permission_key})>"
