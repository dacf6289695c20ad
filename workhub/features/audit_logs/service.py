"""
Audit logging helpers.
"""
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.features.audit_logs.models import AuditLog
from workhub.utils import get_logger


log = get_logger(__name__)


def record_audit_log(
    db: AsyncSession,
    actor_user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    organization_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Stage an audit log entry on the session.

    The entry is committed together with the change it describes, so a
    rolled-back mutation leaves no audit record behind.

    Args:
        db: Database session
        actor_user_id: User performing the action
        action: Action performed (e.g., "grant", "revoke", "assign")
        resource_type: Type of resource (e.g., "org_permission", "department")
        resource_id: ID of the resource
        organization_id: Organization context
        details: Additional details

    Returns:
        The pending AuditLog object
    """
    audit_log = AuditLog(
        actor_user_id=actor_user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        organization_id=organization_id,
        details=details,
    )
    db.add(audit_log)

    log.info(
        f"Audit: user={actor_user_id} action={action} resource={resource_type}:{resource_id} org={organization_id}"
    )

    return audit_log
