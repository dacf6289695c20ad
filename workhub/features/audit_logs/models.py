"""
Audit log for permission and department changes.
"""
from typing import Any, Dict
from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column

from workhub.core.database.base import Base, TimestampMixin, generate_ulid


class AuditLog(Base, TimestampMixin):
    """
    Tracks who changed which grant, and in which organization.
    """
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # Actor
    actor_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    # Action details
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)

    # Context
    organization_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, actor={self.actor_user_id}, action={self.action}, resource={self.resource_type})>"
