"""
FastAPI dependencies for access resolution.
"""
from typing import Annotated, Optional
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.core.database.engine import get_db
from workhub.features.access.schemas import UserAccess
from workhub.features.access.user_access import resolve_personal_user_access, resolve_user_access
from workhub.features.users.dependencies import get_current_user_id


async def get_user_access(
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
    organization_id: Optional[str] = None,
    workspace_id: Optional[str] = None
) -> UserAccess:
    """
    Navigation access of the caller.

    With an ``organization_id`` query parameter the org model applies;
    without one the caller is treated as a personal account.
    """
    if organization_id:
        return await resolve_user_access(db, user_id, organization_id, workspace_id)
    return resolve_personal_user_access(user_id, workspace_id)
