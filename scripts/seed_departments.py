"""
Seed script to populate a demo organization with departments.

Creates:
- A demo organization owned by SEED_OWNER_USER_ID
- Default departments, each owning a set of org permission keys

Members gain org access only through departments, so a fresh organization
without these is usable by its OWNER alone.

Usage:
    uv run python -m scripts.seed_departments
"""
import asyncio
import os
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.core.database.engine import get_db, init_db
from workhub.features.org_permissions.models import OrgPermissionKey
from workhub.features.organizations.models import (
    Department,
    DepartmentPermission,
    Organization,
    OrganizationMember,
    OrganizationRole,
)
from workhub.utils import get_logger


log = get_logger(__name__)

DEMO_ORG_NAME = os.environ.get("SEED_ORG_NAME", "Demo Organization")
OWNER_USER_ID = os.environ.get("SEED_OWNER_USER_ID", "demo-owner")


DEFAULT_DEPARTMENTS = {
    "Finance": {
        "description": "Billing and usage",
        "permissions": [
            OrgPermissionKey.BILLING_VIEW,
            OrgPermissionKey.BILLING_MANAGE,
        ]
    },
    "People": {
        "description": "Member management",
        "permissions": [
            OrgPermissionKey.MEMBERS_VIEW,
            OrgPermissionKey.MEMBERS_MANAGE,
            OrgPermissionKey.WORKSPACE_ASSIGN,
        ]
    },
    "Operations": {
        "description": "Workspace setup and organization settings",
        "permissions": [
            OrgPermissionKey.MEMBERS_VIEW,
            OrgPermissionKey.WORKSPACE_CREATE,
            OrgPermissionKey.WORKSPACE_ASSIGN,
            OrgPermissionKey.SETTINGS_MANAGE,
            OrgPermissionKey.DEPARTMENTS_MANAGE,
        ]
    },
    "Compliance": {
        "description": "Audit, compliance and security review",
        "permissions": [
            OrgPermissionKey.AUDIT_VIEW,
            OrgPermissionKey.COMPLIANCE_VIEW,
            OrgPermissionKey.SECURITY_VIEW,
        ]
    },
}


async def seed_organization(db: AsyncSession) -> Organization:
    """
    Create the demo organization and its OWNER membership.

    Returns:
        The existing or newly created Organization
    """
    stmt = select(Organization).where(Organization.name == DEMO_ORG_NAME)
    result = await db.execute(stmt)
    organization = result.scalars().first()

    if organization:
        log.debug(f"Organization '{DEMO_ORG_NAME}' already exists, skipping")
        return organization

    organization = Organization(name=DEMO_ORG_NAME)
    db.add(organization)
    await db.flush()

    db.add(OrganizationMember(
        organization_id=organization.id,
        user_id=OWNER_USER_ID,
        role=OrganizationRole.OWNER,
        name="Demo Owner"
    ))
    await db.commit()

    log.info(f"Created organization '{DEMO_ORG_NAME}' ({organization.id}) owned by {OWNER_USER_ID}")
    return organization


async def seed_departments(db: AsyncSession, organization: Organization):
    """
    Create default departments and assign their permission keys.

    Args:
        db: Database session
        organization: Organization that owns the departments
    """
    log.info("Creating default departments...")

    for name, department_config in DEFAULT_DEPARTMENTS.items():
        stmt = select(Department).where(
            Department.organization_id == organization.id,
            Department.name == name
        )
        result = await db.execute(stmt)
        if result.scalars().first():
            log.debug(f"Department '{name}' already exists, skipping")
            continue

        department = Department(
            organization_id=organization.id,
            name=name,
            description=department_config["description"]
        )
        db.add(department)
        await db.flush()

        for key in department_config["permissions"]:
            db.add(DepartmentPermission(
                department_id=department.id,
                permission_key=key.value,
                granted_by=OWNER_USER_ID
            ))
        log.info(f"Created department '{name}' with {len(department_config['permissions'])} permissions")

    await db.commit()
    log.info("Default departments created successfully")


async def main():
    """Main function to seed the demo organization and departments."""
    log.info("Starting department seeding...")

    log.info("Initializing database tables...")
    await init_db()

    async for db in get_db():
        try:
            organization = await seed_organization(db)
            await seed_departments(db, organization)

            log.info("Department seeding completed successfully!")
            log.info("")
            log.info("Default departments:")
            for name, department_config in DEFAULT_DEPARTMENTS.items():
                keys = ", ".join(key.value for key in department_config["permissions"])
                log.info(f"  - {name}: {keys}")

        except Exception as e:
            log.error(f"Error seeding departments: {e}", exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
