"""Shared pytest fixtures for access-resolution tests."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterator
from typing import Any, Optional

import jwt
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from workhub.core import config
from workhub.core.database.engine import build_engine, build_sessionmaker, get_db, init_db
from workhub.core.limiter import limiter
from workhub.features.organizations.models import (
    Department,
    DepartmentPermission,
    Organization,
    OrganizationMember,
    OrganizationRole,
    OrgMemberDepartment,
    OrgMemberStatus,
)
from workhub.features.projects.models import (
    Project,
    ProjectMember,
    ProjectPermission,
    ProjectRole,
    ProjectTeam,
    ProjectTeamMember,
)
from workhub.features.workspaces.models import Workspace, WorkspaceMember
from workhub.main import app as fastapi_app


TEST_JWT_SECRET = "workhub-test-secret-at-least-32-bytes"


class FailingSession:
    """Session double whose every store call fails."""

    async def execute(self, *args, **kwargs):
        raise SQLAlchemyError("store unavailable")

    async def get(self, *args, **kwargs):
        raise SQLAlchemyError("store unavailable")


@pytest.fixture()
def failing_session() -> FailingSession:
    return FailingSession()


@pytest_asyncio.fixture()
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    """File-backed SQLite database with every table created."""

    db_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'access.sqlite'}")
    await init_db(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_sessionmaker(engine)


@pytest_asyncio.fixture()
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as db:
        yield db


class Seeder:
    """Creates committed records for a test case."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        return obj

    async def org(self, name: str = "Acme") -> Organization:
        return await self._save(Organization(name=name))

    async def org_member(
        self,
        org: Organization,
        user_id: str,
        role: OrganizationRole = OrganizationRole.MEMBER,
        status: OrgMemberStatus = OrgMemberStatus.ACTIVE,
    ) -> OrganizationMember:
        return await self._save(OrganizationMember(
            organization_id=org.id,
            user_id=user_id,
            role=role,
            status=status,
            name=user_id,
            email=f"{user_id}@example.test",
        ))

    async def department(self, org: Organization, name: str, keys: tuple = ()) -> Department:
        department = await self._save(Department(organization_id=org.id, name=name))
        for key in keys:
            self.db.add(DepartmentPermission(department_id=department.id, permission_key=getattr(key, "value", key)))
        await self.db.commit()
        return department

    async def assign(self, member: OrganizationMember, department: Department) -> OrgMemberDepartment:
        return await self._save(OrgMemberDepartment(org_member_id=member.id, department_id=department.id))

    async def workspace(self, org: Optional[Organization] = None, owner_user_id: Optional[str] = None) -> Workspace:
        return await self._save(Workspace(
            name="Workspace",
            organization_id=org.id if org else None,
            owner_user_id=owner_user_id,
        ))

    async def workspace_member(
        self,
        workspace: Workspace,
        user_id: str,
        role: str = "MEMBER",
        status: str = "ACTIVE",
    ) -> WorkspaceMember:
        return await self._save(WorkspaceMember(
            workspace_id=workspace.id,
            user_id=user_id,
            role=role,
            status=status,
        ))

    async def project(self, workspace: Workspace, name: str = "Project") -> Project:
        return await self._save(Project(workspace_id=workspace.id, name=name))

    async def project_member(self, project: Project, user_id: str, **fields: Any) -> ProjectMember:
        fields.setdefault("status", "ACTIVE")
        return await self._save(ProjectMember(project_id=project.id, user_id=user_id, **fields))

    async def project_role(self, project: Optional[Project], name: str, permissions: list[str]) -> ProjectRole:
        return await self._save(ProjectRole(
            project_id=project.id if project else None,
            name=name,
            permissions=permissions,
        ))

    async def team(self, project: Project, name: str = "Team") -> ProjectTeam:
        return await self._save(ProjectTeam(project_id=project.id, name=name))

    async def team_member(self, team: ProjectTeam, user_id: str, team_role: Optional[str] = None) -> ProjectTeamMember:
        return await self._save(ProjectTeamMember(
            project_id=team.project_id,
            team_id=team.id,
            user_id=user_id,
            team_role=team_role,
        ))

    async def project_permission(
        self,
        project: Project,
        key: str,
        team: Optional[ProjectTeam] = None,
        user_id: Optional[str] = None,
    ) -> ProjectPermission:
        return await self._save(ProjectPermission(
            project_id=project.id,
            permission_key=key,
            assigned_to_team_id=team.id if team else None,
            assigned_to_user_id=user_id,
        ))


@pytest_asyncio.fixture()
async def seed(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[Seeder]:
    """Seeder bound to its own session so resolver sessions see committed data only."""

    async with session_factory() as db:
        yield Seeder(db)


@pytest.fixture()
def app(session_factory: async_sessionmaker[AsyncSession], monkeypatch: pytest.MonkeyPatch) -> Iterator[FastAPI]:
    """Application wired to the test database with signed test tokens."""

    async def _get_test_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    monkeypatch.setattr(config, "JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setattr(config, "JWT_ALGORITHM", "HS256")
    fastapi_app.dependency_overrides[get_db] = _get_test_db
    limiter.reset()
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Provide an HTTPX async client bound to the FastAPI app."""

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture()
def make_token() -> Callable[..., str]:
    """Sign a test token with the given claims."""

    def _token(claims: dict[str, Any], secret: str = TEST_JWT_SECRET) -> str:
        return jwt.encode(claims, secret, algorithm="HS256")

    return _token


@pytest.fixture()
def auth_headers(make_token: Callable[..., str]) -> Callable[[str], dict[str, str]]:
    """Build a bearer header for ``user_id``."""

    def _headers(user_id: str) -> dict[str, str]:
        token = make_token({"userId": user_id})
        return {"Authorization": f"Bearer {token}"}

    return _headers
