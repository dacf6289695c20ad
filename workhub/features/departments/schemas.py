"""
Pydantic schemas for department management.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from workhub.features.organizations.models import OrganizationRole, OrgMemberStatus


class DepartmentBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Department name, unique within the organization")
    description: Optional[str] = Field(None, max_length=1000)


class DepartmentCreate(DepartmentBase):
    pass


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            raise ValueError("Department name cannot be null")
        return v


class DepartmentResponse(DepartmentBase):
    id: str
    organization_id: str
    member_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AssignMemberRequest(BaseModel):
    org_member_id: str = Field(..., min_length=1)


class AddDepartmentPermissionRequest(BaseModel):
    permission_key: str = Field(..., min_length=1, description="Org permission key, e.g. 'org.billing.view'")


class DepartmentPermissionResponse(BaseModel):
    id: str
    department_id: str
    permission_key: str
    granted_by: Optional[str] = None
    granted_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DepartmentMemberResponse(BaseModel):
    id: str
    user_id: str
    role: OrganizationRole
    status: OrgMemberStatus
    name: Optional[str] = None
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
