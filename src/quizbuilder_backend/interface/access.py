from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from quizbuilder_backend.permissions.audit import AuditEntry


class VerifyAccessRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tenant_id: Optional[str] = Field(None, alias="tenantId")
    user_id: Optional[str] = Field(None, alias="userId")
    action: str = "read"


class StudentAccessRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tenant_id: Optional[str] = Field(None, alias="tenantId")
    instructor_id: Optional[str] = Field(None, alias="instructorId")


class AccessResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    has_access: bool = Field(alias="hasAccess")


class AuditLogCreate(AuditEntry):
    pass
