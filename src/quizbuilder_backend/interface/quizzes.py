from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class QuizCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    status: str = "draft"
    tenant_id: Optional[str] = None
    owner_user_id: Optional[str] = None


class QuizUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    status: Optional[str] = None


class QuizGet(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    owner_user_id: Optional[str] = None
    title: str
    status: str
    created_at: Optional[datetime] = None


class ClassroomGet(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    owner_user_id: Optional[str] = None
    name: str
    status: str
    created_at: Optional[datetime] = None
