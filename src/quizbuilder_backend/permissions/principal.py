from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator


class Role(str, Enum):
    SUPER_ADMIN = "super_admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"


class PlanTier(str, Enum):
    BASIC = "basic"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class ResourceType(str, Enum):
    QUIZ = "quiz"
    QUIZ_BLUEPRINT = "quiz_blueprint"
    CLASSROOM = "classroom"
    STUDENT = "student"
    ANALYTICS = "analytics"
    RESULT = "result"
    QUIZ_ATTEMPT = "quiz_attempt"


class VerificationKind(str, Enum):
    """Remote access-check endpoints"""
    QUIZ = "quiz"
    CLASSROOM = "classroom"
    STUDENT = "student"
    MEMBERSHIP = "membership"


READ = "read"


class Tenant(BaseModel):
    """Organizational boundary"""

    model_config = ConfigDict(frozen=True)

    id: str
    slug: Optional[str] = None
    name: Optional[str] = None


class Actor(BaseModel):
    """Authenticated principal, immutable for the lifetime of a request"""

    model_config = ConfigDict(frozen=True)

    id: str
    role: str
    tenant_id: Optional[str] = None
    subscription_tier: str = PlanTier.BASIC.value

    @field_validator("subscription_tier", mode="before")
    @classmethod
    def default_tier(cls, value):
        return value or PlanTier.BASIC.value

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN.value

    @property
    def is_instructor(self) -> bool:
        return self.role == Role.INSTRUCTOR.value

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT.value


class ResourceRef(BaseModel):
    """Reference to a resource subject to an access decision"""

    model_config = ConfigDict(frozen=True)

    type: str
    id: Optional[str] = None
    owner_user_id: Optional[str] = None
    tenant_id: Optional[str] = None


class AccessDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allow: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allow

    @classmethod
    def allowed(cls, reason: Optional[str] = None) -> "AccessDecision":
        return cls(allow=True, reason=reason)

    @classmethod
    def denied(cls, reason: Optional[str] = "DENIED") -> "AccessDecision":
        return cls(allow=False, reason=reason)


def enum_value(value) -> Optional[str]:
    """Plain string for enum members and raw values alike"""
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)
