"""
Audit emitter for access decisions.

Sinks are fire-and-forget: ``record`` must never raise, failures are
logged at warning level and dropped.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

import httpx
from pydantic import BaseModel, Field

from quizbuilder_backend.permissions.principal import enum_value
from quizbuilder_backend.settings import settings

logger = logging.getLogger(__name__)

AUDIT_LOG_PATH = "/api/audit/log"
DEFAULT_USER_AGENT = "quizbuilder-backend"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEntry(BaseModel):
    user_id: Optional[str] = None
    tenant_id: Optional[str] = None
    resource_type: str
    resource_id: Optional[str] = None
    action: str
    result: str
    timestamp: datetime = Field(default_factory=_utcnow)
    user_agent: Optional[str] = DEFAULT_USER_AGENT

    @classmethod
    def from_decision(cls, user_id, tenant_id, resource_type, resource_id, action, allowed: bool,
                      user_agent: Optional[str] = DEFAULT_USER_AGENT) -> "AuditEntry":
        return cls(
            user_id=user_id,
            tenant_id=tenant_id,
            resource_type=enum_value(resource_type),
            resource_id=enum_value(resource_id),
            action=enum_value(action),
            result="success" if allowed else "denied",
            user_agent=user_agent,
        )


class AuditSink(ABC):
    """Destination for audit entries"""

    @abstractmethod
    async def record(self, entry: AuditEntry) -> None:
        pass

    async def aclose(self) -> None:
        """Release resources held by the sink"""
        return None


class NullAuditSink(AuditSink):

    async def record(self, entry: AuditEntry) -> None:
        return None


class LoggingAuditSink(AuditSink):
    """Writes audit entries to the application log"""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logging.getLogger("quizbuilder_backend.audit")

    async def record(self, entry: AuditEntry) -> None:
        try:
            self.log.info(
                f"access {entry.result}: user={entry.user_id} tenant={entry.tenant_id} "
                f"{entry.action} {entry.resource_type}/{entry.resource_id}"
            )
        except Exception as e:
            logger.warning(f"Failed to log audit entry: {e}")


class HttpAuditSink(AuditSink):
    """Posts audit entries to the remote audit endpoint"""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, base_url: Optional[str] = None,
                 token: Optional[str] = None):
        self.client = client or httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=settings.API_TIMEOUT,
        )
        self.token = token if token is not None else settings.API_TOKEN

    async def record(self, entry: AuditEntry) -> None:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = await self.client.post(
                AUDIT_LOG_PATH,
                content=entry.model_dump_json(),
                headers=headers,
            )
            if response.is_error:
                logger.warning(f"Failed to log audit entry: HTTP {response.status_code}")
        except Exception as e:
            logger.warning(f"Failed to log audit entry: {e}")

    async def aclose(self) -> None:
        await self.client.aclose()
