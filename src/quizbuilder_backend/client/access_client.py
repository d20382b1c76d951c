import logging
from typing import Optional

import httpx
from httpx import AsyncClient, Response

from quizbuilder_backend.permissions.errors import VerificationError
from quizbuilder_backend.permissions.principal import VerificationKind, READ
from quizbuilder_backend.settings import settings

logger = logging.getLogger(__name__)


def _error_message(response: Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return body.get("message") or body.get("detail") or f"HTTP {response.status_code}"
    return f"HTTP {response.status_code}"


def raise_if_response_is_error(response: Response, kind: str):
    if response.is_error:
        raise VerificationError(
            f"{kind} access check failed: {_error_message(response)}",
            status_code=response.status_code,
        )


def _has_access(response: Response, kind: str) -> bool:
    try:
        body = response.json()
    except ValueError:
        raise VerificationError(f"{kind} access check returned an invalid body", status_code=response.status_code)
    return bool(body.get("hasAccess", False)) if isinstance(body, dict) else False


class RemoteAccessClient:
    """Client for the remote store's access-check endpoints"""

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None, client: Optional[AsyncClient] = None):
        self.base_url = base_url or settings.API_BASE_URL
        self.token = token if token is not None else settings.API_TOKEN
        self.client = client or AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.API_TIMEOUT,
        )

    def _headers(self, headers: Optional[dict]) -> dict:
        request_headers = {"Content-Type": "application/json"}
        if self.token:
            request_headers["Authorization"] = f"Bearer {self.token}"
        request_headers.update(headers or {})
        return request_headers

    async def check(self, kind: str, tenant_id: str, resource_id: str, actor_id: str,
                    action: Optional[str] = None, headers: Optional[dict] = None) -> bool:
        """Issue one access-check request; raises VerificationError on failure"""
        kind = VerificationKind(kind).value
        action = action or READ

        try:
            if kind == VerificationKind.QUIZ.value:
                response = await self.client.post(
                    f"/api/quizzes/{resource_id}/verify-access",
                    json={"tenantId": tenant_id, "userId": actor_id, "action": action},
                    headers=self._headers(headers),
                )
            elif kind == VerificationKind.CLASSROOM.value:
                response = await self.client.post(
                    f"/api/classrooms/{resource_id}/verify-access",
                    json={"tenantId": tenant_id, "userId": actor_id, "action": action},
                    headers=self._headers(headers),
                )
            elif kind == VerificationKind.STUDENT.value:
                response = await self.client.post(
                    f"/api/students/{resource_id}/verify-instructor-access",
                    json={"tenantId": tenant_id, "instructorId": actor_id},
                    headers=self._headers(headers),
                )
            else:
                response = await self.client.get(
                    f"/api/classrooms/{resource_id}/members/{actor_id}",
                    headers=self._headers(headers),
                )
        except httpx.HTTPError as e:
            logger.warning(f"{kind} access check for {resource_id} unreachable: {e}")
            raise VerificationError(f"Failed to verify {kind} access")

        if kind == VerificationKind.MEMBERSHIP.value:
            if response.status_code == httpx.codes.NOT_FOUND:
                return False
            raise_if_response_is_error(response, kind)
            return True

        raise_if_response_is_error(response, kind)
        return _has_access(response, kind)

    async def aclose(self):
        await self.client.aclose()
