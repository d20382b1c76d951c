"""
Actor resolution for incoming requests.

Callers authenticate with a signed JWT bearer token carrying the claims
``{userId, tenantId, role, exp, plan?}``. The ``X-User-ID`` / ``X-Tenant-ID``
/ ``X-User-Role`` headers set by ``TenantQueryBuilder.build_headers`` are
only honoured when ``TRUST_IDENTITY_HEADERS`` is enabled, i.e. behind a
gateway that authenticates and sets them itself.
"""

import logging
import time
from typing import Mapping, Optional

from fastapi import Request
from fastapi.security.utils import get_authorization_scheme_param
from jose import JWTError, jwt

from quizbuilder_backend.api.exceptions import BadRequestException
from quizbuilder_backend.permissions.principal import Actor, Role
from quizbuilder_backend.settings import settings

logger = logging.getLogger(__name__)

TOKEN_TTL = 7 * 24 * 60 * 60  # 7 days
KNOWN_ROLES = {role.value for role in Role}


def encode_token(user_id: str, tenant_id: Optional[str], role: str, plan: Optional[str] = None,
                 ttl: int = TOKEN_TTL, secret: Optional[str] = None) -> str:
    claims = {
        "userId": user_id,
        "tenantId": tenant_id,
        "role": role,
        "exp": int(time.time()) + ttl,
    }
    if plan:
        claims["plan"] = plan
    return jwt.encode(claims, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(authorization: Optional[str]) -> Optional[dict]:
    """Claims of a bearer token, None when missing, unsigned, tampered or expired"""
    scheme, credentials = get_authorization_scheme_param(authorization)
    if not credentials or scheme.lower() != "bearer":
        return None

    try:
        claims = jwt.decode(credentials, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected token: {e}")
        return None

    if not isinstance(claims, dict) or "exp" not in claims:
        return None

    return claims


def actor_from_headers(headers: Mapping[str, str]) -> Optional[Actor]:
    headers = {key.lower(): value for key, value in headers.items()}

    claims = decode_token(headers.get("authorization"))
    if claims is not None and claims.get("userId") and claims.get("tenantId") and claims.get("role"):
        return Actor(
            id=str(claims["userId"]),
            role=str(claims["role"]),
            tenant_id=str(claims["tenantId"]),
            subscription_tier=claims.get("plan"),
        )

    if not settings.TRUST_IDENTITY_HEADERS:
        return None

    user_id = headers.get("x-user-id")
    tenant_id = headers.get("x-tenant-id")
    role = headers.get("x-user-role")

    if not user_id or not tenant_id or not role:
        return None

    return Actor(id=user_id, role=role, tenant_id=tenant_id)


async def get_current_actor(request: Request) -> Actor:
    """FastAPI dependency resolving the calling actor"""
    actor = actor_from_headers(request.headers)

    if actor is None:
        raise BadRequestException(detail={"message": "User context required", "code": "NO_CONTEXT"})

    if actor.role not in KNOWN_ROLES:
        raise BadRequestException(detail={"message": f"Unauthorized role: {actor.role}", "code": "INVALID_ROLE"})

    return actor
