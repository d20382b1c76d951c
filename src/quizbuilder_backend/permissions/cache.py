"""
Verification cache for remote ownership/membership checks.

Two tiers, following the permission cache layout used elsewhere:
1. Session-local dictionary, keyed by (kind, tenant_id, resource_id, actor_id, action)
2. Optional shared aiocache backend (Redis), namespaced per verification kind

The local tier is cleared wholesale on every actor/tenant context switch.
Only the quiz and classroom checks depend on the action; every other kind
keys with action None so one answer serves all actions.
Entries also expire after ``ttl_seconds`` and can be invalidated per kind or
per resource when a mutation happens elsewhere.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, NamedTuple, Optional, Tuple

from aiocache import BaseCache

from quizbuilder_backend.permissions.principal import READ, VerificationKind, enum_value
from quizbuilder_backend.settings import settings

logger = logging.getLogger(__name__)

ACTION_SCOPED_KINDS = {VerificationKind.QUIZ.value, VerificationKind.CLASSROOM.value}


class CacheKey(NamedTuple):
    kind: str
    tenant_id: Optional[str]
    resource_id: Optional[str]
    actor_id: Optional[str]
    action: Optional[str] = None


class VerificationCache:

    def __init__(self, ttl_seconds: Optional[int] = None, shared: Optional[BaseCache] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            ttl_seconds: Lifetime of an entry, 0 or less disables expiry
            shared: Optional aiocache instance used as a second tier
            clock: Time source, defaults to datetime.now
        """
        self.ttl_seconds = settings.VERIFICATION_CACHE_TTL if ttl_seconds is None else ttl_seconds
        self.shared = shared
        self._clock = clock or datetime.now
        self._entries: Dict[CacheKey, Tuple[bool, datetime]] = {}

    @staticmethod
    def make_key(kind: str, tenant_id, resource_id, actor_id, action=None) -> CacheKey:
        kind = enum_value(kind)
        action = enum_value(action or READ) if kind in ACTION_SCOPED_KINDS else None
        return CacheKey(kind, enum_value(tenant_id), enum_value(resource_id), enum_value(actor_id), action)

    @staticmethod
    def _namespace(kind: str) -> str:
        return f"verify:{kind}"

    @staticmethod
    def _shared_key(key: CacheKey) -> str:
        shared_key = f"{key.tenant_id}:{key.resource_id}:{key.actor_id}"
        return f"{shared_key}:{key.action}" if key.action else shared_key

    def _is_valid(self, inserted_at: datetime) -> bool:
        if self.ttl_seconds <= 0:
            return True
        return self._clock() - inserted_at < timedelta(seconds=self.ttl_seconds)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return self.peek(*key) is not None

    def peek(self, kind: str, tenant_id, resource_id, actor_id, action=None) -> Optional[bool]:
        """Synchronous lookup in the local tier"""
        key = self.make_key(kind, tenant_id, resource_id, actor_id, action)
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, inserted_at = entry
        if not self._is_valid(inserted_at):
            self._entries.pop(key, None)
            return None

        return value

    async def get(self, kind: str, tenant_id, resource_id, actor_id, action=None) -> Optional[bool]:
        """Look up a verification result, None on miss"""
        key = self.make_key(kind, tenant_id, resource_id, actor_id, action)

        value = self.peek(*key)
        if value is not None:
            logger.debug(f"Local verification cache hit for {key}")
            return value

        if self.shared is not None:
            try:
                cached_value = await self.shared.get(self._shared_key(key), namespace=self._namespace(key.kind))
                if cached_value is not None:
                    logger.debug(f"Shared verification cache hit for {key}")
                    payload = json.loads(cached_value)
                    result = bool(payload["value"])
                    # Local copy keeps the shared insertion time
                    inserted_at = datetime.fromisoformat(payload["inserted_at"])
                    if self._is_valid(inserted_at):
                        self._entries[key] = (result, inserted_at)
                        return result
            except Exception as e:
                logger.warning(f"Shared verification cache error: {e}")

        logger.debug(f"Verification cache miss for {key}")
        return None

    async def set(self, kind: str, tenant_id, resource_id, actor_id, result: bool, action=None):
        key = self.make_key(kind, tenant_id, resource_id, actor_id, action)
        inserted_at = self._clock()
        self._entries[key] = (bool(result), inserted_at)

        if self.shared is not None:
            try:
                await self.shared.set(
                    self._shared_key(key),
                    json.dumps({"value": bool(result), "inserted_at": inserted_at.isoformat()}),
                    ttl=self.ttl_seconds if self.ttl_seconds > 0 else None,
                    namespace=self._namespace(key.kind),
                )
            except Exception as e:
                logger.warning(f"Failed to store verification in shared cache: {e}")

    def clear(self):
        """Drop every local entry (context switch)"""
        self._entries.clear()
        logger.info("Verification cache cleared")

    async def invalidate_kind(self, kind: str):
        """Drop every entry of one verification kind, in both tiers"""
        kind = enum_value(kind)
        for key in [key for key in self._entries if key.kind == kind]:
            self._entries.pop(key, None)

        if self.shared is not None:
            try:
                await self.shared.clear(namespace=self._namespace(kind))
            except Exception as e:
                logger.warning(f"Failed to invalidate shared verification cache: {e}")

        logger.info(f"Invalidated {kind} verifications")

    async def invalidate_resource(self, kind: str, resource_id):
        """Drop the entries of one resource after its ownership or membership changed"""
        kind = enum_value(kind)
        resource_id = enum_value(resource_id)
        for key in [key for key in self._entries if key.kind == kind and key.resource_id == resource_id]:
            self._entries.pop(key, None)

        if self.shared is not None:
            # Shared keys are not indexed by resource, drop the whole kind
            try:
                await self.shared.clear(namespace=self._namespace(kind))
            except Exception as e:
                logger.warning(f"Failed to invalidate shared verification cache: {e}")

        logger.info(f"Invalidated {kind} verifications for {resource_id}")
