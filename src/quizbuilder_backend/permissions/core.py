"""
Access decision engine.

``AccessControl`` is owned by a session (or request) context and handed to
its consumers explicitly. It combines the resource handler registry, the
verification cache with its remote client, the policy table and the audit
sink.
"""

import asyncio
import logging
from typing import Iterable, Optional, Protocol, Set

from quizbuilder_backend.client.access_client import RemoteAccessClient
from quizbuilder_backend.permissions import policy
from quizbuilder_backend.permissions.audit import (
    DEFAULT_USER_AGENT,
    AuditEntry,
    AuditSink,
    HttpAuditSink,
    NullAuditSink,
)
from quizbuilder_backend.permissions.cache import VerificationCache
from quizbuilder_backend.permissions.errors import (
    AccessDeniedError,
    DataIsolationError,
    NoContextError,
    VerificationError,
)
from quizbuilder_backend.permissions.handlers import HandlerRegistry
from quizbuilder_backend.permissions.handlers_impl import (
    AnalyticsHandler,
    DeniedResourceHandler,
    OwnAttemptHandler,
    OwnResultHandler,
    RemoteCheckHandler,
    UnknownResourceHandler,
)
from quizbuilder_backend.permissions.principal import (
    READ,
    AccessDecision,
    Actor,
    ResourceRef,
    ResourceType,
    Role,
    Tenant,
    VerificationKind,
)
from quizbuilder_backend.permissions.query_builders import TenantQueryBuilder
from quizbuilder_backend.redis_cache import get_redis_client
from quizbuilder_backend.settings import settings

logger = logging.getLogger(__name__)


class FeatureGate(Protocol):
    """External feature/quota gating service, answering for the given actor"""

    def has_feature_access(self, feature: str, actor: Optional[Actor] = None) -> bool:
        ...


def initialize_resource_handlers(registry: Optional[HandlerRegistry] = None) -> HandlerRegistry:
    """Build and validate the handler table for instructors and students"""
    registry = registry or HandlerRegistry()

    # Instructors
    registry.register(Role.INSTRUCTOR, [ResourceType.QUIZ, ResourceType.QUIZ_BLUEPRINT],
                      RemoteCheckHandler(VerificationKind.QUIZ))
    registry.register(Role.INSTRUCTOR, ResourceType.CLASSROOM, RemoteCheckHandler(VerificationKind.CLASSROOM))
    registry.register(Role.INSTRUCTOR, ResourceType.STUDENT, RemoteCheckHandler(VerificationKind.STUDENT))
    registry.register(Role.INSTRUCTOR, ResourceType.ANALYTICS, AnalyticsHandler())
    registry.register(Role.INSTRUCTOR, [ResourceType.RESULT, ResourceType.QUIZ_ATTEMPT], UnknownResourceHandler())
    registry.set_fallback(Role.INSTRUCTOR, UnknownResourceHandler())

    # Students
    registry.register(Role.STUDENT, [ResourceType.QUIZ, ResourceType.QUIZ_ATTEMPT], OwnAttemptHandler())
    registry.register(Role.STUDENT, ResourceType.RESULT, OwnResultHandler())
    registry.register(Role.STUDENT, ResourceType.CLASSROOM, RemoteCheckHandler(VerificationKind.MEMBERSHIP))
    registry.register(Role.STUDENT, [ResourceType.QUIZ_BLUEPRINT, ResourceType.STUDENT, ResourceType.ANALYTICS],
                      DeniedResourceHandler())
    registry.set_fallback(Role.STUDENT, DeniedResourceHandler())

    registry.validate()
    return registry


class AccessControl:

    def __init__(
        self,
        client: Optional[RemoteAccessClient] = None,
        cache: Optional[VerificationCache] = None,
        audit_sink: Optional[AuditSink] = None,
        registry: Optional[HandlerRegistry] = None,
        feature_gate: Optional[FeatureGate] = None,
        user_agent: Optional[str] = DEFAULT_USER_AGENT,
    ):
        self.client = client or RemoteAccessClient()
        self.cache = cache if cache is not None else VerificationCache()
        self.audit_sink = audit_sink or NullAuditSink()
        self.registry = registry or initialize_resource_handlers()
        self.feature_gate = feature_gate
        self.user_agent = user_agent

        self.actor: Optional[Actor] = None
        self.tenant: Optional[Tenant] = None
        self._pending_audits: Set[asyncio.Task] = set()

    # Session context

    def initialize(self, actor: Optional[Actor], tenant: Optional[Tenant] = None):
        """Install a new actor/tenant context; the cache is dropped when either changes"""
        if tenant is None and actor is not None and actor.tenant_id is not None:
            tenant = Tenant(id=actor.tenant_id)

        previous_actor, previous_tenant = self.actor, self.tenant
        self.actor = actor
        self.tenant = tenant

        if previous_actor != actor or (previous_tenant.id if previous_tenant else None) != (tenant.id if tenant else None):
            logger.info(
                f"Access context switched to user {actor.id if actor else None} "
                f"in tenant {tenant.id if tenant else None}"
            )
            self.cache.clear()

    def reset(self):
        """Logout: drop the context and everything cached for it"""
        self.initialize(None, None)

    def query_builder(self, actor: Optional[Actor] = None) -> TenantQueryBuilder:
        actor = actor or self.actor
        tenant_id = actor.tenant_id if actor and actor.tenant_id else (self.tenant.id if self.tenant else None)
        return TenantQueryBuilder(actor, tenant_id)

    # Decisions

    async def decide(self, actor: Optional[Actor], resource_type: str, resource_id: Optional[str] = None,
                     action: str = READ) -> AccessDecision:
        """Decide whether ``actor`` may perform ``action`` on a resource.

        Raises:
            NoContextError: actor or its tenant is missing
            InvalidRoleError: the actor's role has no rules
            UnknownResourceError: instructors have no rule for the resource type
        """
        try:
            decision = await self._decide(actor, resource_type, resource_id, action)
        except DataIsolationError:
            self._audit(actor, resource_type, resource_id, action, False)
            raise

        self._audit(actor, resource_type, resource_id, action, decision.allow)
        return decision

    async def _decide(self, actor: Optional[Actor], resource_type: str, resource_id: Optional[str],
                      action: str) -> AccessDecision:
        if actor is None or not actor.tenant_id:
            raise NoContextError("User context not initialized")

        if actor.is_super_admin:
            return AccessDecision.allowed("SUPER_ADMIN")

        handler = self.registry.get_handler(actor.role, resource_type)

        try:
            return await handler.decide(self, actor, resource_type, resource_id, action)
        except AccessDeniedError as e:
            return AccessDecision.denied(e.code)
        except VerificationError as e:
            logger.warning(
                f"Verification failed for {actor.role} {actor.id} on {resource_type}/{resource_id}: {e.message}"
            )
            return AccessDecision.denied(e.code)

    async def require(self, actor: Optional[Actor], resource_type: str, resource_id: Optional[str] = None,
                      action: str = READ) -> AccessDecision:
        """Like ``decide`` but raises AccessDeniedError or VerificationError on deny"""
        decision = await self.decide(actor, resource_type, resource_id, action)
        if decision.allow:
            return decision

        if decision.reason == VerificationError.default_code:
            raise VerificationError(f"Could not verify access to {resource_type}")
        raise AccessDeniedError(f"Access to {resource_type} denied")

    async def decide_resource(self, actor: Optional[Actor], resource: ResourceRef,
                              action: str = READ) -> AccessDecision:
        """``decide`` for a loaded resource; a known foreign tenant is refused before any ownership check"""
        if (actor is not None and actor.tenant_id and not actor.is_super_admin
                and resource.tenant_id is not None and resource.tenant_id != actor.tenant_id):
            logger.warning(
                f"Cross-tenant access to {resource.type}/{resource.id} refused for {actor.id} in {actor.tenant_id}"
            )
            self._audit(actor, resource.type, resource.id, action, False)
            return AccessDecision.denied("TENANT_MISMATCH")

        return await self.decide(actor, resource.type, resource.id, action)

    # Remote verification

    async def verify(self, kind: str, tenant_id: Optional[str], resource_id: Optional[str],
                     actor_id: Optional[str], action: Optional[str] = None,
                     actor: Optional[Actor] = None) -> bool:
        """Cached remote ownership/membership check, per action for quiz and classroom checks"""
        cached = await self.cache.get(kind, tenant_id, resource_id, actor_id, action)
        if cached is not None:
            return cached

        headers = self.query_builder(actor).build_headers()
        result = await self.client.check(kind, tenant_id, resource_id, actor_id, action, headers=headers)

        await self.cache.set(kind, tenant_id, resource_id, actor_id, result, action=action)
        return result

    async def invalidate(self, kind: str, resource_id: Optional[str] = None):
        """Hook for mutations elsewhere (ownership or membership changes)"""
        if resource_id is None:
            await self.cache.invalidate_kind(kind)
        else:
            await self.cache.invalidate_resource(kind, resource_id)

    # Features and quotas

    def has_feature(self, actor: Optional[Actor], feature: str) -> bool:
        if actor is None:
            return False
        if self.feature_gate is not None:
            return self.feature_gate.has_feature_access(feature, actor=actor)
        return policy.tier_grants(actor.subscription_tier, feature)

    def has_features(self, actor: Optional[Actor], features: Iterable[str]) -> bool:
        return all(self.has_feature(actor, feature) for feature in features)

    def access_limits(self, actor: Optional[Actor]) -> Optional[policy.UsageLimits]:
        if actor is None:
            return None
        return policy.limits_for(actor.subscription_tier)

    # Audit

    def _audit(self, actor: Optional[Actor], resource_type, resource_id, action, allowed: bool):
        try:
            entry = AuditEntry.from_decision(
                actor.id if actor else None,
                actor.tenant_id if actor else None,
                resource_type,
                resource_id,
                action,
                allowed,
                user_agent=self.user_agent,
            )
            task = asyncio.get_running_loop().create_task(self.audit_sink.record(entry))
        except Exception as e:
            logger.warning(f"Failed to dispatch audit entry: {e}")
            return

        self._pending_audits.add(task)
        task.add_done_callback(self._audit_done)

    def _audit_done(self, task: asyncio.Task):
        self._pending_audits.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Failed to log audit entry: {task.exception()}")

    async def drain(self):
        """Wait for audit entries still in flight"""
        if self._pending_audits:
            await asyncio.gather(*list(self._pending_audits), return_exceptions=True)

    async def aclose(self):
        await self.drain()
        await self.client.aclose()
        await self.audit_sink.aclose()


async def create_access_control(client: Optional[RemoteAccessClient] = None,
                                feature_gate: Optional[FeatureGate] = None) -> AccessControl:
    """AccessControl wired from settings: shared cache tier and audit sink"""
    shared = await get_redis_client() if settings.SHARED_VERIFICATION_CACHE else None
    audit_sink = HttpAuditSink() if settings.AUDIT_ENABLED else NullAuditSink()

    return AccessControl(
        client=client,
        cache=VerificationCache(shared=shared),
        audit_sink=audit_sink,
        feature_gate=feature_gate,
    )
