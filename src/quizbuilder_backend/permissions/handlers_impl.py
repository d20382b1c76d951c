from typing import TYPE_CHECKING, Optional
from quizbuilder_backend.permissions.handlers import ResourceHandler
from quizbuilder_backend.permissions.principal import (
    READ,
    AccessDecision,
    Actor,
    VerificationKind,
)
from quizbuilder_backend.permissions.errors import AccessDeniedError, UnknownResourceError

if TYPE_CHECKING:
    from quizbuilder_backend.permissions.core import AccessControl


class RemoteCheckHandler(ResourceHandler):
    """Ownership or membership resolved by the remote store"""

    def __init__(self, kind: VerificationKind):
        self.kind = kind

    async def decide(self, access: "AccessControl", actor: Actor, resource_type: str,
                     resource_id: Optional[str], action: str) -> AccessDecision:
        allowed = await access.verify(
            self.kind,
            actor.tenant_id,
            resource_id,
            actor.id,
            action,
            actor=actor,
        )
        return self.from_bool(allowed)


class AnalyticsHandler(ResourceHandler):
    """Instructors read analytics of their own tenant only.

    ``resource_id`` is the tenant whose analytics are requested; when it is
    omitted the actor's own tenant is meant. Subscription tier is not
    consulted here, tiered analytics features are gated by the router.
    """

    async def decide(self, access: "AccessControl", actor: Actor, resource_type: str,
                     resource_id: Optional[str], action: str) -> AccessDecision:
        requested_tenant = resource_id if resource_id is not None else actor.tenant_id
        return self.from_bool(action == READ and requested_tenant == actor.tenant_id)


class OwnAttemptHandler(ResourceHandler):
    """Students read any assigned quiz but only mutate their own attempt"""

    async def decide(self, access: "AccessControl", actor: Actor, resource_type: str,
                     resource_id: Optional[str], action: str) -> AccessDecision:
        return self.from_bool(resource_id == actor.id or action == READ)


class OwnResultHandler(ResourceHandler):

    async def decide(self, access: "AccessControl", actor: Actor, resource_type: str,
                     resource_id: Optional[str], action: str) -> AccessDecision:
        return self.from_bool(resource_id == actor.id)


class DeniedResourceHandler(ResourceHandler):
    """Resource types a role may never touch"""

    async def decide(self, access: "AccessControl", actor: Actor, resource_type: str,
                     resource_id: Optional[str], action: str) -> AccessDecision:
        raise AccessDeniedError(f"Role {actor.role} cannot access {resource_type}")


class UnknownResourceHandler(ResourceHandler):
    """Resource types a role has no rule for, an integration error"""

    async def decide(self, access: "AccessControl", actor: Actor, resource_type: str,
                     resource_id: Optional[str], action: str) -> AccessDecision:
        raise UnknownResourceError(f"Unknown resource type: {resource_type}")
