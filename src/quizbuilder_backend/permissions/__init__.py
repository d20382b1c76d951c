"""
Tenant isolation and access control for the quiz platform.

Main components:
- principal: Actor, Tenant and the role/resource/plan vocabularies
- errors: error kinds raised by the access-control layer
- policy: single subscription table of features and usage quotas
- handlers / handlers_impl: per-role resource handler registry
- cache: two-tier verification cache
- query_builders: tenant/owner scoping of queries and results
- core: AccessControl, the decision engine
- gating: subscription feature gating service
- audit: audit entries and sinks
- auth: actor resolution for incoming requests

``core`` depends on the remote client, which in turn imports ``errors`` from
this package, so it is imported from its module rather than re-exported here.
"""

from .principal import (
    READ,
    AccessDecision,
    Actor,
    PlanTier,
    ResourceRef,
    ResourceType,
    Role,
    Tenant,
    VerificationKind,
)

from .errors import (
    AccessDeniedError,
    DataIsolationError,
    InvalidRoleError,
    NoContextError,
    SubscriptionError,
    UnknownResourceError,
    VerificationError,
    user_message,
)

__all__ = [
    # Principal
    "READ",
    "AccessDecision",
    "Actor",
    "PlanTier",
    "ResourceRef",
    "ResourceType",
    "Role",
    "Tenant",
    "VerificationKind",

    # Errors
    "AccessDeniedError",
    "DataIsolationError",
    "InvalidRoleError",
    "NoContextError",
    "SubscriptionError",
    "UnknownResourceError",
    "VerificationError",
    "user_message",
]
