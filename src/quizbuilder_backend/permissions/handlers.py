from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable, Optional
from quizbuilder_backend.permissions.principal import AccessDecision, Actor, ResourceType, enum_value
from quizbuilder_backend.permissions.errors import InvalidRoleError

if TYPE_CHECKING:
    from quizbuilder_backend.permissions.core import AccessControl


class ResourceHandler(ABC):
    """Base class for resource-specific access rules"""

    @abstractmethod
    async def decide(self, access: "AccessControl", actor: Actor, resource_type: str,
                     resource_id: Optional[str], action: str) -> AccessDecision:
        """Decide whether ``actor`` may perform ``action`` on the resource.

        Handlers return a decision, or raise AccessDeniedError for an explicit
        business-rule deny. Remote checks go through ``access.verify`` and may
        raise VerificationError.
        """
        pass

    @staticmethod
    def from_bool(allowed: bool) -> AccessDecision:
        return AccessDecision.allowed() if allowed else AccessDecision.denied()


class HandlerRegistry:
    """Closed per-role table of resource handlers.

    Every role registered here must cover every ResourceType; ``validate``
    refuses an incomplete table. Resource types outside the enum go to the
    role's fallback handler.
    """

    def __init__(self):
        self._handlers: Dict[str, Dict[ResourceType, ResourceHandler]] = {}
        self._fallbacks: Dict[str, ResourceHandler] = {}

    def register(self, role: str, resource_types: ResourceType | Iterable[ResourceType], handler: ResourceHandler):
        """Register a handler for one or more resource types of a role"""
        if isinstance(resource_types, ResourceType):
            resource_types = [resource_types]
        role_handlers = self._handlers.setdefault(enum_value(role), {})
        for resource_type in resource_types:
            role_handlers[ResourceType(resource_type)] = handler

    def set_fallback(self, role: str, handler: ResourceHandler):
        self._fallbacks[enum_value(role)] = handler

    def roles(self) -> list[str]:
        return list(self._handlers.keys())

    def validate(self):
        for role, role_handlers in self._handlers.items():
            missing = [rt.value for rt in ResourceType if rt not in role_handlers]
            if missing:
                raise ValueError(f"Role {role} has no handler for resource types: {', '.join(missing)}")
            if role not in self._fallbacks:
                raise ValueError(f"Role {role} has no fallback handler")

    def get_handler(self, role: str, resource_type: str) -> ResourceHandler:
        role_handlers = self._handlers.get(enum_value(role))
        if role_handlers is None:
            raise InvalidRoleError(f"Unauthorized role: {role}")

        try:
            return role_handlers[ResourceType(enum_value(resource_type))]
        except ValueError:
            return self._fallbacks[enum_value(role)]
