"""
Role-based navigation router.

Routes are matched against a path, then gated in a fixed order: existence,
authentication, role, subscription features and finally per-route guards.
The router never renders anything; it answers where the user may go.
"""

import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from quizbuilder_backend.navigation.routes import NavigationItem, navigation_items_for
from quizbuilder_backend.permissions.core import AccessControl
from quizbuilder_backend.permissions.principal import Actor, enum_value

logger = logging.getLogger(__name__)

DEFAULT_ROUTE = "/login"
NOT_FOUND_ROUTE = "/404"
FORBIDDEN_ROUTE = "/403"
ERROR_ROUTE = "/500"
HOME_ROUTE = "/"

MAX_REDIRECTS = 5

NOT_FOUND = "not_found"
UNAUTHENTICATED = "unauthenticated"
ROLE = "role"
FEATURE = "feature"
GUARD = "guard"
ERROR = "error"


class Route(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    component: str
    title: str = "Quiz Builder"
    description: str = ""
    requires_auth: bool = True
    roles: tuple[str, ...] = ()
    features: tuple[str, ...] = ()
    meta: Dict[str, Any] = Field(default_factory=dict)
    layout: str = "default"


class ResolvedRoute(BaseModel):
    model_config = ConfigDict(frozen=True)

    route: Route
    params: Dict[str, str] = Field(default_factory=dict)


class NavigationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    allowed: bool
    redirect: Optional[str] = None
    reason: Optional[str] = None
    route: Optional[Route] = None
    params: Dict[str, str] = Field(default_factory=dict)


class HistoryEntry(BaseModel):
    path: str
    state: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


Guard = Callable[[ResolvedRoute, Dict[str, Any]], Union[bool, Awaitable[bool]]]
Middleware = Callable[[str, Dict[str, Any]], Union[None, Awaitable[None]]]


def _segments(path: str) -> List[str]:
    return path.split("/")


def path_matches(route_path: str, path: str) -> bool:
    route_segments = _segments(route_path)
    path_segments = _segments(path)

    if len(route_segments) != len(path_segments):
        return False

    return all(
        segment.startswith(":") or segment == path_segments[index]
        for index, segment in enumerate(route_segments)
    )


def extract_params(route_path: str, path: str) -> Dict[str, str]:
    return {
        segment[1:]: value
        for segment, value in zip(_segments(route_path), _segments(path))
        if segment.startswith(":")
    }


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


class NavigationRouter:
    """
    Route table with role and feature gating.

    Feature checks are delegated to the injected ``AccessControl``, so the
    router and the access layer answer from the same policy table.
    """

    def __init__(self, access: AccessControl):
        self.access = access
        self.actor: Optional[Actor] = None
        self.routes: Dict[str, Route] = {}
        self.guards: Dict[str, List[Guard]] = {}
        self.middleware: List[Middleware] = []
        self.history: List[HistoryEntry] = []
        self.current_path: Optional[str] = None

    def initialize(self, actor: Optional[Actor]):
        self.actor = actor

    def define_route(self, path: str, component: str, **options) -> Route:
        """
        Register a route; a later definition for the same path replaces the
        earlier one but keeps its position.

        Args:
            path: Route pattern, ``:name`` segments capture parameters
            component: Name of the page component
            **options: title, description, requires_auth, roles, features,
                meta, layout
        """
        roles = tuple(enum_value(role) for role in options.pop("roles", None) or ())
        features = tuple(options.pop("features", None) or ())
        route = Route(path=path, component=component, roles=roles, features=features, **options)
        self.routes[path] = route
        return route

    def add_guard(self, path: str, guard: Guard):
        self.guards.setdefault(path, []).append(guard)

    def add_middleware(self, middleware: Middleware):
        self.middleware.append(middleware)

    # Matching

    def resolve(self, path: str) -> Optional[ResolvedRoute]:
        route = self.routes.get(path)
        if route is not None:
            return ResolvedRoute(route=route)

        for route_path, route in self.routes.items():
            if path_matches(route_path, path):
                return ResolvedRoute(route=route, params=extract_params(route_path, path))

        return None

    # Gating

    def has_role(self, route: Route, actor: Optional[Actor]) -> bool:
        if not route.roles:
            return True
        return actor is not None and actor.role in route.roles

    def has_features(self, route: Route, actor: Optional[Actor]) -> bool:
        if not route.features:
            return True
        return self.access.has_features(actor, route.features)

    def can_enter(self, route: Route, actor: Optional[Actor]) -> bool:
        if route.requires_auth and actor is None:
            return False
        return self.has_role(route, actor) and self.has_features(route, actor)

    async def enter(self, path: str, actor: Optional[Actor], state: Optional[Dict[str, Any]] = None) -> NavigationResult:
        """Gate a path for ``actor`` without touching history"""
        state = state or {}

        resolved = self.resolve(path)
        if resolved is None:
            return NavigationResult(path=path, allowed=False, redirect=NOT_FOUND_ROUTE, reason=NOT_FOUND)

        route = resolved.route

        def deny(redirect: Optional[str], reason: str) -> NavigationResult:
            return NavigationResult(path=path, allowed=False, redirect=redirect, reason=reason,
                                    route=route, params=resolved.params)

        if route.requires_auth and actor is None:
            return deny(DEFAULT_ROUTE, UNAUTHENTICATED)

        if not self.has_role(route, actor):
            return deny(FORBIDDEN_ROUTE, ROLE)

        if not self.has_features(route, actor):
            return deny(FORBIDDEN_ROUTE, FEATURE)

        try:
            for guard in self.guards.get(route.path, []):
                if not await _maybe_await(guard(resolved, state)):
                    return deny(None, GUARD)
        except Exception as e:
            logger.error(f"Route guard for {route.path} failed: {e}")
            return deny(ERROR_ROUTE, ERROR)

        return NavigationResult(path=path, allowed=True, route=route, params=resolved.params)

    # History

    async def navigate(self, path: str, state: Optional[Dict[str, Any]] = None, replace: bool = False,
                       _redirects: int = 0) -> NavigationResult:
        """Enter ``path`` as the current actor and follow redirects"""
        state = state or {}

        if not replace:
            self.history.append(HistoryEntry(path=path, state=state))

        self.current_path = path

        for middleware in self.middleware:
            await _maybe_await(middleware(path, state))

        result = await self.enter(path, self.actor, state)

        if result.allowed or result.redirect is None or result.redirect == path:
            return result

        if _redirects >= MAX_REDIRECTS:
            logger.warning(f"Too many redirects while navigating to {path}")
            return result

        logger.debug(f"Redirecting {path} -> {result.redirect} ({result.reason})")
        return await self.navigate(result.redirect, replace=True, _redirects=_redirects + 1)

    async def back(self) -> NavigationResult:
        if len(self.history) > 1:
            self.history.pop()
            previous = self.history[-1]
            return await self.navigate(previous.path, state=previous.state, replace=True)
        return await self.navigate(HOME_ROUTE, replace=True)

    async def refresh(self) -> Optional[NavigationResult]:
        if self.current_path is None:
            return None
        return await self.navigate(self.current_path, replace=True)

    def navigation_items(self, actor: Optional[Actor] = None) -> List[NavigationItem]:
        actor = actor or self.actor
        if actor is None:
            return []
        return navigation_items_for(actor.role)
