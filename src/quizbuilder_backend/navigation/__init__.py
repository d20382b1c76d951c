from .router import NavigationResult, NavigationRouter, ResolvedRoute, Route
from .routes import NavigationItem, register_default_routes

__all__ = [
    "NavigationItem",
    "NavigationResult",
    "NavigationRouter",
    "ResolvedRoute",
    "Route",
    "register_default_routes",
]
