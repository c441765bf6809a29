"""Navigation gating for the ResuNext client."""

from .guard import (
    LOGIN_PATH,
    PUBLIC_PATHS,
    GuardDecision,
    RouteClass,
    RouteGuard,
    classify_route,
    evaluate,
    normalize_path,
)
from .navigator import GuardedNavigator
from .routes import resolve_page

__all__ = [
    "LOGIN_PATH",
    "PUBLIC_PATHS",
    "GuardDecision",
    "GuardedNavigator",
    "RouteClass",
    "RouteGuard",
    "classify_route",
    "evaluate",
    "normalize_path",
    "resolve_page",
]
