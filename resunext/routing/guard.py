"""Route guard - decides whether a navigation needs a redirect to login."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional

from ..models import SessionSnapshot

HOME_PATH = "/"
LOGIN_PATH = "/auth/login"
REGISTER_PATH = "/auth/register"
PUBLIC_PATHS: FrozenSet[str] = frozenset({HOME_PATH, LOGIN_PATH, REGISTER_PATH})


class RouteClass(Enum):
    PUBLIC = "public"
    PROTECTED = "protected"


@dataclass(frozen=True)
class GuardDecision:
    redirect_to: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None


def normalize_path(path: str) -> str:
    """Strip query/fragment, collapse leading slashes, drop trailing slash.

    Empty input means home. The input is always a path, never a URL, so
    ``//dashboard`` is ``/dashboard`` rather than a host.
    """
    cleaned = (path or "").split("#", 1)[0].split("?", 1)[0]
    cleaned = "/" + cleaned.strip("/")
    return cleaned


class RouteGuard:
    """Pure gate over (path, session) pairs."""

    def __init__(self, login_path: str = LOGIN_PATH, public_paths: Optional[Iterable[str]] = None):
        self.login_path = normalize_path(login_path)
        paths = PUBLIC_PATHS if public_paths is None else public_paths
        # The login entry point is always reachable.
        self.public_paths = frozenset(normalize_path(p) for p in paths) | {self.login_path}

    def classify(self, path: str) -> RouteClass:
        if normalize_path(path) in self.public_paths:
            return RouteClass.PUBLIC
        return RouteClass.PROTECTED

    def evaluate(self, current_path: str, session: SessionSnapshot) -> GuardDecision:
        """Decide whether rendering ``current_path`` is allowed.

        Loading defers the decision (no redirect); authenticated sessions are
        allowed everywhere; anonymous sessions are sent to the login entry
        point for any protected path.
        """
        if session.is_loading or session.is_authenticated:
            return GuardDecision()
        if self.classify(current_path) is RouteClass.PUBLIC:
            return GuardDecision()
        return GuardDecision(redirect_to=self.login_path)


_default_guard = RouteGuard()


def classify_route(path: str) -> RouteClass:
    return _default_guard.classify(path)


def evaluate(current_path: str, session: SessionSnapshot) -> GuardDecision:
    return _default_guard.evaluate(current_path, session)
