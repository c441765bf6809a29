"""Navigator that keeps the current path consistent with the route guard."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol, Tuple

from ..models import SessionSnapshot
from .guard import GuardDecision, RouteGuard, normalize_path
from .routes import resolve_page

logger = logging.getLogger(__name__)


class SessionSource(Protocol):
    @property
    def snapshot(self) -> SessionSnapshot:
        ...

    def subscribe(self, listener: Callable[[SessionSnapshot], None]) -> Callable[[], None]:
        ...


class GuardedNavigator:
    """Re-evaluates the guard on every path change and session transition.

    Only the session flags the guard reads are tracked, so snapshots that
    change nothing relevant (e.g. a refreshed identity) do not re-evaluate.
    """

    def __init__(
        self,
        session: SessionSource,
        guard: Optional[RouteGuard] = None,
        on_redirect: Optional[Callable[[str], None]] = None,
        initial_path: str = "/",
    ) -> None:
        self._session = session
        self.guard = guard or RouteGuard()
        self.on_redirect = on_redirect
        self.current_path = normalize_path(initial_path)
        self.history: List[str] = [self.current_path]
        self._last_status: Optional[Tuple[bool, bool]] = None
        self._unsubscribe = session.subscribe(self._on_session_change)
        self._evaluate(session.snapshot)

    @property
    def page(self) -> str:
        return resolve_page(self.current_path, self._session.snapshot)

    def go(self, path: str) -> GuardDecision:
        """Navigate to ``path``; returns the guard's decision for it."""
        self.current_path = normalize_path(path)
        self.history.append(self.current_path)
        return self._evaluate(self._session.snapshot)

    def close(self) -> None:
        self._unsubscribe()

    def _on_session_change(self, snapshot: SessionSnapshot) -> None:
        status = (snapshot.is_loading, snapshot.is_authenticated)
        if status == self._last_status:
            return
        self._evaluate(snapshot)

    def _evaluate(self, snapshot: SessionSnapshot) -> GuardDecision:
        self._last_status = (snapshot.is_loading, snapshot.is_authenticated)
        decision = self.guard.evaluate(self.current_path, snapshot)
        if decision.redirect_to is not None:
            logger.info("Redirecting %s -> %s", self.current_path, decision.redirect_to)
            self.current_path = decision.redirect_to
            self.history.append(decision.redirect_to)
            if self.on_redirect is not None:
                self.on_redirect(decision.redirect_to)
        return decision
