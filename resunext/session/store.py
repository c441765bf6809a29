"""Session store - the single owner of client-side authentication state.

The store mirrors the server-side cookie session. It fetches the current
identity, runs login/register/logout against the auth endpoints, and publishes
an immutable ``SessionSnapshot`` to subscribers after every state write.

Overlapping operations are fenced: each operation takes a sequence number
when it starts, and only the most recently started operation may write
``user``/``is_loading``. Notifications and raised errors are never fenced.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

import httpx
from pydantic import ValidationError as SchemaError

from ..config import ClientConfig
from ..errors import ResponseError, SessionOperationError, TransportError, response_error
from ..models import RegistrationDraft, SessionSnapshot, User
from ..notifications import DESTRUCTIVE, LoggingNotifier, Notification, Notifier
from ..observability import SessionObserver

logger = logging.getLogger(__name__)

USER_ENDPOINT = "/api/auth/user"
LOGIN_ENDPOINT = "/api/auth/login"
REGISTER_ENDPOINT = "/api/auth/register"
LOGOUT_ENDPOINT = "/api/auth/logout"

SessionListener = Callable[[SessionSnapshot], None]
Unsubscribe = Callable[[], None]

_UNSET: Any = object()


@dataclass
class _Operation:
    name: str
    seq: int
    started: float
    user: Any = _UNSET
    error: Optional[SessionOperationError] = None
    applied: bool = False


@dataclass
class _Subscribers:
    listeners: List[SessionListener] = field(default_factory=list)

    def add(self, listener: SessionListener) -> Unsubscribe:
        self.listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self.listeners:
                self.listeners.remove(listener)

        return unsubscribe

    def publish(self, snapshot: SessionSnapshot) -> None:
        for listener in list(self.listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener %r failed", listener)


class SessionView:
    """Read-only handle on a SessionStore for guards and UI components."""

    def __init__(self, store: "SessionStore") -> None:
        self._store = store

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._store.snapshot

    def subscribe(self, listener: SessionListener) -> Unsubscribe:
        return self._store.subscribe(listener)


class SessionStore:
    """Owns the Session state and the auth round trips that mutate it."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        notifier: Optional[Notifier] = None,
        observer: Optional[SessionObserver] = None,
    ) -> None:
        self.config = config or ClientConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.config.api_base_url,
            timeout=httpx.Timeout(self.config.request_timeout),
        )
        self.notifier: Notifier = notifier or LoggingNotifier()
        self.observer = observer or SessionObserver(verbose=self.config.verbose)

        self._user: Optional[User] = None
        self._is_loading = True
        self._seq = 0
        self._subscribers = _Subscribers()

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(user=self._user, is_loading=self._is_loading)

    def view(self) -> SessionView:
        return SessionView(self)

    def subscribe(self, listener: SessionListener) -> Unsubscribe:
        """Register a listener called with a fresh snapshot after every write."""
        return self._subscribers.add(listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Discover an existing server-side session."""
        await self.fetch_current_session()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SessionStore":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def fetch_current_session(self) -> None:
        """Load the identity behind the session cookie.

        Any failure falls back to "no session". Never raises, never notifies.
        """
        try:
            with self._operation("fetch") as op:
                op.user = None
                response = await self._request("GET", USER_ENDPOINT, default_message="Not logged in")
                op.user = self._parse_user(response)
        except SessionOperationError as exc:
            logger.debug("No active session: %s", exc.message)

    async def login(self, email: str, password: str) -> None:
        """Authenticate with email/password.

        Raises:
            SessionOperationError: On transport failure or non-2xx response.
                ``user`` is left untouched.
        """
        try:
            with self._operation("login") as op:
                response = await self._request(
                    "POST",
                    LOGIN_ENDPOINT,
                    json={"email": email, "password": password},
                    default_message="Invalid email or password",
                )
                user = self._parse_user(response)
                op.user = user
        except SessionOperationError as exc:
            self._notify("Login failed", exc.message or "Invalid email or password", DESTRUCTIVE)
            raise
        self._notify("Login successful", f"Welcome back, {user.display_name}!")

    async def register(self, draft: Union[RegistrationDraft, Mapping[str, Any]]) -> None:
        """Create an account, then log in with the same credentials.

        Raises:
            SessionOperationError: When registration or the follow-up login fails.
        """
        try:
            registration = self._coerce_draft(draft)
            with self._operation("register"):
                await self._request(
                    "POST",
                    REGISTER_ENDPOINT,
                    json=registration.to_payload(),
                    default_message="Registration failed",
                )
                await self.login(registration.email, registration.password)
        except SessionOperationError as exc:
            self._notify("Registration failed", exc.message or "Could not create account", DESTRUCTIVE)
            raise
        self._notify("Registration successful", "Your account has been created!")

    async def logout(self) -> None:
        """End the server-side session.

        Failures are notified, not raised. Under the ``confirmed`` policy the
        local user is only cleared once the backend acknowledges the logout.
        """
        optimistic = self.config.logout_policy == "optimistic"
        try:
            with self._operation("logout") as op:
                if optimistic:
                    op.user = None
                await self._request("POST", LOGOUT_ENDPOINT, json={}, default_message="Logout failed")
                op.user = None
        except SessionOperationError as exc:
            if not optimistic:
                logger.warning("Logout not acknowledged, keeping local session: %s", exc.message)
            self._notify("Logout failed", "Could not log out. Please try again.", DESTRUCTIVE)
            return
        self._notify("Logged out", "You have been logged out successfully")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, name: str) -> Iterator[_Operation]:
        self._seq += 1
        op = _Operation(name=name, seq=self._seq, started=perf_counter())
        self._apply(op.seq, {"is_loading": True})
        try:
            yield op
        except SessionOperationError as exc:
            op.error = exc
            raise
        except asyncio.CancelledError:
            op.error = SessionOperationError("cancelled")
            raise
        finally:
            changes: Dict[str, Any] = {"is_loading": False}
            if op.user is not _UNSET:
                changes["user"] = op.user
            op.applied = self._apply(op.seq, changes)
            self.observer.log_operation(
                operation=name,
                outcome="failure" if op.error else "success",
                seq=op.seq,
                duration_ms=(perf_counter() - op.started) * 1000,
                stale=not op.applied,
                error=op.error.message if op.error else None,
            )

    def _apply(self, seq: int, changes: Dict[str, Any]) -> bool:
        """Write state unless a newer operation has started since ``seq``."""
        if self.config.fence_stale_results and seq != self._seq:
            logger.debug("Dropping stale result of operation #%d (latest #%d)", seq, self._seq)
            return False
        if "user" in changes:
            self._user = changes["user"]
        if "is_loading" in changes:
            self._is_loading = changes["is_loading"]
        self._subscribers.publish(self.snapshot)
        return True

    async def _request(
        self,
        method: str,
        path: str,
        *,
        default_message: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TransportError as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

        if not response.is_success:
            raise response_error(response.status_code, _safe_json(response), default_message)
        return response

    @staticmethod
    def _parse_user(response: httpx.Response) -> User:
        try:
            return User.model_validate(response.json())
        except (ValueError, SchemaError) as exc:
            raise ResponseError(response.status_code, "Malformed identity in response") from exc

    @staticmethod
    def _coerce_draft(draft: Union[RegistrationDraft, Mapping[str, Any]]) -> RegistrationDraft:
        if isinstance(draft, RegistrationDraft):
            return draft
        try:
            return RegistrationDraft.model_validate(dict(draft))
        except SchemaError as exc:
            raise SessionOperationError("Email and password are required") from exc

    def _notify(self, title: str, description: str, variant: str = "default") -> None:
        self.notifier.notify(Notification(title=title, description=description, variant=variant))


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
