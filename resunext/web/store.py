"""In-memory user and cookie-session store for the auth API."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import monotonic
from typing import Any, Callable, Dict, Optional

from .errors import APIError

logger = logging.getLogger(__name__)

SESSION_TTL_SECONDS = 24 * 60 * 60
CHECK_PERIOD_SECONDS = 60 * 60
PBKDF2_ITERATIONS = 120_000


def utc_now_iso() -> str:
    """Return current UTC time in ISO-8601 format."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def make_id(prefix: str) -> str:
    """Create opaque id with a readable prefix."""
    return f"{prefix}_{uuid.uuid4().hex}"


def hash_password(password: str, salt: Optional[bytes] = None) -> str:
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        salt_hex, digest_hex = stored.split("$", 1)
    except ValueError:
        return False
    candidate = hash_password(password, bytes.fromhex(salt_hex)).split("$", 1)[1]
    return hmac.compare_digest(candidate, digest_hex)


@dataclass
class UserRecord:
    user_id: int
    email: str
    password_hash: str
    username: str
    created_at: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = "user"
    plan: str = "free"
    profile_picture: Optional[str] = None
    mock_interviews_count: int = 0
    provider: str = "local"

    def to_public(self) -> Dict[str, Any]:
        """Wire representation; never includes the password hash."""
        return {
            "id": self.user_id,
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
            "plan": self.plan,
            "profilePicture": self.profile_picture,
            "mockInterviewsCount": self.mock_interviews_count,
            "provider": self.provider,
            "createdAt": self.created_at,
        }


@dataclass
class SessionRecord:
    session_id: str
    user_id: int
    created_at: float
    expires_at: float


@dataclass
class InMemoryAuthStore:
    """Users keyed by id, sessions keyed by cookie value."""

    session_ttl: float = SESSION_TTL_SECONDS
    check_period: float = CHECK_PERIOD_SECONDS
    clock: Callable[[], float] = monotonic
    _users: Dict[int, UserRecord] = field(default_factory=dict)
    _sessions: Dict[str, SessionRecord] = field(default_factory=dict)
    _next_id: int = 1
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    _purge_task: Optional[asyncio.Task] = field(default=None, repr=False)

    async def create_user(
        self,
        email: str,
        password: str,
        username: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        profile_picture: Optional[str] = None,
    ) -> UserRecord:
        email = email.strip().lower()
        password_hash = await asyncio.to_thread(hash_password, password)
        async with self._lock:
            if any(u.email == email for u in self._users.values()):
                raise APIError(400, "EMAIL_EXISTS", "Email already exists")
            if username and any(u.username == username for u in self._users.values()):
                raise APIError(400, "USERNAME_EXISTS", "Username already exists")
            user = UserRecord(
                user_id=self._next_id,
                email=email,
                password_hash=password_hash,
                username=username or email,
                created_at=utc_now_iso(),
                first_name=first_name,
                last_name=last_name,
                profile_picture=profile_picture,
            )
            self._users[user.user_id] = user
            self._next_id += 1
        return user

    async def authenticate(self, email: str, password: str) -> UserRecord:
        email = email.strip().lower()
        async with self._lock:
            user = next((u for u in self._users.values() if u.email == email), None)
        if user is None or not await asyncio.to_thread(verify_password, password, user.password_hash):
            raise APIError(401, "INVALID_CREDENTIALS", "Invalid email or password")
        return user

    async def open_session(self, user: UserRecord) -> SessionRecord:
        now = self.clock()
        session = SessionRecord(
            session_id=make_id("sid"),
            user_id=user.user_id,
            created_at=now,
            expires_at=now + self.session_ttl,
        )
        async with self._lock:
            self._drop_expired(now)
            self._sessions[session.session_id] = session
        return session

    async def get_session_user(self, session_id: Optional[str]) -> Optional[UserRecord]:
        if not session_id:
            return None
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if session.expires_at <= self.clock():
                del self._sessions[session_id]
                return None
            return self._users.get(session.user_id)

    async def close_session(self, session_id: Optional[str]) -> bool:
        if not session_id:
            return False
        async with self._lock:
            return self._sessions.pop(session_id, None) is not None

    async def purge_expired(self) -> int:
        """Drop expired sessions; returns how many were removed."""
        async with self._lock:
            return self._drop_expired(self.clock())

    def _drop_expired(self, now: float) -> int:
        # Caller holds self._lock.
        expired = [sid for sid, s in self._sessions.items() if s.expires_at <= now]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    async def start(self) -> None:
        """Start the background purge of expired sessions."""
        if self._purge_task is None:
            self._purge_task = asyncio.create_task(self._purge_worker())

    async def stop(self) -> None:
        """Stop the background purge task."""
        if self._purge_task is not None:
            self._purge_task.cancel()
            try:
                await self._purge_task
            except asyncio.CancelledError:
                pass
            self._purge_task = None

    async def _purge_worker(self) -> None:
        while True:
            await asyncio.sleep(self.check_period)
            removed = await self.purge_expired()
            if removed:
                logger.info("auth_sessions_purged removed=%d remaining=%d", removed, self.session_count)
