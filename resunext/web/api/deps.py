"""Dependency providers for the auth API."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from ..errors import APIError
from ..store import InMemoryAuthStore, UserRecord


def get_store(request: Request) -> InMemoryAuthStore:
    """Access shared auth store from app state."""
    return request.app.state.auth_store


def get_session_id(request: Request) -> Optional[str]:
    """Session id carried by the request's session cookie."""
    return request.cookies.get(request.app.state.session_cookie_name)


async def get_optional_user(
    session_id: Optional[str] = Depends(get_session_id),
    store: InMemoryAuthStore = Depends(get_store),
) -> Optional[UserRecord]:
    return await store.get_session_user(session_id)


async def require_user(user: Optional[UserRecord] = Depends(get_optional_user)) -> UserRecord:
    """Gate for routes that need a signed-in user."""
    if user is None:
        raise APIError(401, "UNAUTHORIZED", "Not logged in")
    return user
