"""Authentication endpoints consumed by the session client."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..store import InMemoryAuthStore, UserRecord
from .deps import get_session_id, get_store, require_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _check_email(value: str) -> str:
    value = value.strip().lower()
    local, _, domain = value.partition("@")
    if not local or "." not in domain or domain.startswith(".") or domain.endswith("."):
        raise ValueError("Invalid email address")
    return value


class RegisterRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    email: str
    password: str = Field(min_length=1)
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_picture: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return _check_email(value)


class LoginRequest(BaseModel):
    email: str
    password: str


class MessageResponse(BaseModel):
    message: str


def _set_session_cookie(request: Request, response: Response, session_id: str, max_age: int) -> None:
    response.set_cookie(
        key=request.app.state.session_cookie_name,
        value=session_id,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=request.app.state.session_cookie_secure,
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    store: InMemoryAuthStore = Depends(get_store),
) -> Dict[str, Any]:
    user = await store.create_user(
        email=payload.email,
        password=payload.password,
        username=payload.username,
        first_name=payload.first_name,
        last_name=payload.last_name,
        profile_picture=payload.profile_picture,
    )
    logger.info("auth_register user_id=%s", user.user_id)
    return user.to_public()


@router.post("/login")
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    store: InMemoryAuthStore = Depends(get_store),
) -> Dict[str, Any]:
    user = await store.authenticate(payload.email, payload.password)
    session = await store.open_session(user)
    _set_session_cookie(request, response, session.session_id, int(store.session_ttl))
    logger.info("auth_login user_id=%s", user.user_id)
    return user.to_public()


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    session_id: Optional[str] = Depends(get_session_id),
    store: InMemoryAuthStore = Depends(get_store),
) -> MessageResponse:
    await store.close_session(session_id)
    response.delete_cookie(request.app.state.session_cookie_name)
    return MessageResponse(message="Logged out successfully")


@router.get("/user")
async def current_user(user: UserRecord = Depends(require_user)) -> Dict[str, Any]:
    return user.to_public()
