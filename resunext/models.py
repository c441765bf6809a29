"""Identity and session state types shared by the client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class User(BaseModel):
    """Identity record returned by the auth endpoints (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    id: Union[int, str]
    username: str = ""
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = "user"
    plan: str = "free"
    profile_picture: Optional[str] = None
    mock_interviews_count: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def _default_username(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("username") and data.get("email"):
            data = {**data, "username": data["email"]}
        return data

    @property
    def display_name(self) -> str:
        return self.first_name or self.email


class RegistrationDraft(BaseModel):
    """Payload for ``POST /api/auth/register``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    email: str
    password: str
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session state handed to consumers."""

    user: Optional[User] = None
    is_loading: bool = True

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None
