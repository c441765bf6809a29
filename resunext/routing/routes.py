"""Route table mapping paths to the page that renders them."""

from __future__ import annotations

from typing import Dict

from ..models import SessionSnapshot
from .guard import HOME_PATH, LOGIN_PATH, REGISTER_PATH, normalize_path

NOT_FOUND = "not-found"

ROUTES: Dict[str, str] = {
    "/dashboard": "dashboard",
    "/resume-builder": "resume-builder",
    "/cover-letter": "cover-letter",
    "/interview-prep": "interview-prep",
    "/mock-interviews": "mock-interviews",
    "/job-matching": "job-matching",
    "/settings": "settings",
    LOGIN_PATH: "login",
    REGISTER_PATH: "register",
}


def resolve_page(path: str, session: SessionSnapshot) -> str:
    """Name of the page rendered at ``path``.

    Home shows the dashboard to signed-in users and the login page otherwise.
    """
    normalized = normalize_path(path)
    if normalized == HOME_PATH:
        return "dashboard" if session.is_authenticated else "login"
    return ROUTES.get(normalized, NOT_FOUND)
