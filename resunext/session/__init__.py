"""Client-side session state."""

from .store import SessionStore, SessionView

__all__ = ["SessionStore", "SessionView"]
