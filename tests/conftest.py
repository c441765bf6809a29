"""Global pytest fixtures for deterministic test environment."""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _isolate_runtime_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear local runtime env that can leak into tests on developer machines."""
    for key in (
        "RESUNEXT_API_BASE",
        "RESUNEXT_REQUEST_TIMEOUT",
        "RESUNEXT_LOGOUT_POLICY",
        "RESUNEXT_SESSION_COOKIE",
        "RESUNEXT_COOKIE_SECURE",
    ):
        monkeypatch.delenv(key, raising=False)
