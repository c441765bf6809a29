"""Session store behavior against a mocked auth backend."""

from __future__ import annotations

import asyncio
import json
from typing import Callable, List, Tuple

import httpx
import pytest

from resunext.config import ClientConfig
from resunext.errors import ResponseError, SessionOperationError, TransportError, ValidationError
from resunext.models import SessionSnapshot
from resunext.notifications import RecordingNotifier
from resunext.routing import LOGIN_PATH, evaluate
from resunext.session import SessionStore

USER_JSON = {"id": 1, "email": "a@b.com", "role": "user", "plan": "free"}


def _make_store(handler: Callable, **config_kwargs) -> Tuple[SessionStore, RecordingNotifier]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://testserver")
    notifier = RecordingNotifier()
    store = SessionStore(ClientConfig(**config_kwargs), client=client, notifier=notifier)
    return store, notifier


def _routes(table: dict) -> Callable[[httpx.Request], httpx.Response]:
    """Handler answering ``(method, path)`` from a table; records requests."""
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        status, body = table[(request.method, request.url.path)]
        return httpx.Response(status, json=body)

    handler.seen = seen  # type: ignore[attr-defined]
    return handler


def test_new_store_starts_loading_without_user() -> None:
    store, _ = _make_store(_routes({}))
    assert store.user is None
    assert store.is_loading is True
    assert store.is_authenticated is False
    assert store.snapshot == SessionSnapshot(user=None, is_loading=True)


@pytest.mark.asyncio
async def test_cold_start_without_session_redirects_protected_paths() -> None:
    store, notifier = _make_store(_routes({("GET", "/api/auth/user"): (401, {"message": "Not logged in"})}))

    await store.fetch_current_session()

    assert store.is_loading is False
    assert store.user is None
    assert store.is_authenticated is False
    assert notifier.notifications == []
    assert evaluate("/dashboard", store.snapshot).redirect_to == LOGIN_PATH


@pytest.mark.asyncio
async def test_fetch_current_session_restores_identity() -> None:
    store, notifier = _make_store(
        _routes({("GET", "/api/auth/user"): (200, {**USER_JSON, "firstName": "Ada", "mockInterviewsCount": 2})})
    )

    await store.start()

    assert store.is_authenticated
    assert store.user.first_name == "Ada"
    assert store.user.mock_interviews_count == 2
    assert store.user.username == "a@b.com"
    assert notifier.notifications == []


@pytest.mark.asyncio
async def test_fetch_current_session_swallows_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store, notifier = _make_store(handler)

    await store.fetch_current_session()

    assert store.user is None
    assert store.is_loading is False
    assert notifier.notifications == []


@pytest.mark.asyncio
async def test_fetch_current_session_treats_malformed_identity_as_no_session() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>not json</html>")

    store, _ = _make_store(handler)

    await store.fetch_current_session()

    assert store.user is None
    assert store.is_loading is False


@pytest.mark.asyncio
async def test_login_success_sets_user_and_notifies_once() -> None:
    handler = _routes({("POST", "/api/auth/login"): (200, USER_JSON)})
    store, notifier = _make_store(handler)

    await store.login("a@b.com", "pw")

    assert store.is_authenticated
    assert store.user.id == 1
    assert store.user.plan == "free"
    assert store.is_loading is False
    assert notifier.titles == ["Login successful"]
    assert notifier.notifications[0].description == "Welcome back, a@b.com!"
    assert json.loads(handler.seen[0].content) == {"email": "a@b.com", "password": "pw"}


@pytest.mark.asyncio
async def test_login_failure_keeps_user_and_raises() -> None:
    store, notifier = _make_store(_routes({("POST", "/api/auth/login"): (401, {"message": "Invalid email or password"})}))

    with pytest.raises(ResponseError) as exc_info:
        await store.login("a@b.com", "wrong")

    assert exc_info.value.status_code == 401
    assert store.user is None
    assert store.is_authenticated is False
    assert store.is_loading is False
    assert notifier.titles == ["Login failed"]
    assert notifier.notifications[0].is_failure


@pytest.mark.asyncio
async def test_login_transport_error_is_a_session_operation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store, notifier = _make_store(handler)

    with pytest.raises(TransportError):
        await store.login("a@b.com", "pw")

    assert notifier.titles == ["Login failed"]
    assert store.is_loading is False


@pytest.mark.asyncio
async def test_register_logs_in_with_same_credentials() -> None:
    handler = _routes(
        {
            ("POST", "/api/auth/register"): (201, USER_JSON),
            ("POST", "/api/auth/login"): (200, USER_JSON),
        }
    )
    store, notifier = _make_store(handler)

    await store.register({"email": "a@b.com", "password": "pw", "firstName": "Ada"})

    assert [r.url.path for r in handler.seen] == ["/api/auth/register", "/api/auth/login"]
    assert json.loads(handler.seen[0].content) == {"email": "a@b.com", "password": "pw", "firstName": "Ada"}
    assert json.loads(handler.seen[1].content) == {"email": "a@b.com", "password": "pw"}
    assert store.is_authenticated
    assert store.is_loading is False
    assert notifier.titles == ["Login successful", "Registration successful"]


@pytest.mark.asyncio
async def test_register_failure_surfaces_backend_message() -> None:
    store, notifier = _make_store(
        _routes({("POST", "/api/auth/register"): (400, {"message": "Email already exists"})})
    )

    with pytest.raises(ValidationError) as exc_info:
        await store.register({"email": "a@b.com", "password": "pw"})

    assert exc_info.value.message == "Email already exists"
    assert store.user is None
    assert store.is_loading is False
    assert notifier.titles == ["Registration failed"]
    assert notifier.notifications[0].description == "Email already exists"


@pytest.mark.asyncio
async def test_register_requires_email_and_password() -> None:
    handler = _routes({})
    store, notifier = _make_store(handler)

    with pytest.raises(SessionOperationError):
        await store.register({"email": "a@b.com"})

    assert handler.seen == []
    assert notifier.titles == ["Registration failed"]


@pytest.mark.asyncio
async def test_register_fails_when_follow_up_login_fails() -> None:
    store, notifier = _make_store(
        _routes(
            {
                ("POST", "/api/auth/register"): (201, USER_JSON),
                ("POST", "/api/auth/login"): (500, {"message": "boom"}),
            }
        )
    )

    with pytest.raises(ResponseError):
        await store.register({"email": "a@b.com", "password": "pw"})

    assert store.is_authenticated is False
    assert store.is_loading is False
    assert notifier.titles == ["Login failed", "Registration failed"]


@pytest.mark.asyncio
async def test_logout_success_clears_user() -> None:
    store, notifier = _make_store(
        _routes(
            {
                ("POST", "/api/auth/login"): (200, USER_JSON),
                ("POST", "/api/auth/logout"): (200, {"message": "Logged out successfully"}),
            }
        )
    )
    await store.login("a@b.com", "pw")

    await store.logout()

    assert store.user is None
    assert store.is_loading is False
    assert notifier.titles == ["Login successful", "Logged out"]


@pytest.mark.asyncio
async def test_logout_failure_keeps_session_and_does_not_raise() -> None:
    store, notifier = _make_store(
        _routes(
            {
                ("POST", "/api/auth/login"): (200, USER_JSON),
                ("POST", "/api/auth/logout"): (500, {"message": "Error logging out"}),
            }
        )
    )
    await store.login("a@b.com", "pw")
    before = store.user

    await store.logout()

    assert store.user == before
    assert store.is_authenticated
    assert store.is_loading is False
    assert notifier.titles == ["Login successful", "Logout failed"]


@pytest.mark.asyncio
async def test_optimistic_logout_clears_user_even_on_failure() -> None:
    store, notifier = _make_store(
        _routes(
            {
                ("POST", "/api/auth/login"): (200, USER_JSON),
                ("POST", "/api/auth/logout"): (503, None),
            }
        ),
        logout_policy="optimistic",
    )
    await store.login("a@b.com", "pw")

    await store.logout()

    assert store.user is None
    assert notifier.titles[-1] == "Logout failed"


@pytest.mark.asyncio
async def test_subscribers_receive_every_write() -> None:
    store, _ = _make_store(_routes({("POST", "/api/auth/login"): (200, USER_JSON)}))
    seen: List[SessionSnapshot] = []
    unsubscribe = store.subscribe(seen.append)

    def broken(_: SessionSnapshot) -> None:
        raise RuntimeError("listener bug")

    store.subscribe(broken)

    await store.login("a@b.com", "pw")

    assert [(s.is_loading, s.is_authenticated) for s in seen] == [(True, False), (False, True)]

    unsubscribe()
    await store.login("a@b.com", "pw")
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_view_is_read_only() -> None:
    store, _ = _make_store(_routes({}))
    view = store.view()

    assert view.snapshot == store.snapshot
    assert not hasattr(view, "login")
    assert not hasattr(view, "logout")


def _slow_fetch_handler(release: asyncio.Event) -> Callable:
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/auth/user":
            await release.wait()
            return httpx.Response(401, json={"message": "Not logged in"})
        return httpx.Response(200, json=USER_JSON)

    return handler


@pytest.mark.asyncio
async def test_stale_fetch_cannot_overwrite_newer_login() -> None:
    release = asyncio.Event()
    store, _ = _make_store(_slow_fetch_handler(release))

    fetch_task = asyncio.create_task(store.fetch_current_session())
    await asyncio.sleep(0)
    await store.login("a@b.com", "pw")
    release.set()
    await fetch_task

    assert store.is_authenticated
    assert store.is_loading is False
    stale = [e for e in store.observer.events if e.stale]
    assert [e.operation for e in stale] == ["fetch"]
    assert store.observer.get_stats()["stale_results"] == 1


@pytest.mark.asyncio
async def test_without_fencing_last_completion_wins() -> None:
    release = asyncio.Event()
    store, _ = _make_store(_slow_fetch_handler(release), fence_stale_results=False)

    fetch_task = asyncio.create_task(store.fetch_current_session())
    await asyncio.sleep(0)
    await store.login("a@b.com", "pw")
    release.set()
    await fetch_task

    assert store.is_authenticated is False
    assert store.is_loading is False


@pytest.mark.asyncio
async def test_store_closes_only_its_own_client() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(_routes({})), base_url="http://testserver")
    async with SessionStore(client=client):
        pass
    assert client.is_closed is False
    await client.aclose()

    async with SessionStore(ClientConfig(api_base_url="http://localhost:9")) as owned:
        inner = owned._client
    assert inner.is_closed
