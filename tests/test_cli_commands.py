"""CLI shell command behavior tests."""

from __future__ import annotations

import threading

import httpx
import pytest

from resunext import cli
from resunext.cli import ShellState, handle_command
from resunext.config import ClientConfig
from resunext.notifications import RecordingNotifier
from resunext.routing import LOGIN_PATH, GuardedNavigator
from resunext.session import SessionStore


def _state() -> ShellState:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/auth/user":
            return httpx.Response(401, json={"message": "Not logged in"})
        if request.url.path == "/api/auth/login":
            body = request.read()
            if b'"pw"' in body:
                return httpx.Response(200, json={"id": 1, "email": "a@b.com"})
            return httpx.Response(401, json={"message": "Invalid email or password"})
        return httpx.Response(200, json={"message": "ok"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://testserver")
    store = SessionStore(ClientConfig(), client=client, notifier=RecordingNotifier())
    return ShellState(store=store, navigator=GuardedNavigator(store.view()))


@pytest.mark.asyncio
async def test_goto_protected_path_while_anonymous_redirects() -> None:
    state = _state()
    await state.store.start()

    assert await handle_command("/goto /dashboard", state)
    assert state.navigator.current_path == LOGIN_PATH


@pytest.mark.asyncio
async def test_login_then_goto_and_logout() -> None:
    state = _state()
    await state.store.start()

    assert await handle_command("/login a@b.com pw", state)
    assert state.store.is_authenticated

    assert await handle_command("/goto /settings", state)
    assert state.navigator.current_path == "/settings"

    assert await handle_command("/logout", state)
    assert state.store.is_authenticated is False
    assert state.navigator.current_path == LOGIN_PATH


@pytest.mark.asyncio
async def test_failed_login_keeps_shell_running() -> None:
    state = _state()
    await state.store.start()

    assert await handle_command("/login a@b.com wrong", state)
    assert state.store.is_authenticated is False
    assert state.store.notifier.titles == ["Login failed"]


@pytest.mark.asyncio
async def test_informational_and_exit_commands() -> None:
    state = _state()

    for command in ("/help", "/whoami", "/where", "/stats", "/config", "/goto", "/login", "/register a@b.com", "/nope", ""):
        assert await handle_command(command, state)
    assert await handle_command("/quit", state) is False


@pytest.mark.asyncio
async def test_login_without_password_prompts_for_it(monkeypatch: pytest.MonkeyPatch) -> None:
    prompts = []

    def fake_ask(prompt: str, password: bool = False) -> str:
        prompts.append((prompt, password, threading.get_ident()))
        return "pw"

    monkeypatch.setattr(cli.Prompt, "ask", fake_ask)
    state = _state()
    await state.store.start()

    assert await handle_command("/login a@b.com", state)
    assert state.store.is_authenticated
    assert [(p, pw) for p, pw, _ in prompts] == [("Password", True)]
    assert prompts[0][2] != threading.get_ident()
