"""CLI - interactive shell over the ResuNext session client."""

from __future__ import annotations

import asyncio
import logging
import shlex
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.markdown import Markdown
from rich.prompt import Prompt
from rich.table import Table

from .config import ClientConfig, load_config
from .errors import SessionOperationError
from .notifications import ConsoleNotifier
from .routing import GuardedNavigator, RouteGuard
from .session import SessionStore

logger = logging.getLogger(__name__)

console = Console()


@dataclass
class ShellState:
    store: SessionStore
    navigator: GuardedNavigator


def print_help():
    """Print help message."""
    help_text = """
## Available Commands

| Command | Description |
|---------|-------------|
| `/login <email> [password]` | Sign in (prompts for the password when omitted) |
| `/register <email> <password> [first name]` | Create an account and sign in |
| `/logout` | Sign out |
| `/whoami` | Show the signed-in user |
| `/refresh` | Re-read the session from the server |
| `/goto <path>` | Navigate, e.g. `/goto /dashboard` |
| `/where` | Show the current path and page |
| `/stats` | Show session operation stats |
| `/config` | Show current configuration |
| `/help` | Show this help message |
| `/quit` or `/exit` | Exit |
"""
    console.print(Markdown(help_text))


def print_user(state: ShellState) -> None:
    user = state.store.user
    if user is None:
        console.print("Not signed in.", style="yellow")
        return
    table = Table(show_header=False, box=None)
    table.add_row("id", str(user.id))
    table.add_row("email", user.email)
    table.add_row("name", " ".join(p for p in (user.first_name, user.last_name) if p) or "-")
    table.add_row("role", user.role)
    table.add_row("plan", user.plan)
    if user.mock_interviews_count is not None:
        table.add_row("mock interviews", str(user.mock_interviews_count))
    console.print(table)


async def handle_command(command: str, state: ShellState) -> bool:
    """Handle a shell command. Returns True if should continue, False to exit."""
    try:
        parts = shlex.split(command.strip())
    except ValueError as e:
        console.print(f"Could not parse command: {e}", style="red")
        return True
    if not parts:
        return True

    cmd, args = parts[0].lower(), parts[1:]

    if cmd in ["/quit", "/exit", "/q"]:
        console.print("\n👋 Goodbye!", style="yellow")
        return False

    elif cmd == "/help":
        print_help()

    elif cmd == "/login":
        if not args:
            console.print("Usage: /login <email> [password]", style="red")
            return True
        if len(args) > 1:
            password = args[1]
        else:
            password = await asyncio.get_event_loop().run_in_executor(
                None,
                lambda: Prompt.ask("Password", password=True),
            )
        try:
            await state.store.login(args[0], password)
        except SessionOperationError as e:
            logger.debug("login failed: %s", e.message)

    elif cmd == "/register":
        if len(args) < 2:
            console.print("Usage: /register <email> <password> [first name]", style="red")
            return True
        draft = {"email": args[0], "password": args[1]}
        if len(args) > 2:
            draft["firstName"] = " ".join(args[2:])
        try:
            await state.store.register(draft)
        except SessionOperationError as e:
            logger.debug("register failed: %s", e.message)

    elif cmd == "/logout":
        await state.store.logout()

    elif cmd == "/whoami":
        print_user(state)

    elif cmd == "/refresh":
        await state.store.fetch_current_session()
        print_user(state)

    elif cmd == "/goto":
        if not args:
            console.print("Usage: /goto <path>", style="red")
            return True
        decision = state.navigator.go(args[0])
        if decision.allowed:
            console.print(f"📄 {state.navigator.current_path} → {state.navigator.page}", style="green")

    elif cmd == "/where":
        console.print(f"📍 {state.navigator.current_path} ({state.navigator.page})")

    elif cmd == "/stats":
        stats = state.store.observer.get_stats()
        table = Table(title="Session operations")
        table.add_column("operation")
        table.add_column("success", justify="right")
        table.add_column("failure", justify="right")
        for name, counts in sorted(stats["by_operation"].items()):
            table.add_row(name, str(counts.get("success", 0)), str(counts.get("failure", 0)))
        console.print(table)
        console.print(
            f"total={stats['total_operations']} stale={stats['stale_results']} "
            f"avg={stats['avg_duration_ms']:.1f}ms",
            style="dim",
        )

    elif cmd == "/config":
        config = state.store.config
        config_info = f"""
**API Base**: {config.api_base_url}
**Request Timeout**: {config.request_timeout if config.request_timeout is not None else "none"}
**Fence Stale Results**: {config.fence_stale_results}
**Logout Policy**: {config.logout_policy}
**Login Path**: {config.login_path}
"""
        console.print(Markdown(config_info))

    else:
        console.print(f"Unknown command: {command}. Type /help for available commands.", style="red")

    return True


async def run_interactive(state: ShellState):
    """Run interactive command loop."""
    history_file = Path.home() / ".resunext_history"
    session = PromptSession(history=FileHistory(str(history_file)))

    console.print("ResuNext session shell. Type /help for commands.", style="cyan")

    while True:
        try:
            user_input = await session.prompt_async(f"\n{state.navigator.current_path} › ")
            user_input = user_input.strip()
            if not user_input:
                continue
            if not user_input.startswith("/"):
                user_input = f"/goto {user_input}"
            if not await handle_command(user_input, state):
                break
        except KeyboardInterrupt:
            console.print("\n\n👋 Goodbye!", style="yellow")
            break
        except EOFError:
            console.print("\n👋 Goodbye!", style="yellow")
            break


def build_state(config: ClientConfig, console_: Optional[Console] = None) -> ShellState:
    """Wire a store and a navigator the way the shell uses them."""
    out = console_ or console
    store = SessionStore(config=config, notifier=ConsoleNotifier(out))
    navigator = GuardedNavigator(
        store.view(),
        guard=RouteGuard(login_path=config.login_path),
        on_redirect=lambda target: out.print(f"🔒 Sign in required, redirected to {target}", style="yellow"),
    )
    return ShellState(store=store, navigator=navigator)


async def run(config: ClientConfig, commands: List[str]) -> int:
    state = build_state(config)
    try:
        await state.store.start()
        if commands:
            for command in commands:
                if not await handle_command(command, state):
                    break
        else:
            await run_interactive(state)
    finally:
        state.navigator.close()
        await state.store.aclose()
    return 0


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="ResuNext - session client shell"
    )
    parser.add_argument(
        "--config", "-c",
        default="config/config.yaml",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--api-base",
        help="Override the auth API base URL",
    )
    parser.add_argument(
        "--command", "-x",
        action="append",
        default=[],
        help="Run a shell command and exit (repeatable, e.g. -x '/login a@b.com pw' -x /whoami)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log every session operation",
    )

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except ValueError as e:
        console.print(f"⚠️ {e}", style="red")
        sys.exit(1)

    if args.api_base:
        config.api_base_url = args.api_base.rstrip("/")
    if args.verbose:
        config.verbose = True

    sys.exit(asyncio.run(run(config, args.command)))


if __name__ == "__main__":
    main()
