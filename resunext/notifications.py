"""User-facing notifications (toast equivalents) emitted by the session store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from rich.console import Console

logger = logging.getLogger(__name__)

DEFAULT = "default"
DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = DEFAULT

    @property
    def is_failure(self) -> bool:
        return self.variant == DESTRUCTIVE


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None:
        ...


class RecordingNotifier:
    """Keeps notifications in memory; used by headless callers and tests."""

    def __init__(self) -> None:
        self.notifications: List[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def titles(self) -> List[str]:
        return [n.title for n in self.notifications]


class LoggingNotifier:
    """Default notifier: forwards notifications to the module logger."""

    def notify(self, notification: Notification) -> None:
        level = logging.WARNING if notification.is_failure else logging.INFO
        logger.log(level, "%s: %s", notification.title, notification.description)


class ConsoleNotifier:
    """Renders notifications on a rich console."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def notify(self, notification: Notification) -> None:
        if notification.is_failure:
            self.console.print(f"❌ {notification.title}: {notification.description}", style="red")
        else:
            self.console.print(f"✅ {notification.title}: {notification.description}", style="green")
