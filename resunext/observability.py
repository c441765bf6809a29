"""Observability for session operations - logging and per-operation events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class SessionEvent:
    """A single completed session operation."""

    timestamp: datetime
    operation: str  # "fetch", "login", "register", "logout"
    outcome: str  # "success", "failure"
    seq: int
    duration_ms: float
    stale: bool = False
    error: Optional[str] = None


class SessionObserver:
    """
    Tracks session operations for debugging.

    Every operation the store finishes is appended to ``events`` and logged
    on the ``resunext`` logger.
    """

    def __init__(self, verbose: bool = False):
        self.events: List[SessionEvent] = []
        self.logger = logging.getLogger("resunext")
        self.verbose = verbose
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging format and handlers."""
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
        self.logger.setLevel(logging.INFO if self.verbose else logging.WARNING)

    def log_operation(
        self,
        operation: str,
        outcome: str,
        seq: int,
        duration_ms: float,
        stale: bool = False,
        error: Optional[str] = None,
    ) -> SessionEvent:
        """
        Record a finished session operation.

        Args:
            operation: Operation name
            outcome: "success" or "failure"
            seq: Sequence number the store assigned when the operation started
            duration_ms: Wall time of the backend round trip
            stale: True when a newer operation superseded this one's state write
            error: Error message for failures
        """
        event = SessionEvent(
            timestamp=datetime.now(),
            operation=operation,
            outcome=outcome,
            seq=seq,
            duration_ms=duration_ms,
            stale=stale,
            error=error,
        )
        self.events.append(event)

        stale_indicator = " [STALE]" if stale else ""
        if outcome == "success":
            self.logger.info(f"✓ {operation} #{seq}{stale_indicator} ({duration_ms:.2f}ms)")
        else:
            self.logger.warning(f"✗ {operation} #{seq}{stale_indicator} failed: {error} ({duration_ms:.2f}ms)")
        return event

    def get_stats(self) -> Dict[str, Any]:
        """Summarize recorded operations."""
        by_operation: Dict[str, Dict[str, int]] = {}
        for event in self.events:
            counts = by_operation.setdefault(event.operation, {"success": 0, "failure": 0})
            counts[event.outcome] = counts.get(event.outcome, 0) + 1

        total_ms = sum(e.duration_ms for e in self.events)
        return {
            "total_operations": len(self.events),
            "stale_results": sum(1 for e in self.events if e.stale),
            "failures": sum(1 for e in self.events if e.outcome == "failure"),
            "total_duration_ms": total_ms,
            "avg_duration_ms": total_ms / len(self.events) if self.events else 0.0,
            "by_operation": by_operation,
        }

    def clear(self):
        """Drop recorded events."""
        self.events.clear()
