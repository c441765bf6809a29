"""Configuration validator for client startup checks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List
from urllib.parse import urlparse

from .config import LOGOUT_POLICIES


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class ConfigError:
    """A single configuration issue."""
    field: str
    message: str
    severity: Severity


def validate_config(raw_config: Dict[str, Any]) -> List[ConfigError]:
    """Validate raw configuration and return a list of issues.

    Args:
        raw_config: Raw config dict (YAML merged with environment)

    Returns:
        List of ConfigError (empty = valid)
    """
    errors: List[ConfigError] = []

    # --- API base ---
    api_base = raw_config.get("api_base_url")
    if api_base is not None:
        parsed = urlparse(str(api_base))
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(ConfigError(
                field="api_base_url",
                message=f"api_base_url must be an http(s) URL, got {api_base!r}",
                severity=Severity.ERROR,
            ))
        elif parsed.scheme == "http" and parsed.hostname not in ("localhost", "127.0.0.1"):
            errors.append(ConfigError(
                field="api_base_url",
                message="api_base_url uses plain http for a remote host; session cookies travel unencrypted",
                severity=Severity.WARNING,
            ))

    # --- Timeout ---
    timeout = raw_config.get("request_timeout")
    if timeout == "":
        timeout = None  # unset ${VAR} placeholder, same as config_from_dict
    if timeout is not None:
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            errors.append(ConfigError(
                field="request_timeout",
                message=f"request_timeout must be a positive number or null, got {timeout!r}",
                severity=Severity.ERROR,
            ))

    # --- Logout policy ---
    policy = raw_config.get("logout_policy", "confirmed")
    if policy not in LOGOUT_POLICIES:
        errors.append(ConfigError(
            field="logout_policy",
            message=f"logout_policy must be one of {', '.join(LOGOUT_POLICIES)}, got {policy!r}",
            severity=Severity.ERROR,
        ))

    # --- Login path ---
    login_path = raw_config.get("login_path")
    if login_path is not None and not str(login_path).startswith("/"):
        errors.append(ConfigError(
            field="login_path",
            message=f"login_path must be an absolute path, got {login_path!r}",
            severity=Severity.ERROR,
        ))

    # --- Fencing ---
    fence = raw_config.get("fence_stale_results", True)
    if not isinstance(fence, bool):
        errors.append(ConfigError(
            field="fence_stale_results",
            message=f"fence_stale_results must be true or false, got {fence!r}",
            severity=Severity.ERROR,
        ))

    return errors


def has_errors(issues: List[ConfigError]) -> bool:
    """Check if any issues are errors (not just warnings)."""
    return any(e.severity == Severity.ERROR for e in issues)


def format_issues(issues: List[ConfigError]) -> str:
    return "\n".join(f"  [{e.severity.value}] {e.field}: {e.message}" for e in issues)
