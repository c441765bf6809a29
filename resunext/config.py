"""Client configuration loaded from YAML with environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_API_BASE = "http://localhost:5000"
DEFAULT_LOGIN_PATH = "/auth/login"
LOGOUT_POLICIES = ("confirmed", "optimistic")


@dataclass
class ClientConfig:
    """Configuration for the session client."""

    api_base_url: str = DEFAULT_API_BASE
    request_timeout: Optional[float] = None  # None = wait for the transport
    fence_stale_results: bool = True
    logout_policy: str = "confirmed"  # "confirmed" | "optimistic"
    login_path: str = DEFAULT_LOGIN_PATH
    verbose: bool = False


def resolve_env_placeholder(value: Any) -> Any:
    """Resolve a ``${VAR_NAME}`` placeholder against the environment.

    Non-placeholder values are returned unchanged; unresolvable placeholders
    become an empty string.
    """
    if not isinstance(value, str):
        return value
    if value.startswith("${") and value.endswith("}"):
        return os.environ.get(value[2:-1], "")
    return value


def load_raw_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """Read the YAML config file into a dict (empty when the file is absent)."""
    path = Path(config_path)
    if not path.exists():
        path = Path(__file__).parent.parent / config_path

    if not path.exists():
        return {}

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")
    return {key: resolve_env_placeholder(value) for key, value in data.items()}


def apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Layer ``RESUNEXT_*`` environment variables over the file values."""
    merged = dict(raw)
    api_base = os.environ.get("RESUNEXT_API_BASE")
    if api_base:
        merged["api_base_url"] = api_base
    timeout = os.environ.get("RESUNEXT_REQUEST_TIMEOUT")
    if timeout:
        try:
            merged["request_timeout"] = float(timeout)
        except ValueError:
            merged["request_timeout"] = timeout  # left for the validator to report
    policy = os.environ.get("RESUNEXT_LOGOUT_POLICY")
    if policy:
        merged["logout_policy"] = policy.strip().lower()
    return merged


def config_from_dict(raw: Dict[str, Any]) -> ClientConfig:
    timeout = raw.get("request_timeout")
    return ClientConfig(
        api_base_url=str(raw.get("api_base_url") or DEFAULT_API_BASE).rstrip("/"),
        request_timeout=float(timeout) if timeout not in (None, "") else None,
        fence_stale_results=bool(raw.get("fence_stale_results", True)),
        logout_policy=str(raw.get("logout_policy", "confirmed")),
        login_path=str(raw.get("login_path") or DEFAULT_LOGIN_PATH),
        verbose=bool(raw.get("verbose", False)),
    )


def load_config(config_path: str = "config/config.yaml") -> ClientConfig:
    """Load client configuration from YAML, then environment.

    Raises:
        ValueError: If the merged configuration fails validation.
    """
    from .config_validator import format_issues, has_errors, validate_config

    raw = apply_env_overrides(load_raw_config(config_path))
    issues = validate_config(raw)
    if has_errors(issues):
        raise ValueError(f"Invalid configuration:\n{format_issues(issues)}")
    return config_from_dict(raw)
