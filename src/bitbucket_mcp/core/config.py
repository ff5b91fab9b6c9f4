from __future__ import annotations

import os
from dataclasses import dataclass
from typing import FrozenSet, Optional

from dotenv import load_dotenv

DEFAULT_BASE_URL = "https://api.bitbucket.org/2.0"
DEFAULT_TIMEOUT_SECONDS = 30.0


class ConfigError(ValueError):
    """Raised when the environment does not describe a usable configuration."""


@dataclass(frozen=True)
class Config:
    email: str
    api_token: str
    default_workspace: Optional[str] = None
    allowed_workspaces: Optional[FrozenSet[str]] = None
    allowed_repos: Optional[FrozenSet[str]] = None
    readonly: bool = False
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


def parse_allow_list(raw: Optional[str]) -> Optional[FrozenSet[str]]:
    """Split a comma-separated list into a lower-cased set (None when unset)."""
    if not raw:
        return None
    entries = frozenset(
        part.strip().lower() for part in raw.split(",") if part.strip()
    )
    return entries or None


def _parse_timeout(raw: Optional[str]) -> float:
    if not raw or not raw.strip():
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(
            f"BITBUCKET_TIMEOUT_SECONDS must be a number, got {raw!r}"
        ) from exc
    if value <= 0:
        raise ConfigError("BITBUCKET_TIMEOUT_SECONDS must be greater than 0")
    return value


def load_config(*, use_dotenv: bool = True) -> Config:
    """Build a Config from environment variables (optionally seeded from .env)."""
    if use_dotenv:
        load_dotenv()

    email = os.getenv("ATLASSIAN_USER_EMAIL", "").strip()
    api_token = os.getenv("ATLASSIAN_API_TOKEN", "").strip()
    if not email or not api_token:
        raise ConfigError(
            "ATLASSIAN_USER_EMAIL and ATLASSIAN_API_TOKEN environment variables "
            "are required"
        )

    return Config(
        email=email,
        api_token=api_token,
        default_workspace=os.getenv("BITBUCKET_DEFAULT_WORKSPACE", "").strip()
        or None,
        allowed_workspaces=parse_allow_list(
            os.getenv("BITBUCKET_ALLOWED_WORKSPACES")
        ),
        allowed_repos=parse_allow_list(os.getenv("BITBUCKET_ALLOWED_REPOS")),
        readonly=os.getenv("BITBUCKET_READONLY", "").strip() == "true",
        base_url=os.getenv("BITBUCKET_BASE_URL", "").strip() or DEFAULT_BASE_URL,
        timeout_seconds=_parse_timeout(os.getenv("BITBUCKET_TIMEOUT_SECONDS")),
    )


__all__ = [
    "Config",
    "ConfigError",
    "DEFAULT_BASE_URL",
    "DEFAULT_TIMEOUT_SECONDS",
    "load_config",
    "parse_allow_list",
]
