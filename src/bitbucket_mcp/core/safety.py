"""Access policy checks applied before any Bitbucket call is made.

Every function here is a pure function of its arguments: no I/O, no
network. Handlers compose them in a fixed order:

    read-only (writes) -> confirmation (destructive) -> workspace -> allow-list
"""

from __future__ import annotations

from typing import Iterable, Optional

from .client import BitbucketMCPError
from .config import Config


class SafetyError(BitbucketMCPError):
    """Raised when an operation is blocked by the configured access policy."""


def _listed(values: Iterable[str]) -> str:
    return ", ".join(sorted(values))


def assert_not_readonly(config: Config) -> None:
    if config.readonly:
        raise SafetyError(
            "This operation is not allowed in readonly mode. "
            "Set BITBUCKET_READONLY=false to enable write operations."
        )


def assert_workspace_allowed(config: Config, workspace: str) -> None:
    if config.allowed_workspaces is None:
        return
    if workspace.lower() not in config.allowed_workspaces:
        raise SafetyError(
            f'Workspace "{workspace}" is not in the allowed list. '
            f"Allowed: {_listed(config.allowed_workspaces)}"
        )


def assert_repo_allowed(config: Config, workspace: str, repo_slug: str) -> None:
    """Check the workspace first; a repository entry never widens it."""
    assert_workspace_allowed(config, workspace)
    if config.allowed_repos is None:
        return
    full_name = f"{workspace}/{repo_slug}".lower()
    if full_name in config.allowed_repos or repo_slug.lower() in config.allowed_repos:
        return
    raise SafetyError(
        f'Repository "{workspace}/{repo_slug}" is not in the allowed list. '
        f"Allowed: {_listed(config.allowed_repos)}"
    )


def assert_confirmed(confirm: Optional[bool], action: str) -> None:
    if confirm is not True:
        raise SafetyError(
            f'Destructive action "{action}" requires explicit confirmation. '
            "Set confirm=true to proceed."
        )


def resolve_workspace(config: Config, workspace: Optional[str] = None) -> str:
    if workspace:
        return workspace
    if config.default_workspace:
        return config.default_workspace
    raise SafetyError(
        "No workspace specified and BITBUCKET_DEFAULT_WORKSPACE is not set. "
        "Provide a workspace parameter."
    )


__all__ = [
    "SafetyError",
    "assert_not_readonly",
    "assert_workspace_allowed",
    "assert_repo_allowed",
    "assert_confirmed",
    "resolve_workspace",
]
