"""Core domain surface for bitbucket-mcp (transport-agnostic)."""

from .client import BitbucketClient
from .config import Config, load_config
from .errors import (
    BitbucketApiError,
    BitbucketMCPError,
    BitbucketModelValidationError,
    ConfigError,
    SafetyError,
)
from .registry import (
    discover_tool_modules,
    iter_tool_functions,
    register_discovered_tools,
)
from .safety import (
    assert_confirmed,
    assert_not_readonly,
    assert_repo_allowed,
    assert_workspace_allowed,
    resolve_workspace,
)

__all__ = [
    # Client
    "BitbucketClient",
    # Config
    "Config",
    "ConfigError",
    "load_config",
    # Exceptions
    "BitbucketMCPError",
    "BitbucketApiError",
    "BitbucketModelValidationError",
    "SafetyError",
    # Access checks
    "assert_not_readonly",
    "assert_workspace_allowed",
    "assert_repo_allowed",
    "assert_confirmed",
    "resolve_workspace",
    # Registry helpers
    "discover_tool_modules",
    "iter_tool_functions",
    "register_discovered_tools",
]
