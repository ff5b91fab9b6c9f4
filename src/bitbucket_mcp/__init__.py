"""bitbucket_mcp package exports."""

from .core import (
    BitbucketApiError,
    BitbucketClient,
    BitbucketMCPError,
    BitbucketModelValidationError,
    Config,
    ConfigError,
    SafetyError,
    load_config,
)

__version__ = "1.0.0"

__all__ = [
    "BitbucketClient",
    "Config",
    "ConfigError",
    "load_config",
    "BitbucketMCPError",
    "BitbucketApiError",
    "BitbucketModelValidationError",
    "SafetyError",
    "__version__",
]
