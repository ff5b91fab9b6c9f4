from .client import (
    BitbucketApiError,
    BitbucketMCPError,
    BitbucketModelValidationError,
)
from .config import ConfigError
from .safety import SafetyError

__all__ = [
    "BitbucketMCPError",
    "BitbucketApiError",
    "BitbucketModelValidationError",
    "SafetyError",
    "ConfigError",
]
