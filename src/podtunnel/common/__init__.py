"""Common utilities and shared functionality."""

from .exceptions import ConfigurationError, PodTunnelError
from .logging import get_logger, setup_logging
from .utils import fqn, split_fqn, validate_non_empty_string

__all__ = [
    # Exceptions
    "PodTunnelError",
    "ConfigurationError",
    # Logging
    "get_logger",
    "setup_logging",
    # Utils
    "validate_non_empty_string",
    "fqn",
    "split_fqn",
]
