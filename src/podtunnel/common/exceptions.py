"""Custom exceptions for podtunnel."""


class PodTunnelError(Exception):
    """Base exception for all podtunnel errors."""

    pass


class ConfigurationError(PodTunnelError):
    """Raised when configuration is invalid."""

    pass
