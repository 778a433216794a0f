"""Port-forward configuration model."""

import ipaddress
import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..common.exceptions import ConfigurationError
from ..ui.keys import KEY_SHIFT_F

ENV_PREFIX = "PODTUNNEL_"


class ForwardConfig(BaseModel):
    """Configuration for opening and tracking port-forwards."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    default_address: str = Field(
        default="127.0.0.1", description="Local address offered in the dialog"
    )
    max_sessions: int = Field(
        default=32, ge=1, le=100, description="Maximum concurrent port-forwards"
    )
    trigger_key: str = Field(
        default=KEY_SHIFT_F, min_length=1, description="Key opening the flow"
    )
    trigger_label: str = Field(
        default="Port-Forward", min_length=1, description="Menu hint for the key"
    )
    pod_check_interval: float = Field(
        default=5.0, gt=0, description="Seconds between forwarded pod checks"
    )
    kubeconfig: str | None = Field(None, description="Kubeconfig path")
    context: str | None = Field(None, description="Kubeconfig context")

    @field_validator("default_address")
    @classmethod
    def validate_default_address(cls, v: str) -> str:
        """Accept IP literals and ``localhost`` only."""
        if v == "localhost":
            return v
        try:
            ipaddress.ip_address(v)
        except ValueError as e:
            raise ValueError(f"Invalid bind address '{v}'") from e
        return v

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ForwardConfig":
        """Build a configuration from ``PODTUNNEL_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            Validated configuration

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        environ = os.environ if environ is None else environ
        values = {
            name: environ[ENV_PREFIX + name.upper()]
            for name in cls.model_fields
            if ENV_PREFIX + name.upper() in environ
        }
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid port-forward configuration: {e}") from e
