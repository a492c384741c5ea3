"""Retrieve configuration values."""

from dataclasses import dataclass
from os import getenv
from typing import Any, Optional, Sequence, Tuple

from acapy_agent.config.base import BaseSettings
from acapy_agent.config.settings import Settings

MSO_MDOC = "mso_mdoc"
DC_SD_JWT = "dc+sd-jwt"


class ConfigError(ValueError):
    """Base class for configuration errors."""

    def __init__(self, var: str, env: str):
        """Initialize a ConfigError."""
        super().__init__(
            f"Invalid {var} specified for DCQL engine; use either "
            f"dcql.{var} plugin config value or environment variable {env}"
        )


def _as_formats(value: Any) -> Optional[Tuple[str, ...]]:
    """Normalize a list or comma separated string of format identifiers."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.split(",")
    return tuple(fmt.strip() for fmt in value if fmt and fmt.strip())


@dataclass(frozen=True)
class Config:
    """Credential format identifiers understood by the DCQL engine."""

    mdoc_formats: Sequence[str] = (MSO_MDOC,)
    sd_jwt_formats: Sequence[str] = (DC_SD_JWT,)

    def __post_init__(self):
        """Normalize and validate the format identifiers."""
        object.__setattr__(self, "mdoc_formats", _as_formats(self.mdoc_formats))
        object.__setattr__(self, "sd_jwt_formats", _as_formats(self.sd_jwt_formats))
        if not self.mdoc_formats:
            raise ConfigError("mdoc_formats", "DCQL_MDOC_FORMATS")
        if not self.sd_jwt_formats:
            raise ConfigError("sd_jwt_formats", "DCQL_SD_JWT_FORMATS")
        if set(self.mdoc_formats) & set(self.sd_jwt_formats):
            raise ConfigError("sd_jwt_formats", "DCQL_SD_JWT_FORMATS")

    def is_mdoc(self, format: str) -> bool:
        """Check whether format identifies an ISO mdoc credential."""
        return format in self.mdoc_formats

    def is_sd_jwt(self, format: str) -> bool:
        """Check whether format identifies an SD-JWT VC credential."""
        return format in self.sd_jwt_formats

    @classmethod
    def from_settings(cls, settings: BaseSettings) -> "Config":
        """Retrieve configuration from context."""
        assert isinstance(settings, Settings)
        plugin_settings = settings.for_plugin("dcql")
        mdoc_formats = _as_formats(
            plugin_settings.get("mdoc_formats") or getenv("DCQL_MDOC_FORMATS")
        )
        sd_jwt_formats = _as_formats(
            plugin_settings.get("sd_jwt_formats") or getenv("DCQL_SD_JWT_FORMATS")
        )
        return cls(
            mdoc_formats=mdoc_formats if mdoc_formats is not None else (MSO_MDOC,),
            sd_jwt_formats=(
                sd_jwt_formats if sd_jwt_formats is not None else (DC_SD_JWT,)
            ),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """Retrieve configuration from environment variables only."""
        return cls.from_settings(Settings())


DEFAULT_CONFIG = Config()
