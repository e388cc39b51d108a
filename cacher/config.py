"""
Cacher configuration using Pydantic settings.

Usage:
    from cacher.config import get_settings
    settings = get_settings()

    # Lay caller-supplied values over the current ones
    settings = settings.merge({"address": "10.0.0.5", "db": 3})
"""

from collections.abc import Mapping
from functools import lru_cache
from typing import Any, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cacher.exceptions import ConfigurationError

DEFAULT_PREFIX = "cacher"
DEFAULT_DATABASE_INDEX = 1

# Short names accepted by merge()
ALIASES = {"url": "address", "db": "database_index", "databaseIndex": "database_index"}


class CacherSettings(BaseSettings):
    """
    Connection and namespacing settings loaded from environment variables and .env file.

    Instances are frozen: changing a value means building a new settings
    object with merge().
    """
    model_config = SettingsConfigDict(
        env_prefix="CACHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Store address
    address: str = Field(default="127.0.0.1")
    port: int = Field(default=6379, ge=1, le=65535)
    database_index: int = Field(default=DEFAULT_DATABASE_INDEX, ge=0)
    password: Optional[str] = Field(default=None)

    # Key namespacing
    prefix: str = Field(default=DEFAULT_PREFIX)
    hash_keys: bool = Field(default=False)

    # Connection handling
    use_pool: bool = Field(default=True)
    max_connections: int = Field(default=50, ge=1)
    socket_timeout: Optional[float] = Field(default=None, gt=0)
    socket_connect_timeout: Optional[float] = Field(default=None, gt=0)

    # Fallback de-duplication
    single_flight: bool = Field(default=False)

    # Logging
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Prefix must be non-empty; a trailing separator is dropped."""
        v = v.strip().rstrip(":")
        if not v:
            raise ValueError("prefix cannot be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level '{v}'")
        return level

    @property
    def redis_url(self) -> str:
        """Construct Redis URL from components."""
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.address}:{self.port}/{self.database_index}"

    def merge(self, config: Optional[Mapping[str, Any]] = None, **overrides: Any) -> "CacherSettings":
        """
        Build new settings with caller-supplied values laid over these.

        Args:
            config: Mapping of field names (or aliases such as ``url``/``db``)
            **overrides: Same as config, as keyword arguments

        Returns:
            A new CacherSettings; this instance is left untouched

        Raises:
            ConfigurationError: If a key is unknown or the merged values fail validation
        """
        values = self.model_dump()
        for name, value in {**(config or {}), **overrides}.items():
            field = ALIASES.get(name, name)
            if field not in type(self).model_fields:
                raise ConfigurationError(f"unknown setting '{name}'")
            values[field] = value
        return build_settings(values)


def build_settings(values: Optional[Mapping[str, Any]] = None) -> CacherSettings:
    """Create settings, reporting validation problems as ConfigurationError."""
    try:
        return CacherSettings(**dict(values or {}))
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


@lru_cache
def get_settings() -> CacherSettings:
    """Get cached settings from the environment."""
    return build_settings()


__all__ = ["CacherSettings", "DEFAULT_PREFIX", "build_settings", "get_settings"]
