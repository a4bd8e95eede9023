"""
Configuration Management

Centralized configuration using Pydantic Settings.

Process-wide defaults come from the environment (prefix `SETUDB_`) or a `.env`
file. Each `Database` is bound to an immutable `DatabaseConfig`, built in code
or loaded from YAML:

    # database.yaml
    engine: postgres
    long_running_threshold: 250
    options:
      host: localhost
      database: app
      user: app
      pool_size: 10

    config = DatabaseConfig.from_yaml("database.yaml")
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Library settings."""

    model_config = SettingsConfigDict(
        env_prefix="SETUDB_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Engine used when a DatabaseConfig does not name one
    default_engine: str = "sqlite"

    # Observability
    long_running_threshold: float = Field(default=500, ge=0)
    log_level: str = "INFO"


class DatabaseConfig(BaseModel):
    """
    Configuration a `Database` is bound to.

    Attributes:
        engine: Adapter engine name (sqlite, duckdb, postgres, ...)
        options: Connection and pool options passed to the adapter
        row_fn: Applied to every returned row unless overridden per call
        long_running_threshold: Milliseconds after which a query is logged
            as long-running; the settings default applies when unset
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    engine: str = Field(default_factory=lambda: settings.default_engine)
    options: Dict[str, Any] = Field(default_factory=dict)
    row_fn: Optional[Callable[[Dict[str, Any]], Any]] = None
    long_running_threshold: Optional[float] = Field(default=None, ge=0)

    @classmethod
    def from_yaml(cls, path: Union[str, Path], **overrides) -> "DatabaseConfig":
        """
        Load a configuration from a YAML file.

        Keyword overrides take precedence over the file; use them for values
        YAML cannot express, such as `row_fn`.
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Database config must be a mapping: {path}")

        data.update(overrides)
        logger.debug(f"Loaded database config from {path}")
        return cls(**data)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for applications and scripts using SetuDB."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


# Global settings instance
settings = Settings()
