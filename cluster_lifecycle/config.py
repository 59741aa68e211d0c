"""Runtime configuration for cluster lifecycle management."""

import os

import yaml
from pydantic import BaseModel, field_validator

from cluster_lifecycle.constants import DATABASE_URL_ENV, DEFAULT_DATABASE_URL
from cluster_lifecycle.exceptions import ConfigurationError


class LifecycleConfig(BaseModel):
    """Datastore and logging settings."""

    database_url: str = DEFAULT_DATABASE_URL
    echo: bool = False
    log_level: str = "INFO"

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database_url looks like an SQLAlchemy URL."""
        if not v:
            raise ValueError("database_url cannot be empty")
        if "://" not in v:
            raise ValueError(
                f"database_url '{v}' must be an SQLAlchemy URL (e.g., sqlite:///clusters.db)"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got {v}")
        return v.upper()

    def save(self, path: str) -> None:
        """Save configuration to YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)

    @classmethod
    def load(cls, path: str | None = None) -> "LifecycleConfig":
        """Load configuration from an optional YAML file and the environment.

        ``CLUSTER_LIFECYCLE_DATABASE_URL`` overrides the file's database_url.

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        data = {}
        if path:
            try:
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
            except FileNotFoundError:
                raise ConfigurationError(
                    f"Configuration file not found: {path}",
                    "Create the file or omit --config to use the defaults",
                )
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in configuration file {path}", str(e))
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"Configuration file {path} must contain a mapping",
                    "Use keys such as database_url, echo and log_level",
                )

        env_url = os.environ.get(DATABASE_URL_ENV)
        if env_url:
            data["database_url"] = env_url

        try:
            return cls(**data)
        except ValueError as e:
            raise ConfigurationError("Invalid configuration", str(e))
