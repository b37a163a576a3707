"""
Configuration management for Cascade based on Pydantic Settings.

Supported sources:
- Environment variables (CASCADE_DB_*, CASCADE_LOG_*)
- .env files
- YAML configuration files
- CLI arguments override (applied by the caller)
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from cascade.core.exceptions import ConfigurationError

DEFAULT_DB_PATH = Path.home() / ".cascade" / "cascade.db"


class DatabaseConfig(BaseSettings):
    """SQLite task store settings."""

    path: str = Field(default=str(DEFAULT_DB_PATH), description="Path to the SQLite database")
    max_connections: int = Field(default=5, ge=1, description="Connection pool size")
    echo: bool = Field(default=False, description="Echo SQL statements (debugging)")

    @field_validator("path")
    @classmethod
    def expand_path(cls, v: str) -> str:
        """Expand ~ so the pool receives an absolute location."""
        if v == ":memory:":
            return v
        return str(Path(v).expanduser())

    model_config = {"env_prefix": "CASCADE_DB_"}


class LoggingConfig(BaseSettings):
    """Structured logging settings."""

    level: str = Field(default="WARNING", description="Logging level")
    format: str = Field(default="console", description="Renderer: console or json")
    include_timestamps: bool = Field(default=True, description="Add ISO timestamps")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in {"console", "json"}:
            raise ValueError(f"Unknown log format: {v}")
        return fmt

    model_config = {"env_prefix": "CASCADE_LOG_"}


class CascadeConfig(BaseSettings):
    """Main Cascade configuration."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "CascadeConfig":
        """Load configuration from a YAML file."""
        import yaml

        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {yaml_path}", config_file=str(yaml_path)
            )

        try:
            with open(yaml_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", config_file=str(yaml_path)) from e

        if not isinstance(config_data, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping", config_file=str(yaml_path)
            )

        try:
            return cls(**config_data)
        except ValidationError as e:
            raise ConfigurationError(str(e), config_file=str(yaml_path)) from e

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "CascadeConfig":
        """Load configuration from environment variables and an optional .env file."""
        from dotenv import load_dotenv

        env_path = Path(env_file) if env_file else Path(".env")
        if env_path.exists():
            load_dotenv(env_path)

        try:
            return cls()
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a dictionary."""
        return self.model_dump()

    model_config = {
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }
