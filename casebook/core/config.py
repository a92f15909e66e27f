"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Configuration management for Casebook.

This module holds the settings for logging, export and import. Every configuration
class can be built from ``CASEBOOK_*`` environment variables with ``from_env``.
"""

import logging
import os
from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator

from casebook import __version__

logger = logging.getLogger(__name__)


def _env_flag(value: str) -> bool:
    return str(value).lower() in ("1", "true", "yes", "on")


class BaseConfig(BaseModel):
    """Base configuration class with common functionality."""

    ENV_PREFIX: ClassVar[str] = "CASEBOOK_"

    @classmethod
    def from_env(cls, **overrides):
        """
        Create a configuration instance from environment variables.

        Args:
        ----
            **overrides: Key-value pairs that override environment variables

        """
        raise NotImplementedError("Subclasses must implement from_env method")

    @classmethod
    def get_env_var(cls, key: str, default: Any = None) -> Any:
        """
        Get an environment variable with the class prefix.

        Args:
        ----
            key: Key name without prefix
            default: Default value if environment variable is not found

        """
        env_key = f"{cls.ENV_PREFIX}{key.upper()}"
        return os.environ.get(env_key, default)


class LoggingConfig(BaseConfig):
    """Configuration for logging settings."""

    level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    use_rich: bool = Field(
        default=True,
        description="Whether to use rich for console log formatting",
    )
    log_file: str | None = Field(
        default=None,
        description="Path to the log file (None for console-only logging)",
    )
    json_format: bool = Field(
        default=False,
        description="Whether to use JSON format for logs",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, value):
        """Validate that the log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        value = value.upper()
        if value not in valid_levels:
            logger.warning(f"Invalid log level '{value}', defaulting to INFO")
            return "INFO"
        return value

    @classmethod
    def from_env(cls, **overrides) -> "LoggingConfig":
        """Create a logging configuration from environment variables."""
        config = {
            "level": cls.get_env_var("LOG_LEVEL", "INFO"),
            "use_rich": _env_flag(cls.get_env_var("LOG_USE_RICH", "true")),
            "log_file": cls.get_env_var("LOG_FILE", None),
            "json_format": _env_flag(cls.get_env_var("LOG_JSON", "false")),
        }
        config.update(overrides)
        return cls(**config)

    def get_log_level_int(self) -> int:
        """Get the numeric logging level."""
        return getattr(logging, self.level)

    def configure_logging(self, debug: bool = False) -> None:
        """
        Configure logging based on the settings.

        Args:
        ----
            debug: Whether to force debug mode

        """
        from casebook.core.logging import configure_logging

        configure_logging(
            level=self.get_log_level_int(),
            log_file=self.log_file,
            json_format=self.json_format,
            use_rich=self.use_rich,
            debug=debug,
        )


class ExportConfig(BaseConfig):
    """Configuration for canonical, backup and Allure exports."""

    allure_namespace: str = Field(
        default="TestClass",
        description="Prefix joined to the test case name to build the Allure fullName",
    )
    backup_version: str = Field(
        default="1.0",
        description="Version tag written into backup files",
    )
    json_indent: int = Field(
        default=2,
        ge=0,
        description="Indentation of exported JSON documents",
    )
    max_step_duration_ms: int = Field(
        default=1000,
        ge=0,
        description="Upper bound of the synthesized duration of an Allure step",
    )
    max_result_duration_ms: int = Field(
        default=5000,
        ge=0,
        description="Upper bound of the synthesized duration of an Allure result",
    )
    compression_level: int = Field(
        default=6,
        ge=0,
        le=9,
        description="Deflate compression level for zip bundles",
    )

    @classmethod
    def from_env(cls, **overrides) -> "ExportConfig":
        """Create an export configuration from environment variables."""
        config = {
            "allure_namespace": cls.get_env_var("ALLURE_NAMESPACE", "TestClass"),
            "json_indent": int(cls.get_env_var("JSON_INDENT", "2")),
            "max_step_duration_ms": int(cls.get_env_var("MAX_STEP_DURATION_MS", "1000")),
            "max_result_duration_ms": int(cls.get_env_var("MAX_RESULT_DURATION_MS", "5000")),
            "compression_level": int(cls.get_env_var("COMPRESSION_LEVEL", "6")),
        }
        config.update(overrides)
        return cls(**config)


class ImportConfig(BaseConfig):
    """Configuration for the import reconciler."""

    overwrite: bool = Field(
        default=False,
        description="Replace test cases whose name already exists",
    )
    json_extension: str = Field(
        default=".json",
        description="Archive entries with this suffix are imported; others are ignored",
    )

    @classmethod
    def from_env(cls, **overrides) -> "ImportConfig":
        """Create an import configuration from environment variables."""
        config = {
            "overwrite": _env_flag(cls.get_env_var("IMPORT_OVERWRITE", "false")),
            "json_extension": cls.get_env_var("IMPORT_EXTENSION", ".json"),
        }
        config.update(overrides)
        return cls(**config)


class AppConfig(BaseConfig):
    """Main application configuration that aggregates all other configurations."""

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )
    export: ExportConfig = Field(
        default_factory=ExportConfig,
        description="Export configuration",
    )
    importing: ImportConfig = Field(
        default_factory=ImportConfig,
        description="Import configuration",
    )
    debug: bool = Field(
        default=False,
        description="Debug mode flag",
    )
    app_name: str = Field(
        default="Casebook",
        description="Application name",
    )
    app_version: str = Field(
        default=__version__,
        description="Application version",
    )

    @classmethod
    def from_env(cls, **overrides) -> "AppConfig":
        """Create an application configuration from environment variables."""
        config = {
            "logging": LoggingConfig.from_env(),
            "export": ExportConfig.from_env(),
            "importing": ImportConfig.from_env(),
            "debug": _env_flag(cls.get_env_var("DEBUG", "false")),
            "app_name": cls.get_env_var("APP_NAME", "Casebook"),
            "app_version": cls.get_env_var("APP_VERSION", __version__),
        }
        config.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**config)

    def configure_logging(self) -> None:
        """Configure logging based on the settings."""
        self.logging.configure_logging(debug=self.debug)


_app_config = None


def get_app_config() -> AppConfig:
    """
    Get the global application configuration.

    Returns
    -------
        The application configuration instance

    """
    global _app_config
    if _app_config is None:
        _app_config = AppConfig.from_env()
    return _app_config


def init_app_config(config: AppConfig | None = None, **kwargs) -> AppConfig:
    """
    Initialize the global application configuration.

    Args:
    ----
        config: An existing AppConfig instance
        **kwargs: Key-value pairs for creating a new AppConfig

    """
    global _app_config
    _app_config = config if config is not None else AppConfig.from_env(**kwargs)
    return _app_config
