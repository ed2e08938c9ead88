import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ccrouter.core.errors import ConfigurationError

from .core import LoggingSettings, TranslatorSettings, UpstreamSettings


__all__ = ["Settings", "ConfigurationError", "get_settings", "find_toml_config_file"]


logger = structlog.get_logger(__name__)

ENV_PREFIX = "CCROUTER_"
CONFIG_FILE_ENV = f"{ENV_PREFIX}CONFIG_FILE"
DEFAULT_CONFIG_NAME = "ccrouter.toml"


def find_toml_config_file() -> Path | None:
    """Locate a TOML config file in the current working directory."""
    candidate = Path.cwd() / DEFAULT_CONFIG_NAME
    return candidate if candidate.is_file() else None


class Settings(BaseSettings):
    """
    Configuration settings for ccrouter.

    Settings are loaded from environment variables, .env files, and TOML configuration files.
    Environment variables take precedence over TOML values. The TOML file is taken from:
    1. the explicit path passed to from_config()
    2. the CCROUTER_CONFIG_FILE environment variable
    3. ccrouter.toml in the current directory
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    translator: TranslatorSettings = Field(
        default_factory=TranslatorSettings,
        description="Stream translator configuration",
    )

    upstream: UpstreamSettings = Field(
        default_factory=UpstreamSettings,
        description="Upstream OpenAI-compatible endpoint configuration",
    )

    def model_dump_safe(self) -> dict[str, Any]:
        """
        Dump model data with sensitive information masked.

        Returns:
            dict: Configuration with sensitive data masked
        """
        return self.model_dump(mode="json")

    @classmethod
    def load_toml_config(cls, toml_path: Path) -> dict[str, Any]:
        """Load configuration from a TOML file."""
        try:
            with toml_path.open("rb") as f:
                return tomllib.load(f)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read TOML config file {toml_path}: {e}"
            ) from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML syntax in {toml_path}: {e}") from e

    @classmethod
    def load_config_file(cls, config_path: Path) -> dict[str, Any]:
        """Load configuration from a file based on its extension."""
        suffix = config_path.suffix.lower()
        if suffix == ".toml":
            return cls.load_toml_config(config_path)
        raise ConfigurationError(
            f"Unsupported config file format: {suffix}. "
            "Only TOML (.toml) files are supported."
        )

    @classmethod
    def from_config(
        cls,
        config_path: Path | str | None = None,
        **kwargs: Any,
    ) -> "Settings":
        """Create Settings from a TOML file, letting environment variables win."""
        if config_path is None:
            config_path_env = os.environ.get(CONFIG_FILE_ENV)
            if config_path_env:
                config_path = Path(config_path_env)

        if isinstance(config_path, str):
            config_path = Path(config_path)

        if config_path is None:
            config_path = find_toml_config_file()

        config_data: dict[str, Any] = {}
        if config_path is not None:
            if not config_path.exists():
                raise ConfigurationError(f"Config file not found: {config_path}")
            config_data = cls.load_config_file(config_path)
            logger.info("config_file_loaded", path=str(config_path))

        settings = cls()

        for key, value in config_data.items():
            if not hasattr(settings, key):
                logger.warning("config_key_ignored", key=key)
                continue
            current = getattr(settings, key)
            if isinstance(current, BaseModel) and isinstance(value, dict):
                merged = current.model_dump()
                for nested_key, nested_value in value.items():
                    env_key = f"{ENV_PREFIX}{key.upper()}__{nested_key.upper()}"
                    if os.getenv(env_key) is None:
                        merged[nested_key] = nested_value
                setattr(settings, key, type(current).model_validate(merged))

        # overrides go through the section validators, like TOML values
        for key, value in kwargs.items():
            current = getattr(settings, key, None)
            if isinstance(current, BaseModel) and isinstance(value, dict):
                value = type(current).model_validate({**current.model_dump(), **value})
            setattr(settings, key, value)

        return settings


@lru_cache
def get_settings() -> Settings:
    """Get the cached default settings instance."""
    return Settings.from_config()
