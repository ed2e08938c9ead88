"""Core configuration settings - logging, translator and upstream transport."""

from pydantic import BaseModel, Field, SecretStr, field_validator


# === Logging Configuration ===


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    format: str = Field(
        default="auto",
        description="Logging output format: 'rich' for terminals, 'json' for machines, 'auto' to pick by TTY",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        upper_v = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @field_validator("format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate and normalize log format."""
        lower_v = v.lower()
        valid_formats = ["auto", "rich", "json"]
        if lower_v not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return lower_v


# === Translator Configuration ===


class TranslatorSettings(BaseModel):
    """Stream translator configuration settings."""

    thinking_signature: str = Field(
        default="openrouter-reasoning",
        description="Placeholder signature attached to emitted thinking blocks",
    )

    message_id_prefix: str = Field(
        default="msg_",
        description="Prefix of generated message identifiers",
    )

    read_chunk_size: int = Field(
        default=65536,
        description="Block size in bytes used when the CLI reads capture files",
        ge=1,
    )


# === Upstream Transport Configuration ===


class UpstreamSettings(BaseModel):
    """Upstream OpenAI-compatible endpoint settings."""

    base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="Base URL of the OpenAI-compatible API (without /chat/completions)",
    )

    api_key: SecretStr | None = Field(
        default=None,
        description="Bearer token sent to the upstream endpoint",
    )

    timeout: float = Field(
        default=240.0,
        description="Read timeout in seconds (long for streaming)",
        gt=0,
    )

    connect_timeout: float = Field(
        default=10.0,
        description="Connection timeout in seconds",
        gt=0,
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")
