"""Server settings."""

from typing import Annotated, Any

from pydantic import Field, PositiveFloat, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nocodb_mcp.utilities.logging import LogLevel, redact_sensitive_data


class Settings(BaseSettings):
    """NocoDB MCP server settings.

    Every setting can be supplied through an environment variable of the
    same name (case-insensitive) or a ``.env`` file, for example
    ``NOCODB_URL=https://app.nocodb.com`` or ``PORT=8080``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # NocoDB backend
    nocodb_url: str
    nocodb_api_token: str
    nocodb_base_id: str
    backend_timeout: PositiveFloat = 30.0

    # Server settings
    log_level: LogLevel = "INFO"

    # HTTP settings
    host: str = "0.0.0.0"
    port: Annotated[int, Field(ge=0, le=65535)] = 3000
    sse_path: str = "/sse"
    message_path: str = "/messages"
    max_body_bytes: PositiveInt = 1_000_000
    cors_allow_origins: list[str] = ["*"]

    # Session settings
    keepalive_interval: PositiveFloat = 25.0
    """Seconds between keep-alive comment frames on every open stream."""

    @field_validator("nocodb_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("nocodb_url must not be empty")
        return value

    @field_validator("nocodb_api_token", "nocodb_base_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("sse_path", "message_path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        return value if value.startswith("/") else f"/{value}"

    def redacted(self) -> dict[str, Any]:
        """Settings as a dict safe to log."""
        return dict(redact_sensitive_data(self.model_dump()) or {})
