"""Configuration management for the SDMS credential authority.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded once at
application startup and is immutable during runtime.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from sdms.core.exceptions import ConfigurationError

MIN_SECRET_BYTES = 32


class Settings(BaseSettings):
    """Application configuration settings.

    The token signing secret, issuer and audience have no defaults: a
    deployment that forgets them fails at startup instead of signing with a
    well-known key.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SDMS_",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application Settings
    app_name: str = "SDMS"
    environment: Literal["development", "production", "testing"] = "development"

    # Database Settings
    database_url: str = "sqlite+aiosqlite:///./sdms_data/sdms.db"
    db_echo: bool = False

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Token Settings
    jwt_secret: str = Field(description="Symmetric key for bearer token signing")
    jwt_issuer: str = Field(description="Issuer claim written into and required on tokens")
    jwt_audience: str = Field(description="Audience claim written into and required on tokens")
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = "HS256"
    access_token_expire_minutes: int = 60

    # Password Reset Settings
    reset_token_expire_hours: int = 24

    # Password Hashing Settings
    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65536  # KiB
    argon2_parallelism: int = 4
    password_min_length: int = 6

    # External Identity Settings
    # Employee needs a startup reference, so it cannot be a default
    external_default_role: Literal["Administrator", "Founder", "User"] = "Founder"
    google_client_ids: Annotated[list[str], NoDecode] = Field(default_factory=list)
    apple_client_ids: Annotated[list[str], NoDecode] = Field(default_factory=list)
    jwks_cache_ttl_seconds: int = 3600

    @field_validator("google_client_ids", "apple_client_ids", mode="before")
    @classmethod
    def parse_client_ids(cls, v: str | list[str]) -> list[str]:
        """Parse client IDs from comma-separated string or list."""
        if isinstance(v, str):
            return [client_id.strip() for client_id in v.split(",") if client_id.strip()]
        return v

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Require at least 256 bits of key material."""
        if len(v.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ValueError(f"jwt_secret must be at least {MIN_SECRET_BYTES} bytes")
        return v

    @field_validator("jwt_issuer", "jwt_audience")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator(
        "access_token_expire_minutes",
        "reset_token_expire_hours",
        "argon2_time_cost",
        "argon2_memory_cost",
        "argon2_parallelism",
        "password_min_length",
        "jwks_cache_ttl_seconds",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"


def load_settings(**overrides: object) -> Settings:
    """Load and validate settings.

    Args:
        **overrides: Explicit values that take precedence over the environment.

    Returns:
        Validated, immutable settings.

    Raises:
        ConfigurationError: If any value is missing or malformed.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in e.errors()})
        raise ConfigurationError(
            f"Invalid or missing configuration: {', '.join(fields)}"
        ) from e


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once at startup; subsequent calls return the same
    instance.

    Returns:
        Settings: Cached application settings instance.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    return load_settings()
