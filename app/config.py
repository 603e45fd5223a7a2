"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="Medblog API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")
    app_url: str = Field(default="http://localhost:3000", alias="APP_URL")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")

    # Identity provider
    auth_provider: Literal["firebase", "local"] = Field(default="firebase", alias="AUTH_PROVIDER")

    # Firebase
    firebase_credentials_path: str | None = Field(
        default=None,
        alias="FIREBASE_CREDENTIALS_PATH",
        description="Path to Firebase service account JSON file",
    )

    firebase_config_json: str | None = Field(
        default=None,
        alias="FIREBASE_CONFIG_JSON",
        description="Raw JSON string of the Firebase service account",
    )

    # Locally issued tokens (AUTH_PROVIDER=local)
    jwt_secret_key: str = Field(
        default="dev-secret-change-me-dev-secret-change-me", alias="JWT_SECRET_KEY"
    )
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Accounts registered with this address become admins
    admin_email: str | None = Field(default=None, alias="ADMIN_EMAIL")

    # Email
    email_provider: Literal["sendgrid", "log"] = Field(default="log", alias="EMAIL_PROVIDER")
    sendgrid_api_key: str | None = Field(default=None, alias="SENDGRID_API_KEY")
    sendgrid_from_email: str = Field(default="noreply@medblog.local", alias="SENDGRID_FROM_EMAIL")
    email_from_name: str = Field(default="Medblog", alias="EMAIL_FROM_NAME")

    # Timeouts for calls to external services
    identity_timeout_seconds: float = Field(default=5.0, alias="IDENTITY_TIMEOUT_SECONDS")
    database_timeout_seconds: float = Field(default=5.0, alias="DATABASE_TIMEOUT_SECONDS")
    notification_timeout_seconds: float = Field(default=10.0, alias="NOTIFICATION_TIMEOUT_SECONDS")

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Rate Limiting
    rate_limit_max_requests: int = Field(default=100, alias="RATE_LIMIT_MAX_REQUESTS")
    # 15 minutes
    rate_limit_window_ms: int = Field(default=900_000, alias="RATE_LIMIT_WINDOW_MS")
    admin_rate_limit_max_requests: int = Field(default=30, alias="ADMIN_RATE_LIMIT_MAX_REQUESTS")
    admin_rate_limit_window_ms: int = Field(default=60_000, alias="ADMIN_RATE_LIMIT_WINDOW_MS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
