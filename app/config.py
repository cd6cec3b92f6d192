"""
Application configuration with Pydantic Settings for validation and type safety.
Supports environment-specific configurations and .env file loading.
"""

from enum import Enum
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Environment(str, Enum):
    """Application environment types"""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class StorageBackend(str, Enum):
    """Persistence engines the repositories can run against"""

    SQL = "sql"
    MONGO = "mongo"


class Settings(BaseSettings):
    """
    Application settings with validation.
    Settings are loaded from environment variables or .env file.
    """

    # Application settings
    app_name: str = Field(default="MealBridge", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, ge=1, le=65535, description="Server port")
    base_url: str = Field(
        default="", description="Public URL of this service (OAuth redirect target)"
    )

    # Fitbit settings
    fitbit_client_id: str = Field(default="", description="Fitbit OAuth client id")
    fitbit_client_secret: str = Field(
        default="", description="Fitbit OAuth client secret"
    )
    fitbit_api_base: str = Field(
        default="https://api.fitbit.com", description="Fitbit Web API base URL"
    )
    fitbit_auth_base: str = Field(
        default="https://www.fitbit.com", description="Fitbit consent screen base URL"
    )
    fitbit_scopes: str = Field(
        default="nutrition profile", description="Space separated OAuth scopes"
    )
    upstream_timeout_sec: float = Field(
        default=30.0, gt=0, description="Timeout for calls to Fitbit"
    )

    # API key gate
    api_key: str = Field(default="", description="Pre-shared secret for API callers")
    api_key_header: str = Field(
        default="X-API-Key", description="Header carrying the API key"
    )

    # Idempotency
    idempotency_lease_sec: int = Field(
        default=300,
        ge=1,
        description="Age after which an unfinished idempotency reservation is taken over",
    )

    # Storage settings
    storage_backend: StorageBackend = Field(
        default=StorageBackend.SQL, description="Which storage engine to use"
    )
    database_url: str = Field(
        default="sqlite:///./app.db", description="SQLAlchemy connection URL"
    )
    db_echo: bool = Field(default=False, description="SQLAlchemy echo SQL statements")
    db_init_attempts: int = Field(
        default=5, ge=1, description="Database initialization retry attempts"
    )
    db_init_delay_sec: float = Field(
        default=2.0, ge=0, description="Delay between DB init attempts"
    )

    # MongoDB settings
    mongo_uri: str = Field(
        default="mongodb://localhost:27017", description="MongoDB connection URI"
    )
    mongo_db_name: str = Field(default="mealbridge", description="MongoDB database name")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Log format string",
    )

    # CORS settings
    cors_origins: List[str] = Field(default=["*"], description="Allowed CORS origins")
    cors_allow_credentials: bool = Field(
        default=False, description="Allow CORS credentials"
    )
    cors_allow_methods: List[str] = Field(
        default=["*"], description="Allowed HTTP methods"
    )
    cors_allow_headers: List[str] = Field(
        default=["*"], description="Allowed HTTP headers"
    )

    # API settings
    api_prefix: str = Field(default="", description="API route prefix")
    api_title: str = Field(
        default="Fitbit Meal Logger API", description="API documentation title"
    )
    api_description: str = Field(
        default="Strict API for logging meals to Fitbit on behalf of an agent",
        description="API documentation description",
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Validate and normalize environment value"""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @field_validator("storage_backend", mode="before")
    @classmethod
    def validate_storage_backend(cls, v):
        if isinstance(v, str):
            return StorageBackend(v.lower())
        return v

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def redirect_uri(self) -> str:
        """OAuth callback registered with Fitbit"""
        return f"{self.base_url}{self.api_prefix}/auth/callback"

    def missing_required(self) -> List[str]:
        """Names of required settings that are still empty"""
        required = {
            "BASE_URL": self.base_url,
            "FITBIT_CLIENT_ID": self.fitbit_client_id,
            "FITBIT_CLIENT_SECRET": self.fitbit_client_secret,
            "API_KEY": self.api_key,
        }
        return [name for name, value in required.items() if not value]

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment == Environment.DEVELOPMENT

    def is_testing(self) -> bool:
        """Check if running in testing environment"""
        return self.environment == Environment.TESTING


# Global settings instance
settings = Settings()
