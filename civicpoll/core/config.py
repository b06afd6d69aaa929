"""Application configuration management."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # JWT Configuration (no fallback secret: startup fails when it is missing)
    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Rate limiting
    RATE_LIMIT_WINDOW_SECONDS: int = 900
    RATE_LIMIT_MAX_REQUESTS: int = 100
    AUTH_RATE_LIMIT_MAX_ATTEMPTS: int = 5
    VOTE_RATE_LIMIT_SECONDS: int = 10
    POLL_CREATION_LIMIT_PER_HOUR: int = 5

    # Poll expiry sweep
    POLL_SWEEP_INTERVAL_MINUTES: int = 15
    POLL_SWEEP_ENABLED: bool = True

    # County assigned to registrants and issues that give no location
    DEFAULT_COUNTY_NAME: str = "Nakuru"

    # Environment
    ENVIRONMENT: str = "development"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Refuse to start with an empty or trivially short signing secret."""
        if not v or len(v.strip()) < 16:
            raise ValueError("SECRET_KEY must be set to at least 16 characters")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()


def get_settings() -> Settings:
    return settings
