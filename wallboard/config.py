from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Outside production the app runs against a local SQLite file; in
    production DATABASE_URL must point at the real database.
    """

    # env_file is only used as fallback, env vars take precedence
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    APP_ENV: str = "development"

    # Database Configuration
    DATABASE_URL: Optional[str] = None
    DEV_DATABASE_URL: str = "sqlite:///./wall.db"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Server Configuration
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

    @property
    def database_url(self) -> str:
        """
        Resolve the database URL for the current environment.

        Raises:
            ValueError: if running in production without DATABASE_URL
        """
        if not self.is_production:
            return self.DEV_DATABASE_URL
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL must be set when APP_ENV=production")
        # Heroku still hands out the legacy scheme SQLAlchemy no longer accepts
        if self.DATABASE_URL.startswith("postgres://"):
            return "postgresql://" + self.DATABASE_URL[len("postgres://"):]
        return self.DATABASE_URL

    @property
    def sql_debug(self) -> bool:
        return not self.is_production and self.LOG_LEVEL.upper() == "DEBUG"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every request.
    """
    return Settings()
