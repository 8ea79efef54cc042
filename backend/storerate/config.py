"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Store Rating API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = ["*"]

    # PostgreSQL
    postgres_host: str = "postgres"
    postgres_port: int = 5432
    postgres_user: str = "storerate"
    postgres_password: str = "storerate_secret"
    postgres_db: str = "storerate"
    postgres_url: str = ""  # Full URL override (for external managed PG with SSL)
    db_pool_size: int = 10
    db_echo: bool = False

    @property
    def database_url(self) -> str:
        """Get PostgreSQL connection URL.

        If POSTGRES_URL is set, use it directly (e.g. managed DB with SSL).
        Otherwise, construct from individual POSTGRES_* parts.
        """
        if self.postgres_url:
            return self.postgres_url
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Security
    secret_key: str = "your-secret-key-change-in-production"
    access_token_expire_minutes: int = 120
    refresh_token_expire_days: int = 7
    bcrypt_rounds: int = 12

    # Bootstrap administrator
    admin_name: str = "System Administrator Account"
    admin_email: str = "admin@storerate.com"
    admin_password: str = "Admin@123"
    admin_address: str = "123 Admin Street, Admin City, AC 12345"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
