from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load variables from .env if present
load_dotenv()

class Settings(BaseSettings):
    """Project configuration loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="",
        extra="ignore",  # Ignore unknown env keys (e.g., API_PORT)
        populate_by_name=True,
    )

    # Database settings with aliases for UPPERCASE env vars
    postgres_dsn: str | None = Field(None, alias="POSTGRES_DSN")
    postgres_host: str = Field("localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(5432, alias="POSTGRES_PORT")
    postgres_db: str = Field("affiliate", alias="POSTGRES_DB")
    postgres_user: str = Field("affiliate", alias="POSTGRES_USER")
    postgres_password: str = Field("affiliate", alias="POSTGRES_PASSWORD")
    db_echo: bool = Field(False, alias="DB_ECHO")
    auto_create_schema: bool = Field(True, alias="AUTO_CREATE_SCHEMA")

    # Auth
    secret_key: str = Field("change-me-in-production", alias="SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(7 * 24 * 60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Ledger policy
    min_payout_amount: Decimal = Field(Decimal("10.00"), alias="MIN_PAYOUT_AMOUNT")
    analytics_days: int = Field(7, alias="ANALYTICS_DAYS", ge=1, le=365)
    leaderboard_limit: int = Field(10, alias="LEADERBOARD_LIMIT", ge=1)
    product_stats_limit: int = Field(5, alias="PRODUCT_STATS_LIMIT", ge=1)
    recent_conversions_limit: int = Field(100, alias="RECENT_CONVERSIONS_LIMIT", ge=1)

    # Default admin, created on startup when email and password are both set
    admin_default_email: str | None = Field(None, alias="ADMIN_DEFAULT_EMAIL")
    admin_default_password: str | None = Field(None, alias="ADMIN_DEFAULT_PASSWORD")
    admin_default_name: str = Field("Admin", alias="ADMIN_DEFAULT_NAME")

    cors_origins: str = Field("*", alias="CORS_ORIGINS")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @property
    def database_url(self) -> str:
        """Construct database URL from components or use DSN if provided."""
        if self.postgres_dsn:
            return self.postgres_dsn
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def cors_origin_list(self) -> list[str]:
        """CORS_ORIGINS is a comma-separated list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @model_validator(mode='after')
    def validate_database_config(self) -> 'Settings':
        """Validate database configuration."""
        if not self.postgres_dsn and not all([
            self.postgres_host,
            self.postgres_port,
            self.postgres_db,
            self.postgres_user,
            self.postgres_password
        ]):
            raise ValueError(
                "Either POSTGRES_DSN or all database connection parameters must be provided"
            )
        if self.min_payout_amount <= 0:
            raise ValueError("MIN_PAYOUT_AMOUNT must be positive")
        return self

@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
