"""Application configuration management."""
from pydantic import model_validator, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from functools import lru_cache
from sqlalchemy.engine.url import make_url, URL
from typing import Annotated, Optional
import logging

SQLITE_LOCAL_URL = "sqlite+aiosqlite:///./survetic.db"
DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = SQLITE_LOCAL_URL
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Application
    environment: str = "development"
    app_base_url: str = "http://localhost:5000"
    allowed_origins: Annotated[list[str], NoDecode] = ["http://localhost:5173", "http://localhost:5000"]

    # Tokens
    secret_key: str = DEFAULT_SECRET_KEY
    jwt_algorithm: str = "HS256"  # Use HS256 for symmetric signing
    access_token_exp_minutes: int = 120  # Access tokens valid for 2 hours
    refresh_token_exp_days: int = 7  # Matches the legacy one-week session lifetime
    access_token_cookie_name: str = "survetic_access_token"
    refresh_token_cookie_name: str = "survetic_refresh_token"

    # Passwords
    bcrypt_rounds: int = 12
    password_min_length: int = 6

    # Email (Resend HTTP API)
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com"
    email_from: str = "Survetic <noreply@survetic.com>"
    email_timeout_seconds: float = 10.0
    email_test_domains: Annotated[set[str], NoDecode] = {"example.com", "test.com", "localhost", "demo.com"}

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value):
        """Parse comma-separated origins from environment variables."""
        if value is None:
            return cls.model_fields["allowed_origins"].default
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("email_test_domains", mode="before")
    @classmethod
    def parse_email_test_domains(cls, value):
        """Parse comma-separated test domains from environment variables."""
        if value is None:
            return cls.model_fields["email_test_domains"].default
        if isinstance(value, str):
            items = [item.strip().lower().lstrip("@") for item in value.split(",") if item.strip()]
        elif isinstance(value, (list, tuple, set)):
            items = [str(item).strip().lower().lstrip("@") for item in value if str(item).strip()]
        else:
            raise TypeError("email_test_domains must be provided as a string or sequence")
        return set(items)

    def is_test_email(self, email: str | None) -> bool:
        """Return True when the address belongs to a domain that never receives real mail."""
        if not email or "@" not in email:
            return False
        domain = email.strip().lower().rsplit("@", 1)[1]
        return domain in self.email_test_domains

    @model_validator(mode="after")
    def validate_all_config(self):
        """Validate security configuration and normalize Postgres URLs."""
        logger = logging.getLogger(__name__)

        # Security validation
        if self.environment == "production":
            if self.secret_key == DEFAULT_SECRET_KEY:
                raise ValueError("secret_key must be changed from default value in production")

        # Validate JWT algorithm
        if self.jwt_algorithm not in ["HS256", "HS384", "HS512"]:
            raise ValueError(f"Unsupported JWT algorithm: {self.jwt_algorithm}. Use HS256, HS384, or HS512.")

        # Validate token expiration times
        if self.access_token_exp_minutes < 1 or self.access_token_exp_minutes > 1440:  # 1 min to 24 hours
            raise ValueError("access_token_exp_minutes must be between 1 and 1440 (24 hours)")

        if self.refresh_token_exp_days < 1 or self.refresh_token_exp_days > 365:
            raise ValueError("refresh_token_exp_days must be between 1 and 365 days")

        # bcrypt accepts 4..31; anything below 10 is too cheap for stored credentials
        if self.bcrypt_rounds < 10 or self.bcrypt_rounds > 15:
            raise ValueError("bcrypt_rounds must be between 10 and 15")

        if self.password_min_length < 1:
            raise ValueError("password_min_length must be at least 1")

        # Database URL normalization
        url = self.database_url
        if not url:
            logger.warning("Empty DATABASE_URL, using SQLite fallback")
            self.database_url = SQLITE_LOCAL_URL
            return self

        parsed: Optional[URL] = None
        try:
            parsed = make_url(url)
        except Exception as e:  # pragma: no cover - defensive fallback
            logger.error(f"Failed to parse DATABASE_URL: {e}")
            self.database_url = SQLITE_LOCAL_URL
            return self

        drivername = parsed.drivername
        if drivername.startswith("postgres") and "+asyncpg" not in drivername:
            old_drivername = drivername
            parsed = parsed.set(drivername="postgresql+asyncpg")
            logger.info(f"Driver normalized: {old_drivername} -> {parsed.drivername}")

        # Use render_as_string to properly re-encode special characters in password
        self.database_url = parsed.render_as_string(hide_password=False)
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
