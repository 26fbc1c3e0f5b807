"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with DOGAPI_ prefix
(and an optional .env file in the working directory).

Learn: pydantic-settings auto-loads from environment, validates types,
provides defaults. The settings object is built once at import time and
treated as read-only for the life of the process.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via DOGAPI_* env vars."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./dogapi.db"
    auto_create_schema: bool = True  # create_all at startup (dev); use Alembic in prod

    # Auth
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60  # 0 = tokens never expire
    bcrypt_rounds: int = 10

    # Uploads
    upload_dir: str = "uploads"
    max_upload_bytes: int = 10 * 1024 * 1024  # 10MB
    max_page_size: int = 100

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    model_config = {"env_prefix": "DOGAPI_", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure sensitive defaults are changed in non-development environments."""
        if (
            self.environment != "development"
            and self.jwt_secret == "change-me-in-production"
        ):
            raise ValueError(
                "DOGAPI_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self


# Singleton, import this everywhere
settings = Settings()
