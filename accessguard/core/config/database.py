"""
Database connection settings.
"""
import logging

from pydantic import Field, SecretStr, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class DatabaseSettings(BaseSettings):
    """
    Defines settings for connecting to the shared PostgreSQL store.

    Every function instance talks to the same database; it is the only
    coordination point for rate-limit windows and session records.

    Performance Note:
        - POSTGRES_POOL_SIZE and POSTGRES_MAX_OVERFLOW bound the number of
          connections each instance holds.
        - POSTGRES_POOL_TIMEOUT bounds how long a request waits for a connection,
          which keeps every store round-trip short.
    """
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = SecretStr("postgres")
    POSTGRES_DB: str = "accessguard"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = Field(ge=1, le=65535, default=5432)
    POSTGRES_POOL_SIZE: int = Field(ge=1, default=10)
    POSTGRES_MAX_OVERFLOW: int = Field(ge=0, default=20)
    POSTGRES_POOL_TIMEOUT: float = Field(ge=1.0, default=5.0)
    DATABASE_ECHO: bool = False
    DATABASE_URL: str = ""

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def assemble_db_url(cls, v: str | None, info: ValidationInfo) -> str:
        """
        Assembles the database connection URL if not provided explicitly.

        Args:
            v: Explicitly provided URL or None.
            info: Validation context with other field values.

        Returns:
            Assembled or provided database URL.
        """
        if v:
            return v

        values = info.data
        password = values.get("POSTGRES_PASSWORD")
        if not password:
            logger.warning("POSTGRES_PASSWORD not set during DATABASE_URL assembly.")
        secret = password.get_secret_value() if isinstance(password, SecretStr) else password

        url = (
            f"postgresql+asyncpg://{values.get('POSTGRES_USER')}:"
            f"{secret}@{values.get('POSTGRES_HOST')}:"
            f"{values.get('POSTGRES_PORT')}/{values.get('POSTGRES_DB')}"
        )
        logger.debug("Assembled DATABASE_URL (password masked for security).")
        return url
