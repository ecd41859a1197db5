"""Main application settings and configuration management.

This module composes all the application settings from the different modules
(app, database, auth, rate limiting, entitlements) into a single, accessible
`Settings` class.

It loads settings from environment variables and .env files, validates them,
and provides a single `settings` object for use throughout the application.

Environment Support:
- Development: Uses .env
- Test: Uses .env.test when present
- Staging / Production: Uses .env.staging / .env.production; JWT_SECRET required
"""

import logging
import os
from pathlib import Path

from pydantic_settings import SettingsConfigDict

from .app import AppSettings
from .auth import AuthSettings
from .database import DatabaseSettings
from .entitlements import EntitlementSettings
from .rate_limiting import RateLimitingSettings

logger = logging.getLogger(__name__)


class Settings(
    AppSettings, DatabaseSettings, AuthSettings, RateLimitingSettings, EntitlementSettings
):
    """The main settings class that aggregates all application configurations.

    Usage:
        - Access settings via the singleton instance `settings` throughout the application.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="allow"
    )

    def validate_required_fields(self) -> None:
        """Validates that security-critical settings are present.

        Missing values are fatal in staging and production and only logged
        elsewhere, so the test suite and local runs work without a full
        environment.

        Raises:
            ValueError: If required fields are missing outside development/test.
        """
        missing_fields = []
        if not self.JWT_SECRET.get_secret_value():
            missing_fields.append("JWT_SECRET")

        if not missing_fields:
            logger.info("All required environment variables are set.")
            return

        error_msg = f"Missing required environment variables: {', '.join(missing_fields)}"
        if self.APP_ENV in ("development", "test"):
            logger.warning(f"{self.APP_ENV} mode: {error_msg}")
        else:
            logger.error(error_msg)
            raise ValueError(error_msg)


def create_settings() -> Settings:
    """Create settings instance with environment-specific configuration.

    Returns:
        Settings: Configured settings instance
    """
    env = os.getenv("APP_ENV", "development")

    env_files = {
        "development": ".env",
        "test": ".env.test",
        "staging": ".env.staging",
        "production": ".env.production",
    }

    env_file = env_files.get(env, ".env")

    if env != "development" and Path(env_file).exists():
        logger.info(f"Loading environment configuration from {env_file}")
        settings_instance = Settings(_env_file=env_file)
    elif Path(".env").exists():
        logger.info(f"Loading environment configuration from .env (environment: {env})")
        settings_instance = Settings()
    else:
        logger.warning(f"No .env file found, using environment variables only (environment: {env})")
        settings_instance = Settings()

    return settings_instance


# Create a singleton instance of the settings to be used across the application.
settings = create_settings()
settings.validate_required_fields()
