"""
Application-specific settings.
"""
from typing import List, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """
    Defines application-wide settings like project name, environment and logging.

    Security Note:
        - Ensure ALLOWED_ORIGINS is explicitly set to trusted domains in production
          to prevent unauthorized cross-origin requests.
        - TRUST_PROXY_HEADERS must only be enabled when the service sits behind a
          proxy that overwrites X-Forwarded-For; otherwise callers can choose the
          IP their rate limit is tracked against.
    """
    PROJECT_NAME: str = "accessguard"
    VERSION: str = "0.1.0"
    APP_ENV: str = "development"
    DEBUG: bool = False

    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_WORKERS: int = Field(ge=1, default=1)
    API_V1_PREFIX: str = "/api/v1"

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    ALLOWED_ORIGINS: Union[str, List[str]] = Field(default="http://localhost")
    TRUST_PROXY_HEADERS: bool = True

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """
        Splits a comma-separated string of origins into a list.

        Args:
            v: Input value as a string or list of origins.

        Returns:
            List of stripped origin strings.
        """
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v
