"""Credential and session settings.
"""

import logging

from pydantic import SecretStr
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class AuthSettings(BaseSettings):
    """Defines how bearer credentials issued by the hosted identity provider are
    verified and how their session records are kept.

    Security Note:
        - JWT_SECRET is the identity provider's signing secret. It must never be
          logged or committed.
        - SESSION_FAIL_OPEN trusts a cryptographically valid credential when the
          session table cannot be reached. Turn it off for deployments where
          revocation must win over availability.
    """

    JWT_SECRET: SecretStr = SecretStr("")
    JWT_ALGORITHMS: list[str] = ["HS256"]
    JWT_AUDIENCE: str = "authenticated"
    JWT_ISSUER: str = ""
    JWT_LEEWAY_SECONDS: int = 0

    SESSION_FAIL_OPEN: bool = True
    SESSION_TOUCH_ON_ACCESS: bool = True
