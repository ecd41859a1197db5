from .credential import (
    CredentialVerifier,
    JWTCredentialVerifier,
    VerifiedCredential,
    digest_credential,
)
from .session import SessionService, SessionValidator, ValidatedSession

__all__ = [
    "CredentialVerifier",
    "JWTCredentialVerifier",
    "SessionService",
    "SessionValidator",
    "ValidatedSession",
    "VerifiedCredential",
    "digest_credential",
]
