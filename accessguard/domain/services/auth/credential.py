import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from jwt import PyJWTError
from jwt import decode as jwt_decode
from structlog import get_logger

from accessguard.core.exceptions import InvalidCredentialError

logger = get_logger(__name__)


def digest_credential(credential: str) -> str:
    """SHA-256 hex digest under which a bearer credential is stored."""
    return hashlib.sha256(credential.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class VerifiedCredential:
    """Claims of a bearer credential whose signature and expiry were checked.

    Attributes:
        user_id: The ``sub`` claim.
        expires_at: The ``exp`` claim as an aware UTC datetime.
        claims: All decoded claims.
    """

    user_id: str
    expires_at: datetime
    claims: Mapping[str, Any] = field(default_factory=dict)


class CredentialVerifier(ABC):
    """Checks a bearer credential against the identity provider's rules."""

    @abstractmethod
    def verify(self, credential: str) -> VerifiedCredential:
        """Raises:
            InvalidCredentialError: If the credential is missing, malformed,
                badly signed, expired or issued for another audience.
        """
        raise NotImplementedError


class JWTCredentialVerifier(CredentialVerifier):
    """Verifies HS256 JWTs issued by the hosted identity provider with PyJWT."""

    def __init__(
        self,
        secret: str,
        algorithms: Sequence[str] = ("HS256",),
        audience: Optional[str] = "authenticated",
        issuer: Optional[str] = None,
        leeway: int = 0,
    ):
        self._secret = secret
        self._algorithms = list(algorithms)
        self._audience = audience or None
        self._issuer = issuer or None
        self._leeway = leeway

    def verify(self, credential: str) -> VerifiedCredential:
        if not credential:
            raise InvalidCredentialError("Missing credential")
        if not self._secret:
            logger.error("credential_secret_not_configured")
            raise InvalidCredentialError()

        try:
            claims = jwt_decode(
                credential,
                self._secret,
                algorithms=self._algorithms,
                audience=self._audience,
                issuer=self._issuer,
                leeway=self._leeway,
                options={"require": ["exp", "sub"], "verify_aud": self._audience is not None},
            )
        except PyJWTError as exc:
            logger.info("credential_rejected", error_type=type(exc).__name__)
            raise InvalidCredentialError() from exc

        user_id = str(claims.get("sub") or "")
        if not user_id:
            raise InvalidCredentialError("Credential has no subject")

        expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
        return VerifiedCredential(user_id=user_id, expires_at=expires_at, claims=claims)
