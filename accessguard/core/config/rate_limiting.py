"""
Rate Limiting Configuration

Per-operation quotas for the shared fixed-window limiter. Every protected
operation is looked up here by its function name, so limits can be adjusted
through the environment (``RATE_LIMITS`` / ``ADMIN_RATE_LIMITS`` as JSON)
without touching the entry points.
"""

import logging
from typing import Dict

from pydantic import Field
from pydantic_settings import BaseSettings

from accessguard.domain.value_objects.rate_limit import IdentifierType, RateLimitQuota

logger = logging.getLogger(__name__)


def _quota(per_minute: int, per_hour: int, identifier_type: str = "user") -> Dict[str, object]:
    return {"per_minute": per_minute, "per_hour": per_hour, "identifier_type": identifier_type}


DEFAULT_RATE_LIMITS: Dict[str, Dict[str, object]] = {
    # Operations served by this package
    "validate-license": _quota(60, 1000),
    "register-session": _quota(10, 100, "ip"),
    "get-user-sessions": _quota(30, 500),
    "revoke-session": _quota(10, 100),
    "admin-get-user-sessions": _quota(30, 500),
    "admin-grant-access": _quota(20, 500),
    "admin-revoke-access": _quota(20, 500),
    "admin-list-entitlements": _quota(30, 500),
    # Other storefront operations sharing the limiter
    "create-checkout": _quota(10, 100),
    "apply-discount": _quota(10, 100),
    "update-payment-method": _quota(10, 100),
    "pause-subscription": _quota(10, 100),
    "extend-subscription": _quota(60, 2000),
    "family-management": _quota(20, 100),
    "sync-stripe-subscriptions": _quota(5, 20),
    "create-stripe-service-product": _quota(20, 200),
    "create-stripe-subscription-product": _quota(20, 200),
    "update-stripe-product": _quota(20, 200),
    "admin-send-email-change": _quota(20, 500),
    "send-support-update": _quota(30, 500),
    "verify-2fa-code": _quota(20, 200, "ip"),
    "verify-email-change": _quota(10, 50, "ip"),
    "translate-product-content": _quota(20, 300, "ip"),
}

DEFAULT_ADMIN_RATE_LIMITS: Dict[str, Dict[str, object]] = {
    "apply-discount": _quota(60, 2000),
}


class RateLimitingSettings(BaseSettings):
    """Configuration for the database-backed rate limiter.

    Attributes:
        RATE_LIMITING_ENABLED: Global kill switch. When false every check allows.
        RATE_LIMIT_FAIL_OPEN: Default store-error policy. True allows requests
            when the window table cannot be read or written.
        RATE_LIMIT_DEFAULT_PER_MINUTE / RATE_LIMIT_DEFAULT_PER_HOUR: Quota for
            function names missing from RATE_LIMITS.
        RATE_LIMITS: Quotas keyed by function name.
        ADMIN_RATE_LIMITS: Elevated quotas applied when the caller is an
            administrator.
    """

    RATE_LIMITING_ENABLED: bool = True
    RATE_LIMIT_FAIL_OPEN: bool = True
    RATE_LIMIT_DEFAULT_PER_MINUTE: int = Field(ge=1, default=20)
    RATE_LIMIT_DEFAULT_PER_HOUR: int = Field(ge=1, default=200)
    RATE_LIMITS: Dict[str, Dict[str, object]] = Field(
        default_factory=lambda: dict(DEFAULT_RATE_LIMITS)
    )
    ADMIN_RATE_LIMITS: Dict[str, Dict[str, object]] = Field(
        default_factory=lambda: dict(DEFAULT_ADMIN_RATE_LIMITS)
    )

    def get_quota(self, function_name: str, is_admin: bool = False) -> RateLimitQuota:
        """Resolve the quota enforced for ``function_name``.

        Args:
            function_name: Name of the protected operation.
            is_admin: Whether the caller holds the admin role.

        Returns:
            RateLimitQuota: The admin quota when one is declared and the caller
            is an admin, otherwise the regular or default quota.
        """
        raw = None
        if is_admin:
            raw = self.ADMIN_RATE_LIMITS.get(function_name)
        if raw is None:
            raw = self.RATE_LIMITS.get(function_name)
        if raw is None:
            logger.debug(f"No quota configured for {function_name}, using defaults")
            return RateLimitQuota(
                per_minute=self.RATE_LIMIT_DEFAULT_PER_MINUTE,
                per_hour=self.RATE_LIMIT_DEFAULT_PER_HOUR,
            )
        return RateLimitQuota(
            per_minute=int(raw["per_minute"]),
            per_hour=int(raw["per_hour"]),
            identifier_type=IdentifierType(raw.get("identifier_type", "user")),
        )
