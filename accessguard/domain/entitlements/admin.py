from datetime import datetime
from typing import Callable, List, Optional

from structlog import get_logger

from accessguard.core.exceptions import EntitlementNotFoundError, ValidationError
from accessguard.domain.entities.entitlement import Entitlement, GrantType
from accessguard.domain.interfaces.repositories import IEntitlementRepository
from accessguard.utils.clock import ensure_utc, utc_now

logger = get_logger(__name__)


def entitlement_status(entitlement: Entitlement, now: datetime) -> str:
    """``revoked``, ``expired`` or ``active``, as shown to administrators."""
    if not entitlement.active:
        return "revoked"
    expires_at = ensure_utc(entitlement.expires_at)
    if expires_at is not None and expires_at <= now:
        return "expired"
    return "active"


class EntitlementAdminService:
    """Administrative grants that give access independently of purchases.

    There is at most one grant per user and product. Granting again updates
    and reactivates it; revoking only deactivates it, so the history of who
    granted what and why is never lost.
    """

    def __init__(
        self,
        repository: IEntitlementRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self._clock = clock

    async def grant(
        self,
        admin_id: str,
        user_id: str,
        app_id: str,
        grant_type: str = GrantType.MANUAL.value,
        expires_at: Optional[datetime] = None,
        reason: Optional[str] = None,
    ) -> Entitlement:
        """Grant ``user_id`` access to ``app_id`` (a product id or ``"all"``).

        Args:
            admin_id: Administrator performing the grant.
            user_id: Grantee.
            app_id: Product id, or the wildcard for every product.
            grant_type: One of ``manual``, ``trial``, ``subscription``,
                ``lifetime``.
            expires_at: End of the grant; ignored for lifetime grants.
            reason: Justification. Required for manual grants.

        Raises:
            ValidationError: Unknown grant type, missing target, missing
                reason for a manual grant, or an expiry in the past.
        """
        try:
            kind = GrantType(grant_type)
        except ValueError:
            raise ValidationError(
                f"Unknown grant type: {grant_type}", code="invalid_grant_type"
            ) from None

        user_id = (user_id or "").strip()
        app_id = (app_id or "").strip()
        if not user_id or not app_id:
            raise ValidationError("user_id and app_id are required", code="missing_fields")

        reason = (reason or "").strip() or None
        if kind is GrantType.MANUAL and reason is None:
            raise ValidationError("A reason is required for manual grants", code="reason_required")

        now = self._clock()
        expires_at = None if kind is GrantType.LIFETIME else ensure_utc(expires_at)
        if expires_at is not None and expires_at <= now:
            raise ValidationError("Expiry must be in the future", code="invalid_expiry")

        entitlement = await self.repository.get_by_user_and_app(user_id, app_id)
        if entitlement is None:
            entitlement = Entitlement(user_id=user_id, app_id=app_id, created_at=now)
        entitlement.active = True
        entitlement.grant_type = kind.value
        entitlement.expires_at = expires_at
        entitlement.granted_by = admin_id
        entitlement.grant_reason = reason
        entitlement.updated_at = now

        saved = await self.repository.save(entitlement)
        logger.info(
            "entitlement_granted_by_admin",
            admin_id=admin_id,
            user_id=user_id,
            app_id=app_id,
            grant_type=kind.value,
            expires_at=expires_at.isoformat() if expires_at else None,
        )
        return saved

    async def revoke(self, admin_id: str, entitlement_id: int, reason: Optional[str]) -> Entitlement:
        """Deactivate a grant.

        Raises:
            ValidationError: No reason given, or the grant is already inactive.
            EntitlementNotFoundError: No such grant.
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required to revoke access", code="reason_required")

        entitlement = await self.repository.get_by_id(entitlement_id)
        if entitlement is None:
            raise EntitlementNotFoundError()
        if not entitlement.active:
            raise ValidationError("Entitlement is already inactive", code="already_revoked")

        entitlement.active = False
        entitlement.updated_at = self._clock()
        saved = await self.repository.save(entitlement)
        logger.info(
            "entitlement_revoked_by_admin",
            admin_id=admin_id,
            entitlement_id=entitlement_id,
            user_id=entitlement.user_id,
            app_id=entitlement.app_id,
            reason=reason,
        )
        return saved

    async def list_for_user(self, user_id: str) -> List[Entitlement]:
        return await self.repository.list_for_user(user_id)
