"""Repository interfaces for abstracting data persistence in the domain layer.

The rate limiter, session validator and entitlement resolver only talk to the
shared state store through these ports. Concrete SQL implementations live in
``accessguard.infrastructure.repositories`` and translate driver failures into
:class:`~accessguard.core.exceptions.StoreUnavailableError`, so the domain can
apply its fail-open policies without knowing about SQLAlchemy.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

from accessguard.domain.entities.entitlement import Entitlement
from accessguard.domain.entities.purchase import ProductPurchase, ServicePurchase
from accessguard.domain.entities.rate_limit_window import RateLimitWindow
from accessguard.domain.entities.session import UserSession


class IRateLimitWindowRepository(ABC):
    """Persistence contract for fixed rate-limit windows."""

    @abstractmethod
    async def delete_older_than(self, cutoff: datetime) -> int:
        """Deletes every window whose start is before ``cutoff``.

        Returns:
            The number of rows removed.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_latest_window(
        self,
        identifier: str,
        identifier_type: str,
        function_name: str,
        granularity: str,
        since: datetime,
    ) -> Optional[RateLimitWindow]:
        """Returns the most recent window starting strictly after ``since``."""
        raise NotImplementedError

    @abstractmethod
    async def insert_window(
        self,
        identifier: str,
        identifier_type: str,
        function_name: str,
        granularity: str,
        window_start: datetime,
        now: datetime,
    ) -> None:
        """Creates a window with a count of one.

        A concurrent insert for the same key fails on the unique constraint
        and surfaces as a store error.
        """
        raise NotImplementedError

    @abstractmethod
    async def set_count(self, window_id: int, request_count: int, now: datetime) -> None:
        """Overwrites the count of an existing window (no atomic increment)."""
        raise NotImplementedError


class ISessionRepository(ABC):
    """Persistence contract for live sessions and revocation tombstones."""

    @abstractmethod
    async def get_by_token(self, token_digest: str) -> Optional[UserSession]:
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, session_id: int) -> Optional[UserSession]:
        raise NotImplementedError

    @abstractmethod
    async def create(self, session: UserSession) -> UserSession:
        """Persists a new session and returns it with its id populated."""
        raise NotImplementedError

    @abstractmethod
    async def touch(self, session_id: int, accessed_at: datetime) -> None:
        """Updates ``last_accessed`` of a session."""
        raise NotImplementedError

    @abstractmethod
    async def list_active(self, user_id: str, now: datetime) -> List[UserSession]:
        """Returns the user's unexpired sessions, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, session: UserSession, revoked_by: Optional[str]) -> None:
        """Deletes a session and records a tombstone for its credential."""
        raise NotImplementedError

    @abstractmethod
    async def is_revoked(self, token_digest: str) -> bool:
        """Whether a tombstone exists for the credential digest."""
        raise NotImplementedError

    @abstractmethod
    async def purge_expired(self, now: datetime) -> int:
        """Deletes expired sessions and expired tombstones.

        Returns:
            The total number of rows removed.
        """
        raise NotImplementedError


class IPurchaseRepository(ABC):
    """Read-only access to purchase history and catalog lookups."""

    @abstractmethod
    async def resolve_product_id(self, slug: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    async def get_product_purchases(self, user_id: str, product_id: str) -> List[ProductPurchase]:
        raise NotImplementedError

    @abstractmethod
    async def get_family_plan_purchases(
        self, user_id: str, family_plan_slugs: Sequence[str]
    ) -> List[ServicePurchase]:
        """Returns the user's active purchases of any family-plan service."""
        raise NotImplementedError


class IFamilyRepository(ABC):
    """Family group membership lookups."""

    @abstractmethod
    async def has_active_family_subscription(self, user_id: str) -> bool:
        """Whether the user is an active member of a group with an active subscription."""
        raise NotImplementedError


class IEntitlementRepository(ABC):
    """Persistence contract for administrative grants."""

    @abstractmethod
    async def get_for_product(self, user_id: str, product_id: str) -> List[Entitlement]:
        """Returns grants for ``product_id`` or for every product, active or not."""
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, entitlement_id: int) -> Optional[Entitlement]:
        raise NotImplementedError

    @abstractmethod
    async def get_by_user_and_app(self, user_id: str, app_id: str) -> Optional[Entitlement]:
        raise NotImplementedError

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[Entitlement]:
        raise NotImplementedError

    @abstractmethod
    async def save(self, entitlement: Entitlement) -> Entitlement:
        """Inserts or updates a grant and returns the refreshed row."""
        raise NotImplementedError


class IRoleRepository(ABC):
    """Role lookups for administrator checks."""

    @abstractmethod
    async def is_admin(self, user_id: str) -> bool:
        raise NotImplementedError
