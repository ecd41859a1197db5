"""Repository implementations for the infrastructure layer."""

from .entitlement_repository import EntitlementRepository, RoleRepository
from .purchase_repository import FamilyRepository, PurchaseRepository
from .rate_limit_window_repository import RateLimitWindowRepository
from .session_repository import SessionRepository

__all__ = [
    "EntitlementRepository",
    "FamilyRepository",
    "PurchaseRepository",
    "RateLimitWindowRepository",
    "RoleRepository",
    "SessionRepository",
]
