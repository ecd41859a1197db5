from .entitlement import ALL_PRODUCTS, Entitlement, GrantType
from .family import FamilyMember, FamilySubscription
from .purchase import Product, ProductPurchase, Service, ServicePurchase
from .rate_limit_window import RateLimitWindow
from .session import RevokedSession, UserSession
from .user_role import Role, UserRole

__all__ = [
    "ALL_PRODUCTS",
    "Entitlement",
    "FamilyMember",
    "FamilySubscription",
    "GrantType",
    "Product",
    "ProductPurchase",
    "RateLimitWindow",
    "RevokedSession",
    "Role",
    "Service",
    "ServicePurchase",
    "UserRole",
    "UserSession",
]
