from .admin import EntitlementAdminService, entitlement_status
from .resolver import EntitlementResolver, EntitlementSnapshotLoader, evaluate

__all__ = [
    "EntitlementAdminService",
    "EntitlementResolver",
    "EntitlementSnapshotLoader",
    "entitlement_status",
    "evaluate",
]
