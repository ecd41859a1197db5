"""Entitlement resolution settings.
"""

from typing import List, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings


class EntitlementSettings(BaseSettings):
    """Switches that shape entitlement decisions.

    Attributes:
        ENTITLEMENT_ALLOW_ALL_AUTHENTICATED: Grant every authenticated user
            access to every product (reason ``authenticated_user_access``)
            without consulting purchases or grants. Off by default.
        ENTITLEMENT_ADMIN_BYPASS: Grant administrators access to every product
            (reason ``admin_bypass``).
        ENTITLEMENT_FAIL_OPEN: Allow access when the purchase or grant tables
            cannot be read. Off by default; the entry point answers 503.
        FAMILY_PLAN_SLUGS: Service slugs whose purchase unlocks every product.
    """

    ENTITLEMENT_ALLOW_ALL_AUTHENTICATED: bool = False
    ENTITLEMENT_ADMIN_BYPASS: bool = True
    ENTITLEMENT_FAIL_OPEN: bool = False
    FAMILY_PLAN_SLUGS: Union[str, List[str]] = ["all-tools-membership-family"]

    @field_validator("FAMILY_PLAN_SLUGS", mode="before")
    @classmethod
    def split_slugs(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v
