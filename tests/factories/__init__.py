from __future__ import annotations

"""Re-export factory functions for generating fake test data."""

# flake8: noqa: F401

from .credential import create_fake_credential
from .records import (
    create_fake_entitlement,
    create_fake_product,
    create_fake_product_purchase,
    create_fake_service,
    create_fake_service_purchase,
    create_fake_session,
    fake_user_id,
)

__all__ = [
    "create_fake_credential",
    "create_fake_entitlement",
    "create_fake_product",
    "create_fake_product_purchase",
    "create_fake_service",
    "create_fake_service_purchase",
    "create_fake_session",
    "fake_user_id",
]
