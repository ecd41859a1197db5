from __future__ import annotations

"""Factory for signed bearer credentials."""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import uuid4

import jwt

from accessguard.core.config.settings import settings


def create_fake_credential(
    user_id: Optional[str],
    expires_in: timedelta = timedelta(hours=1),
    secret: Optional[str] = None,
    audience: Optional[str] = "authenticated",
    **claims: Any,
) -> str:
    """Sign an HS256 credential the way the hosted identity provider does.

    Args:
        user_id: ``sub`` claim; omitted when None.
        expires_in: Offset of ``exp`` from now. Negative for expired credentials.
        secret: Signing secret, defaults to the configured one.
        audience: ``aud`` claim; omitted when None.
        **claims: Extra claims. A random ``jti`` keeps credentials signed in
            the same second distinct.
    """
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "exp": now + expires_in,
        "iat": now - timedelta(seconds=1),
        "jti": uuid4().hex,
    }
    if user_id is not None:
        payload["sub"] = user_id
    if audience is not None:
        payload["aud"] = audience
    payload.update(claims)
    return jwt.encode(
        payload, secret or settings.JWT_SECRET.get_secret_value(), algorithm="HS256"
    )
