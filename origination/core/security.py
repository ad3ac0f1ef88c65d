from __future__ import annotations

from typing import Any

from jose import JWTError, jwt

from origination.core.settings import settings


def decode_token(token: str) -> dict[str, Any]:
    """Verify an identity-provider access token and return its claims."""
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    if not payload.get("sub"):
        raise ValueError("Token has no subject")
    return payload
