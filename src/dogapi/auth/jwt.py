"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. The token
binds the user's id and role, signed with the server secret. Nothing is
stored server-side; the signature is the proof.

Tokens expire after settings.access_token_expire_minutes. Setting that
to 0 issues tokens without an exp claim (never expire), which is only
meant for local tooling.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from dogapi.config import settings


class TokenError(Exception):
    """Raised when token verification fails."""


def create_access_token(
    user_id: str,
    role: str = "user",
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a signed access token for a user."""
    now = datetime.now(timezone.utc)
    payload = {
        "id": str(user_id),
        "role": role,
        "type": "access",
        "iat": now,
    }
    minutes = (
        settings.access_token_expire_minutes
        if expires_minutes is None
        else expires_minutes
    )
    if minutes > 0:
        payload["exp"] = now + timedelta(minutes=minutes)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: Optional[str]) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure. Messages are deliberately vague:
    no decoder internals, never the secret.
    """
    if not token:
        raise TokenError("Missing token")
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError:
        raise TokenError("Invalid token")

    if not payload.get("id") or payload.get("type") != "access":
        raise TokenError("Invalid token")
    return payload
