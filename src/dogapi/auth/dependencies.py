"""FastAPI auth dependencies.

Learn: get_current_user is the auth gateway. It is attached to the whole
/api/dogs router (see api/__init__.py), so it runs before any handler
touches the database, and handlers that need the identity declare it
again; FastAPI resolves a dependency once per request and reuses it.

Two distinct failures:
1. No usable "Bearer <token>" header → 401 (log in first)
2. Header present but the token doesn't verify → 403 (invalid token)
"""

from typing import Optional

from fastapi import Header

from dogapi.auth.jwt import TokenError, verify_token
from dogapi.errors import Forbidden, Unauthenticated


class CurrentIdentity:
    """Represents the authenticated user making the request.

    Learn: Lives for one request only. Built from the verified token
    claims; the database isn't consulted, so a token stays usable for
    its lifetime even if nothing else about the user is loaded.
    """

    def __init__(self, user_id: str, role: str = "user"):
        self.user_id = user_id
        self.role = role

    def __repr__(self) -> str:
        return f"CurrentIdentity(user_id={self.user_id!r}, role={self.role!r})"


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    authorization: Optional[str] = Header(None),
) -> CurrentIdentity:
    """Extract current identity (required)."""
    token = _bearer_token(authorization)
    if token is None:
        raise Unauthenticated(
            "Please log in first.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_token(token)
    except TokenError:
        raise Forbidden("Invalid token.")

    return CurrentIdentity(
        user_id=payload["id"],
        role=payload.get("role", "user"),
    )
