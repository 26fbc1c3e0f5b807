"""Auth API — registration, login, current user.

Learn: Routes for user authentication:
- POST /auth/register → create a new user account
- POST /auth/login → username/password → JWT access token
- GET /auth/me → current user info (bearer token required)

Request bodies accept missing fields (they default to None) so the
service can answer 400 with a readable message instead of FastAPI's
generic validation error.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from dogapi.auth.dependencies import CurrentIdentity, get_current_user
from dogapi.auth.jwt import create_access_token
from dogapi.db.engine import get_db
from dogapi.errors import NotFound
from dogapi.services.user_service import UserService

router = APIRouter(prefix="/auth")


# ─── Schemas ─────────────────────────────────────────────


class CredentialsRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class RegisterResponse(BaseModel):
    message: str
    id: uuid.UUID


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"


class UserRead(BaseModel):
    id: uuid.UUID
    username: str
    role: str

    model_config = {"from_attributes": True}


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(body: CredentialsRequest, db: AsyncSession = Depends(get_db)):
    """Create a new user account."""
    user = await UserService(db).register(body.username, body.password)
    return RegisterResponse(message="User registered successfully.", id=user.id)


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=TokenResponse)
async def login(body: CredentialsRequest, db: AsyncSession = Depends(get_db)):
    """Login with username and password → JWT token."""
    user = await UserService(db).authenticate(body.username, body.password)
    return TokenResponse(token=create_access_token(str(user.id), user.role))


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the current authenticated user's info."""
    user = await UserService(db).get(identity.user_id)
    if not user:
        raise NotFound("User not found.")
    return user
