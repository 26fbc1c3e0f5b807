"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects every route in the dogs router
without relying on each handler to remember it. Health and auth
routers are open (no token required); /auth/me checks its own token.
"""

from fastapi import APIRouter, Depends

from dogapi.api.auth import router as auth_router
from dogapi.api.dogs import router as dogs_router
from dogapi.api.health import router as health_router
from dogapi.auth.dependencies import get_current_user

# All protected routers require authentication
_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api")

# Open routes, no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes require a valid bearer token
api_router.include_router(dogs_router, tags=["dogs"], dependencies=_auth)
