"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Learn: Unlike a router-wide Depends(get_current_user), auth here is
per-route, because the posts router mixes open reads (GET) with
protected writes (POST/PUT/DELETE). Health and auth are fully open;
users/me is fully protected.
"""

from fastapi import APIRouter

from inkwell.api.auth import router as auth_router
from inkwell.api.health import router as health_router
from inkwell.api.posts import router as posts_router
from inkwell.api.users import router as users_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(posts_router, tags=["posts"])
api_router.include_router(users_router, tags=["users"])
