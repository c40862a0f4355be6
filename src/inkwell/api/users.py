"""User API routes — the caller's own profile."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.auth.dependencies import CurrentIdentity, get_current_user
from inkwell.db.engine import get_db
from inkwell.schemas.user import ProfileRead
from inkwell.services.post_service import PostService
from inkwell.services.user_service import UserService

router = APIRouter(prefix="/users")


@router.get("/me", response_model=ProfileRead)
async def get_me(
    request: Request,
    identity: CurrentIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Own profile plus own posts, newest first."""
    user = await UserService(db).get_user(identity.user_id)
    posts = await PostService(db, storage=request.app.state.storage).list_posts_by_user(
        user.id
    )
    return {"user": user, "posts": posts}
