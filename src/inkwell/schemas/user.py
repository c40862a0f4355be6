"""Pydantic schemas for user profiles."""

from typing import Optional

from pydantic import BaseModel

from inkwell.schemas.post import PostRead


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}


class ProfileRead(BaseModel):
    """The caller's own profile plus their posts, newest first."""
    user: UserRead
    posts: list[PostRead]
