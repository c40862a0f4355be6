"""Pydantic schemas for posts.

Learn: Separate schemas for create/update/read keeps the API clean.
- PostCreate: what you POST (JSON or multipart) to create a post
- PostUpdate: what you PUT to modify a post (only fields sent are applied)
- PostRead: what the API returns, with an author summary

Tags go through normalize_tags() before validation, so a native array
and a JSON-encoded string both end up as list[str].
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from inkwell.tags import normalize_tags


class PostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, v):
        return normalize_tags(v)


class PostUpdate(BaseModel):
    """Partial update — only fields present in the request are applied."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    tags: Optional[list[str]] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, v):
        return normalize_tags(v)


class AuthorRead(BaseModel):
    id: int
    name: str
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}


class PostRead(BaseModel):
    id: int
    title: str
    content: str
    tags: list[str]
    image_url: Optional[str] = None
    user_id: int
    author: Optional[AuthorRead] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PostDeleted(BaseModel):
    message: str = "Post deleted"
