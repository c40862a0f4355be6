"""Post API routes.

Learn: Create and update accept either JSON or multipart/form-data.
Multipart is what the frontend sends when an image is attached; in
that case tags arrive JSON-encoded inside a form field and go through
the same normalize_tags() as a native JSON array.

Reads are open. Writes need a session token, and PUT/DELETE also
need the caller to own the post (PostService.get_owned_post).
"""

from typing import TypeVar

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from inkwell.auth.dependencies import CurrentIdentity, get_current_user
from inkwell.db.engine import get_db
from inkwell.errors import ValidationFailed
from inkwell.schemas.post import PostCreate, PostDeleted, PostRead, PostUpdate
from inkwell.services.post_service import PostService
from inkwell.storage.images import read_image_upload

router = APIRouter(prefix="/posts")

BodyT = TypeVar("BodyT", bound=BaseModel)

_FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _svc(request: Request, db: AsyncSession = Depends(get_db)) -> PostService:
    return PostService(db, storage=request.app.state.storage)


async def _read_body(
    request: Request, model: type[BodyT]
) -> tuple[BodyT, UploadFile | None]:
    """Parse a JSON or form body into `model`, plus the optional image part."""
    content_type = request.headers.get("content-type", "")
    image_file = None

    if content_type.startswith(_FORM_TYPES):
        form = await request.form()
        fields = {
            name: form[name]
            for name in ("title", "content")
            if isinstance(form.get(name), str)
        }
        if "tags" in form:
            values = [v for v in form.getlist("tags") if isinstance(v, str)]
            # One field carries the JSON-encoded array
            fields["tags"] = values[0] if len(values) == 1 else values
        upload = form.get("image")
        if isinstance(upload, UploadFile):
            image_file = upload
    else:
        try:
            fields = await request.json()
        except ValueError:
            raise ValidationFailed("Request body must be JSON or multipart form data")
        if not isinstance(fields, dict):
            raise ValidationFailed("Request body must be a JSON object")

    try:
        body = model.model_validate(fields)
    except ValidationError as e:
        raise RequestValidationError(e.errors())
    return body, image_file


@router.get("", response_model=list[PostRead])
async def list_posts(svc: PostService = Depends(_svc)):
    """All posts, newest first."""
    return await svc.list_posts()


@router.get("/{post_id}", response_model=PostRead)
async def get_post(post_id: int, svc: PostService = Depends(_svc)):
    return await svc.get_post(post_id)


@router.post("", response_model=PostRead, status_code=201)
async def create_post(
    request: Request,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    body, image_file = await _read_body(request, PostCreate)
    image = None
    if image_file is not None:
        image = await read_image_upload(
            image_file, request.app.state.settings.max_image_bytes
        )
    return await svc.create_post(identity.user_id, body, image)


@router.put("/{post_id}", response_model=PostRead)
async def update_post(
    post_id: int,
    request: Request,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    """Update a post you own. Only the fields sent are changed."""
    body, image_file = await _read_body(request, PostUpdate)
    post = await svc.get_owned_post(post_id, identity.user_id)
    image = None
    if image_file is not None:
        image = await read_image_upload(
            image_file, request.app.state.settings.max_image_bytes
        )
    return await svc.update_post(post, body, image)


@router.delete("/{post_id}", response_model=PostDeleted)
async def delete_post(
    post_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    """Delete a post you own. Permanent."""
    await svc.delete_post(post_id, identity.user_id)
    return PostDeleted()
