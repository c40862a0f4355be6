"""Post service — CRUD on posts plus the ownership guard.

Learn: Reads are public. Update and delete go through get_owned_post(),
which 404s on a missing post and 403s when the caller is not its
owner. The owner is the stored user_id, compared by exact equality —
there is no admin override.

Images are uploaded BEFORE the post row is written. If the upload
fails, nothing is written (UploadFailed). If the row write fails after
a successful upload, the orphaned object is deleted best-effort and
the DB error propagates. Either way no post ever points at an image
that doesn't exist.
"""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.db.models import Post
from inkwell.errors import Forbidden, NotFound, UploadFailed
from inkwell.schemas.post import PostCreate, PostUpdate
from inkwell.storage.base import ImageStorage, StorageError
from inkwell.storage.images import ImageUpload, new_image_key

logger = structlog.get_logger()


class PostService:
    """Business logic for posts."""

    def __init__(self, db: AsyncSession, storage: ImageStorage):
        self.db = db
        self.storage = storage

    # ─── Reads ──────────────────────────────────────────

    async def list_posts(self) -> list[Post]:
        """All posts, newest first."""
        result = await self.db.execute(
            select(Post).order_by(Post.created_at.desc(), Post.id.desc())
        )
        return list(result.scalars().all())

    async def list_posts_by_user(self, user_id: int) -> list[Post]:
        result = await self.db.execute(
            select(Post)
            .where(Post.user_id == user_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
        )
        return list(result.scalars().all())

    async def get_post(self, post_id: int) -> Post:
        """Load one post. Raises NotFound."""
        result = await self.db.execute(
            select(Post)
            .where(Post.id == post_id)
            .execution_options(populate_existing=True)
        )
        post = result.scalars().first()
        if post is None:
            raise NotFound("Post not found")
        return post

    # ─── Ownership guard ────────────────────────────────

    async def get_owned_post(self, post_id: int, user_id: int) -> Post:
        """Load a post the caller is about to mutate.

        Raises NotFound if it doesn't exist, Forbidden if the caller
        doesn't own it.
        """
        post = await self.get_post(post_id)
        if post.user_id != user_id:
            logger.warning(
                "posts.forbidden",
                post_id=post_id,
                owner_id=post.user_id,
                user_id=user_id,
            )
            raise Forbidden()
        return post

    # ─── Writes ─────────────────────────────────────────

    async def create_post(
        self,
        owner_id: int,
        body: PostCreate,
        image: ImageUpload | None = None,
    ) -> Post:
        image_key, image_url = None, None
        if image is not None:
            image_key, image_url = await self._store_image(image)

        post = Post(
            title=body.title,
            content=body.content,
            tags=list(body.tags),
            image_url=image_url,
            user_id=owner_id,
        )
        self.db.add(post)
        await self._commit(discard_key=image_key)

        logger.info("posts.created", post_id=post.id, user_id=owner_id)
        return await self.get_post(post.id)

    async def update_post(
        self,
        post: Post,
        body: PostUpdate,
        image: ImageUpload | None = None,
    ) -> Post:
        """Apply the fields present in `body`, plus an optional new image.

        `post` must come from get_owned_post(), so the ownership check
        has already happened (and happened before any image was read).
        """
        image_key = None
        if image is not None:
            image_key, post.image_url = await self._store_image(image)

        for field, value in body.model_dump(exclude_unset=True).items():
            if field == "tags":
                value = list(value or [])
            if value is None:
                continue  # title/content are required columns
            setattr(post, field, value)

        await self._commit(discard_key=image_key)

        logger.info("posts.updated", post_id=post.id, user_id=post.user_id)
        return await self.get_post(post.id)

    async def delete_post(self, post_id: int, user_id: int) -> None:
        post = await self.get_owned_post(post_id, user_id)
        await self.db.delete(post)
        await self.db.commit()
        logger.info("posts.deleted", post_id=post_id, user_id=user_id)

    # ─── Helpers ────────────────────────────────────────

    async def _store_image(self, image: ImageUpload) -> tuple[str, str]:
        """Upload an image. Returns (key, public_url). Raises UploadFailed."""
        key = new_image_key(image.content_type)
        try:
            url = await self.storage.upload(key, image.data, image.content_type)
        except StorageError as e:
            logger.warning(
                "storage.upload_failed", backend=self.storage.name, key=key, error=str(e)
            )
            raise UploadFailed()
        logger.info("storage.uploaded", backend=self.storage.name, key=key, size=len(image.data))
        return key, url

    async def _commit(self, discard_key: str | None = None) -> None:
        """Commit, removing a just-uploaded image if the commit fails."""
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            if discard_key is not None:
                try:
                    await self.storage.delete(discard_key)
                except StorageError as e:
                    logger.warning(
                        "storage.orphaned_image", key=discard_key, error=str(e)
                    )
            raise
