"""PostService tests that need to reach below the HTTP layer."""

import pytest

from inkwell.db.models import User
from inkwell.errors import Forbidden, NotFound
from inkwell.schemas.post import PostCreate, PostUpdate
from inkwell.services.post_service import PostService
from inkwell.storage.images import ImageUpload


@pytest.fixture()
def svc(db_session, storage):
    return PostService(db_session, storage=storage)


async def _user(db_session, email: str = "owner@example.com") -> User:
    user = User(name="Owner", email=email, password_hash="x")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.mark.asyncio
async def test_failed_commit_removes_uploaded_image(svc, db_session, storage, monkeypatch):
    owner = await _user(db_session)

    async def failing_commit():
        raise RuntimeError("database went away")

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(RuntimeError):
        await svc.create_post(
            owner.id,
            PostCreate(title="t", content="c"),
            ImageUpload(data=b"png", content_type="image/png"),
        )

    assert storage.objects == {}
    assert len(storage.deleted) == 1
    assert storage.deleted[0].startswith("posts/")


@pytest.mark.asyncio
async def test_owner_check_uses_stored_user_id(svc, db_session):
    owner = await _user(db_session)
    other = await _user(db_session, email="other@example.com")
    post = await svc.create_post(owner.id, PostCreate(title="t", content="c"))

    assert (await svc.get_owned_post(post.id, owner.id)).id == post.id
    with pytest.raises(Forbidden):
        await svc.get_owned_post(post.id, other.id)
    with pytest.raises(NotFound):
        await svc.get_owned_post(post.id + 1, owner.id)


@pytest.mark.asyncio
async def test_update_keeps_unsent_fields(svc, db_session):
    owner = await _user(db_session)
    post = await svc.create_post(
        owner.id, PostCreate(title="t", content="c", tags=["keep"])
    )

    updated = await svc.update_post(post, PostUpdate(content="new"))
    assert updated.title == "t"
    assert updated.content == "new"
    assert updated.tags == ["keep"]


@pytest.mark.asyncio
async def test_update_can_clear_tags(svc, db_session):
    owner = await _user(db_session)
    post = await svc.create_post(owner.id, PostCreate(title="t", content="c", tags=["a"]))

    updated = await svc.update_post(post, PostUpdate(tags=[]))
    assert updated.tags == []


@pytest.mark.asyncio
async def test_replacing_image_keeps_old_object(svc, db_session, storage):
    owner = await _user(db_session)
    post = await svc.create_post(
        owner.id,
        PostCreate(title="t", content="c"),
        ImageUpload(data=b"one", content_type="image/png"),
    )
    first_url = post.image_url

    updated = await svc.update_post(
        post, PostUpdate(), ImageUpload(data=b"two", content_type="image/jpeg")
    )
    assert updated.image_url != first_url
    assert updated.image_url.endswith(".jpg")
    assert len(storage.objects) == 2
    assert storage.deleted == []
