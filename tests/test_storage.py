"""Storage backend tests.

Learn: LocalStorage runs against a tmp directory. SupabaseStorage gets
an httpx.AsyncClient with a MockTransport, so we can check the exact
requests it makes and feed it failures without a real bucket.
"""

import httpx
import pytest

from inkwell.config import Settings
from inkwell.storage import LocalStorage, SupabaseStorage, build_storage
from inkwell.storage.base import StorageError

# ═══════════════════════════════════════════════════════════
# Local
# ═══════════════════════════════════════════════════════════


@pytest.fixture()
def local(tmp_path):
    return LocalStorage(root=str(tmp_path), public_base_url="http://localhost:8000/")


@pytest.mark.asyncio
async def test_local_upload_writes_file(local, tmp_path):
    url = await local.upload("posts/abc.png", b"data", "image/png")
    assert url == "http://localhost:8000/uploads/posts/abc.png"
    assert (tmp_path / "posts" / "abc.png").read_bytes() == b"data"


@pytest.mark.asyncio
async def test_local_refuses_overwrite(local, tmp_path):
    await local.upload("posts/abc.png", b"first", "image/png")
    with pytest.raises(StorageError):
        await local.upload("posts/abc.png", b"second", "image/png")
    assert (tmp_path / "posts" / "abc.png").read_bytes() == b"first"


@pytest.mark.asyncio
async def test_local_refuses_traversal(local):
    with pytest.raises(StorageError):
        await local.upload("../escape.png", b"data", "image/png")


@pytest.mark.asyncio
async def test_local_delete(local, tmp_path):
    await local.upload("posts/gone.png", b"data", "image/png")
    await local.delete("posts/gone.png")
    assert not (tmp_path / "posts" / "gone.png").exists()
    # Deleting twice is fine
    await local.delete("posts/gone.png")


# ═══════════════════════════════════════════════════════════
# Supabase
# ═══════════════════════════════════════════════════════════


def _supabase(handler) -> SupabaseStorage:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseStorage(
        url="https://proj.supabase.test/",
        service_key="service-key",
        bucket="images",
        http=http,
    )


@pytest.mark.asyncio
async def test_supabase_upload():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"Key": "images/posts/a.png"})

    storage = _supabase(handler)
    url = await storage.upload("posts/a.png", b"png-bytes", "image/png")

    assert url == "https://proj.supabase.test/storage/v1/object/public/images/posts/a.png"
    (request,) = seen
    assert request.method == "POST"
    assert str(request.url) == "https://proj.supabase.test/storage/v1/object/images/posts/a.png"
    assert request.headers["Authorization"] == "Bearer service-key"
    assert request.headers["Content-Type"] == "image/png"
    assert request.headers["x-upsert"] == "false"
    assert request.content == b"png-bytes"


@pytest.mark.asyncio
async def test_supabase_upload_rejected():
    storage = _supabase(lambda request: httpx.Response(400, json={"error": "Duplicate"}))
    with pytest.raises(StorageError):
        await storage.upload("posts/a.png", b"x", "image/png")


@pytest.mark.asyncio
async def test_supabase_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    storage = _supabase(handler)
    with pytest.raises(StorageError):
        await storage.upload("posts/a.png", b"x", "image/png")


@pytest.mark.asyncio
async def test_supabase_delete_tolerates_missing():
    storage = _supabase(lambda request: httpx.Response(404))
    await storage.delete("posts/a.png")


@pytest.mark.asyncio
async def test_supabase_delete_failure():
    storage = _supabase(lambda request: httpx.Response(500))
    with pytest.raises(StorageError):
        await storage.delete("posts/a.png")


# ═══════════════════════════════════════════════════════════
# Registry
# ═══════════════════════════════════════════════════════════


def test_build_local(tmp_path):
    storage = build_storage(Settings(storage_backend="local", upload_dir=str(tmp_path)))
    assert isinstance(storage, LocalStorage)
    assert storage.name == "local"


def test_build_supabase():
    storage = build_storage(
        Settings(
            storage_backend="supabase",
            supabase_url="https://proj.supabase.test",
            supabase_service_key="k",
            supabase_bucket="images",
        )
    )
    assert isinstance(storage, SupabaseStorage)
    assert storage.name == "supabase"
