"""Image storage registry — pluggable backends for post images.

Learn: create_app() asks for a backend by name (INKWELL_STORAGE_BACKEND)
and keeps the instance on app.state:
    storage = build_storage(settings)
    url = await storage.upload(key, data, content_type)

Tests swap in their own ImageStorage subclass the same way.
"""

from inkwell.config import Settings
from inkwell.storage.base import ImageStorage, StorageError
from inkwell.storage.local import LocalStorage
from inkwell.storage.supabase import SupabaseStorage

__all__ = [
    "ImageStorage",
    "LocalStorage",
    "StorageError",
    "SupabaseStorage",
    "build_storage",
]


def build_storage(settings: Settings) -> ImageStorage:
    """Build the configured storage backend.

    Raises ValueError for an unknown backend name.
    """
    if settings.storage_backend == "local":
        return LocalStorage(
            root=settings.upload_dir,
            public_base_url=settings.public_base_url,
        )
    if settings.storage_backend == "supabase":
        return SupabaseStorage(
            url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            bucket=settings.supabase_bucket,
        )
    raise ValueError(
        f"Unknown storage backend '{settings.storage_backend}'. "
        "Available: local, supabase"
    )
