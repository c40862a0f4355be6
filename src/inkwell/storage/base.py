"""Image storage base — pluggable interface for where post images live.

Learn: Posts only ever see the public URL a backend hands back. The
post service, ownership guard and token service know nothing about
buckets or directories.

Each backend knows how to:
1. Store bytes under a key we generate (never a client filename)
2. Return a publicly resolvable URL for that key
3. Delete a key (used to clean up when the post write fails)
"""

from abc import ABC, abstractmethod


class StorageError(Exception):
    """Raised when a backend can't store or delete an object."""


class ImageStorage(ABC):
    """Abstract base for image storage backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier, e.g. "local" or "supabase"."""

    @abstractmethod
    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        """Store `data` under `key` and return its public URL.

        Must not overwrite an existing object. Raises StorageError.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the object stored under `key`. Raises StorageError."""
