"""Local filesystem backend — for development.

Files land under upload_dir and are served by the app itself from
/uploads (create_app mounts the directory as static files).
"""

import asyncio
from pathlib import Path

from inkwell.storage.base import ImageStorage, StorageError


class LocalStorage(ImageStorage):
    """Stores images on local disk."""

    def __init__(self, root: str, public_base_url: str):
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "local"

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root):
            raise StorageError(f"Key escapes the upload directory: {key}")
        return path

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path(key)
        try:
            await asyncio.to_thread(_write_new_file, path, data)
        except OSError as e:
            raise StorageError(f"Could not write {key}: {e}")
        return f"{self.public_base_url}/uploads/{key}"

    async def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as e:
            raise StorageError(f"Could not delete {key}: {e}")


def _write_new_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # "xb" refuses to overwrite an existing object
    with open(path, "xb") as f:
        f.write(data)
