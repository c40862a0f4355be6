"""Supabase Storage backend.

Learn: Talks to the Storage REST API directly with httpx. An upload is
one POST with the service key, and public buckets serve objects from a
predictable URL, so there is nothing else to call:

    POST {url}/storage/v1/object/{bucket}/{key}         (upload)
    DELETE {url}/storage/v1/object/{bucket}/{key}       (delete)
    GET  {url}/storage/v1/object/public/{bucket}/{key}  (public URL)
"""

from typing import Optional

import httpx
import structlog

from inkwell.storage.base import ImageStorage, StorageError

logger = structlog.get_logger()


class SupabaseStorage(ImageStorage):
    """Stores images in a public Supabase Storage bucket."""

    def __init__(
        self,
        url: str,
        service_key: str,
        bucket: str,
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.base_url = url.rstrip("/")
        self.bucket = bucket
        self._service_key = service_key
        self._http = http
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "supabase"

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{key}"

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        resp = await self._request(
            "POST",
            key,
            content=data,
            headers={"Content-Type": content_type, "x-upsert": "false"},
        )
        if resp.status_code >= 400:
            logger.warning(
                "storage.supabase_upload_rejected",
                key=key,
                status=resp.status_code,
                body=resp.text[:200],
            )
            raise StorageError(f"Supabase rejected upload ({resp.status_code})")
        return self.public_url(key)

    async def delete(self, key: str) -> None:
        resp = await self._request("DELETE", key)
        if resp.status_code >= 400 and resp.status_code != 404:
            raise StorageError(f"Supabase rejected delete ({resp.status_code})")

    async def _request(self, method: str, key: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{key}"
        headers = {
            "Authorization": f"Bearer {self._service_key}",
            "apikey": self._service_key,
            **kwargs.pop("headers", {}),
        }
        try:
            if self._http is not None:
                return await self._http.request(method, url, headers=headers, **kwargs)
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                return await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise StorageError(f"Supabase request failed: {e}")
