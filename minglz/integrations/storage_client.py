import re

import httpx
from loguru import logger

from minglz.core.config import settings


class StorageError(Exception):
    pass


class StorageClient:
    """Thin wrapper over the object store's REST API (Supabase Storage layout)."""

    def __init__(self):
        self.base_url = (settings.STORAGE_URL or "").rstrip("/")
        self.service_key = settings.STORAGE_SERVICE_KEY
        self.bucket = settings.STORAGE_BUCKET
        self.timeout = 30

    def _headers(self) -> dict:
        if not self.base_url or not self.service_key:
            raise StorageError("Object store is not configured")
        return {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    def extract_path(self, url: str | None) -> str | None:
        """Map a public URL (or an already-relative path) back to a bucket path."""
        if not url or not isinstance(url, str):
            return None
        m = re.search(rf"/storage/v1/object/public/{re.escape(self.bucket)}/(.+)$", url)
        if m:
            return m.group(1)
        if url.startswith("landing-pages/"):
            return url
        return None

    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        headers = self._headers()
        headers["Content-Type"] = content_type
        headers["Cache-Control"] = "3600"
        headers["x-upsert"] = "false"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(
                f"{self.base_url}/storage/v1/object/{self.bucket}/{path}",
                content=content,
                headers=headers,
            )

        if r.status_code not in (200, 201):
            raise StorageError(f"Storage upload failed: {r.text}")

        return path

    async def remove(self, paths: list[str]) -> None:
        if not paths:
            return

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.request(
                "DELETE",
                f"{self.base_url}/storage/v1/object/{self.bucket}",
                json={"prefixes": paths},
                headers=self._headers(),
            )

        if r.status_code != 200:
            raise StorageError(f"Storage remove failed: {r.text}")

        logger.info("Removed stored objects", count=len(paths))


def get_storage_client() -> StorageClient:
    return StorageClient()
