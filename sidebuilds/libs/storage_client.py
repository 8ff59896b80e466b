"""
Supabase Storage Client Library

Provides a wrapper around the Supabase Storage REST API for:
- Uploading project images and avatars
- Building public URLs for stored objects
- Removing objects when their project is deleted
- Creating the public image buckets

Requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY environment variables.
"""

import logging
import os
import re
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES = ["image/png", "image/jpeg", "image/gif", "image/webp"]


class BucketConfig(BaseModel):
    """Storage bucket definition"""
    name: str
    public: bool = True
    file_size_limit: int
    allowed_mime_types: List[str] = IMAGE_MIME_TYPES


PROJECT_IMAGES = BucketConfig(name="project-images", file_size_limit=10 * 1024 * 1024)
USER_AVATARS = BucketConfig(name="user-avatars", file_size_limit=5 * 1024 * 1024)

BUCKETS = {bucket.name: bucket for bucket in (PROJECT_IMAGES, USER_AVATARS)}


class StorageError(Exception):
    """Custom exception for storage API errors"""
    def __init__(self, message: str, status_code: Optional[int] = None, response: Optional[Dict] = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.message)


class StorageClient:
    """
    Supabase Storage API Client

    Each call is a single request/response; there is no chunking or retry.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        service_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize storage client

        Args:
            url: Project URL. If not provided, will use SUPABASE_URL env var.
            service_key: Service role key. If not provided, will use SUPABASE_SERVICE_ROLE_KEY env var.
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.url = (url or os.environ.get("SUPABASE_URL") or "").rstrip("/")
        self.service_key = service_key or os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
        if not self.url or not self.service_key:
            raise StorageError("Storage is not configured. Please set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY.")

        self.headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.url}/storage/v1",
            headers=self.headers,
            transport=self.transport,
        )

    @staticmethod
    def _raise_for_error(response: httpx.Response, bucket: str) -> None:
        if response.status_code < 400:
            return

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or body.get("error") or response.text

        lowered = (message or "").lower()
        if "policy" in lowered:
            message = "Storage policy error: please check the bucket policies"
        elif "not found" in lowered and "bucket" in lowered:
            message = f'Storage bucket "{bucket}" not found'

        raise StorageError(message or "Storage request failed", status_code=response.status_code, response=body or None)

    def public_url(self, bucket: str, path: str) -> str:
        """Public URL of an object in a public bucket"""
        return f"{self.url}/storage/v1/object/public/{bucket}/{path}"

    @staticmethod
    def path_from_public_url(bucket: str, public_url: str) -> Optional[str]:
        """Object path inside `bucket`, or None if the URL points elsewhere"""
        match = re.search(rf"/{re.escape(bucket)}/(.+)$", public_url or "")
        return match.group(1) if match else None

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        """
        Upload an object

        Returns:
            Public URL of the uploaded object
        """
        async with self._client() as client:
            response = await client.post(
                f"/object/{bucket}/{path}",
                content=data,
                headers={
                    "Content-Type": content_type,
                    "Cache-Control": "max-age=3600",
                    "x-upsert": "true" if upsert else "false",
                },
            )
        self._raise_for_error(response, bucket)
        logger.info(f"Uploaded {bucket}/{path} ({len(data)} bytes)")
        return self.public_url(bucket, path)

    async def remove(self, bucket: str, paths: List[str]) -> List[Dict[str, Any]]:
        """Remove objects from a bucket"""
        async with self._client() as client:
            response = await client.request(
                "DELETE",
                f"/object/{bucket}",
                json={"prefixes": paths},
            )
        self._raise_for_error(response, bucket)
        return response.json()

    async def create_bucket(self, bucket: BucketConfig) -> bool:
        """
        Create a bucket

        Returns:
            True if it was created, False if it already existed
        """
        async with self._client() as client:
            response = await client.post(
                "/bucket",
                json={
                    "id": bucket.name,
                    "name": bucket.name,
                    "public": bucket.public,
                    "file_size_limit": bucket.file_size_limit,
                    "allowed_mime_types": bucket.allowed_mime_types,
                },
            )
        if response.status_code >= 400 and "already exists" in response.text.lower():
            return False
        self._raise_for_error(response, bucket.name)
        return True
