"""
SupabaseStorage - Wrapper for the Supabase Storage REST API

Provides the calls the car pipeline needs:
- upload: store one image blob, return its public URL
- remove: delete a batch of objects
- public URL <-> object path conversion
"""

import logging
import re
from typing import List, Optional
from urllib.parse import quote, urlparse

import httpx

from .results import ErrorKind, ServiceError

logger = logging.getLogger(__name__)


class StorageError(ServiceError):
    """An object storage call failed."""

    def __init__(self, message: str):
        super().__init__(ErrorKind.UPSTREAM, message)


class SupabaseStorage:
    """Client for one Supabase Storage bucket."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        bucket: str = "car-images",
        timeout: int = 30,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize storage client.

        Args:
            base_url: Supabase project URL (e.g., https://xyz.supabase.co)
            api_key: Service key used for both the apikey header and bearer auth
            bucket: Bucket holding car images
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self._client = httpx.Client(
            base_url=f"{self.base_url}/storage/v1",
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )
        self._path_re = re.compile(rf"/{re.escape(bucket)}/(.*)")

    def close(self) -> None:
        self._client.close()

    def public_url(self, path: str) -> str:
        """Public URL of an object in the bucket."""
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    def path_from_public_url(self, url: str) -> Optional[str]:
        """
        Object path of a public URL, or None when the URL does not point into the bucket.
        """
        try:
            pathname = urlparse(url).path
        except ValueError:
            return None
        m = self._path_re.search(pathname)
        return m.group(1) if m and m.group(1) else None

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """
        Upload one object.

        Returns:
            Public URL of the stored object

        Raises:
            StorageError: If the upload fails
        """
        try:
            response = self._client.post(
                f"/object/{self.bucket}/{quote(path)}",
                content=data,
                headers={"Content-Type": content_type, "x-upsert": "false"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Storage upload of {path} failed: {e}")
            raise StorageError(f"Failed to upload image: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(f"Storage upload of {path} failed: {message}")
            raise StorageError(f"Failed to upload image: {message}")

        return self.public_url(path)

    def remove(self, paths: List[str]) -> None:
        """
        Delete a batch of objects.

        Raises:
            StorageError: If the batch removal fails
        """
        if not paths:
            return
        try:
            response = self._client.request(
                "DELETE",
                f"/object/{self.bucket}",
                json={"prefixes": paths},
            )
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to delete images: {e}") from e

        if response.status_code >= 400:
            raise StorageError(f"Failed to delete images: {_error_message(response)}")


def _error_message(response: httpx.Response) -> str:
    """Best description of a failed storage response."""
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text}"
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or data)
    return f"HTTP {response.status_code}: {data}"
