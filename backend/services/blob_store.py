"""Blob storage for raw document bytes using Supabase Storage."""
import logging
from typing import List, Optional

from supabase import create_client, Client

from config import SUPABASE_URL, SUPABASE_KEY, STORAGE_LIST_PAGE_SIZE

logger = logging.getLogger(__name__)


class BlobNotFoundError(Exception):
    """Raised when a stored object cannot be retrieved."""


class BlobStore:
    """Store and fetch document files in Supabase Storage buckets."""

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        client: Optional[Client] = None,
        page_size: int = STORAGE_LIST_PAGE_SIZE
    ):
        """
        Initialize the blob store.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            client: Existing client to share (skips credential checks)
            page_size: Entries per list or remove call

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if client is None:
            if not supabase_url or not supabase_key:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
            client = create_client(supabase_url, supabase_key)

        self.client: Client = client
        self.page_size = page_size

    def put(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        """
        Upload an object, replacing any existing one under the same key.

        Raises:
            RuntimeError: If the upload fails
        """
        try:
            self.client.storage.from_(bucket).upload(
                key,
                data,
                {"content-type": content_type, "upsert": "true"}
            )
            logger.info(f"Stored {len(data)} bytes at {bucket}/{key}")
        except Exception as e:
            error_msg = f"Failed to store object {bucket}/{key}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def get(self, bucket: str, key: str) -> bytes:
        """
        Download an object.

        Raises:
            BlobNotFoundError: If the object is missing or unreadable
        """
        try:
            return self.client.storage.from_(bucket).download(key)
        except Exception as e:
            logger.warning(f"Failed to fetch object {bucket}/{key}: {str(e)}")
            raise BlobNotFoundError(f"{bucket}/{key}") from e

    def flush(self, bucket: str) -> int:
        """
        Remove every object in a bucket.

        Objects live under "{document_id}/{filename}", so each top-level
        folder is listed and its files removed.

        Returns:
            Number of objects removed

        Raises:
            RuntimeError: If listing or removal fails
        """
        storage = self.client.storage.from_(bucket)
        try:
            paths: List[str] = []
            for entry in self._list_all(storage, ""):
                name = entry["name"]
                # Folders are listed without an id
                if entry.get("id") is None:
                    paths.extend(f"{name}/{child['name']}" for child in self._list_all(storage, name))
                else:
                    paths.append(name)

            for start in range(0, len(paths), self.page_size):
                storage.remove(paths[start:start + self.page_size])
            logger.info(f"Removed {len(paths)} objects from bucket {bucket}")
            return len(paths)
        except Exception as e:
            error_msg = f"Failed to flush bucket {bucket}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def _list_all(self, storage, path: str) -> List[dict]:
        """List every entry under a path; the storage API returns one page per call."""
        entries: List[dict] = []
        offset = 0
        while True:
            page = storage.list(path, {"limit": self.page_size, "offset": offset})
            entries.extend(page)
            if len(page) < self.page_size:
                return entries
            offset += self.page_size

    def health_check(self, bucket: str) -> bool:
        """Return True when the bucket can be listed."""
        try:
            self.client.storage.from_(bucket).list()
            return True
        except Exception as e:
            logger.warning(f"Blob store health check failed: {str(e)}")
            return False
