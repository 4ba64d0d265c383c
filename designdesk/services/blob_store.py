"""Blob store - artifact uploads to Supabase Storage."""

import re
import time
from abc import ABC, abstractmethod

from designdesk.services.supabase_client import SupabaseClient
from designdesk.utils.config import StoreConfig
from designdesk.utils.errors import StoreError
from designdesk.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


def build_artifact_path(prefix: str, task_id: str, filename: str) -> str:
    """Build ``{prefix}/{task_id}/{millis}-{filename}`` with a path-safe filename."""
    safe_name = re.sub(r"[^A-Za-z0-9._-]+", "_", filename).strip("_") or "file"
    return f"{prefix}/{task_id}/{int(time.time() * 1000)}-{safe_name}"


class BlobStore(ABC):
    """Object storage for delivery and reference files."""

    @abstractmethod
    async def upload_artifact(
        self,
        data: bytes,
        path_hint: str,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload bytes and return the URL to store verbatim on the record."""
        ...


class SupabaseBlobStore(BlobStore):
    """Blob store backed by a Supabase Storage bucket."""

    def __init__(self, bucket: str = StoreConfig.DELIVERY_BUCKET):
        self.bucket = bucket

    async def upload_artifact(
        self,
        data: bytes,
        path_hint: str,
        content_type: str = "application/octet-stream",
    ) -> str:
        async with SupabaseClient() as client:
            try:
                storage = client.storage.from_(self.bucket)
                storage.upload(
                    path=path_hint,
                    file=data,
                    file_options={"content-type": content_type},
                )
                url = storage.get_public_url(path_hint)
            except Exception as e:
                raise StoreError(
                    f"Failed to upload artifact: {e}",
                    bucket=self.bucket,
                    path=path_hint
                ) from e

        logger.info(
            "Artifact uploaded",
            bucket=self.bucket,
            path=path_hint,
            size_bytes=len(data)
        )
        return url
