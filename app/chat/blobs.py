"""
Blob store adapter for message image attachments.

Messages store blob ids (storage names) in Message.images. Resolving them to
URLs and deleting them goes through BlobStore, which wraps a Django storage
backend selected by settings.CHAT_BLOB_STORAGE.

Failure model:
    - get_url() returns None for a missing blob or a storage error; callers
      omit that attachment instead of failing the listing.
    - delete() raises whatever the storage raises.
    - delete_quietly() is the capability used by cascades: it logs and
      suppresses per-blob failures so attachment cleanup never aborts row
      deletion.

Usage:
    from chat.blobs import get_blob_store

    store = get_blob_store()
    urls = [url for url in map(store.get_url, message.images) if url]
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from django.conf import settings
from django.core.files.storage import Storage, storages

logger = logging.getLogger(__name__)


class BlobStore:
    """Thin adapter over a Django storage backend."""

    def __init__(self, storage: Storage | None = None):
        self.storage = storage or storages[settings.CHAT_BLOB_STORAGE]

    def get_url(self, blob_id: str) -> str | None:
        """
        Resolve a blob id to a URL.

        Returns:
            The URL, or None when the blob is missing or the storage fails.
        """
        if not blob_id:
            return None
        try:
            if not self.storage.exists(blob_id):
                return None
            return self.storage.url(blob_id)
        except Exception:
            logger.warning(f"Could not resolve URL for blob {blob_id}", exc_info=True)
            return None

    def get_urls(self, blob_ids: Iterable[str]) -> list[str]:
        """Resolve several blobs, dropping the ones that do not resolve."""
        return [url for url in (self.get_url(blob_id) for blob_id in blob_ids) if url]

    def delete(self, blob_id: str) -> None:
        self.storage.delete(blob_id)

    def delete_quietly(self, blob_ids: Iterable[str]) -> int:
        """
        Best-effort deletion of several blobs.

        Each failure is logged with the blob id and skipped.

        Returns:
            Number of blobs whose deletion did not raise.
        """
        deleted = 0
        for blob_id in blob_ids:
            if not blob_id:
                continue
            try:
                self.delete(blob_id)
            except Exception:
                logger.warning(f"Failed to delete blob {blob_id}", exc_info=True)
                continue
            deleted += 1
        return deleted


def get_blob_store() -> BlobStore:
    """Return the blob store configured for chat attachments."""
    return BlobStore()
