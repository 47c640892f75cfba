"""Supabase Storage helpers for placing uploaded selfies in the avatars bucket."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Callable, Optional

from supabase import Client

from ..errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "avatars"


def build_storage_path(user_id: str, extension: str, token: Optional[str] = None) -> str:
    """Return ``{user_id}/{token}.{extension}`` with a fresh random token.

    The user id prefix is what the bucket policies partition access on, so it
    is always the first path segment.
    """

    if not user_id:
        raise ValueError("user_id is required to build a storage path")
    token = token or uuid.uuid4().hex
    return f"{user_id}/{token}.{extension}"


def _error_message(exc: BaseException) -> str:
    # storage3 raises with a dict payload ({"statusCode", "error", "message"}).
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    if exc.args and isinstance(exc.args[0], dict):
        payload = exc.args[0]
        for key in ("message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return str(exc) or exc.__class__.__name__


class AvatarStorage:
    """Wrapper around a single Supabase Storage bucket."""

    def __init__(self, client: Client, bucket: str = DEFAULT_BUCKET) -> None:
        self._client = client
        self._bucket = bucket

    @property
    def bucket(self) -> str:
        return self._bucket

    def _bucket_api(self) -> Any:
        return self._client.storage.from_(self._bucket)

    async def _execute(self, fn: Callable[[Any], Any]) -> Any:
        return await asyncio.to_thread(lambda: fn(self._bucket_api()))

    async def upload(self, path: str, content: bytes, content_type: str) -> None:
        """Store ``content`` under ``path``; failures become :class:`StorageError`."""

        try:
            await self._execute(
                lambda bucket: bucket.upload(path, content, {"content-type": content_type})
            )
        except Exception as exc:
            message = _error_message(exc)
            logger.warning("Upload of %s to bucket %s failed: %s", path, self._bucket, message)
            raise StorageError(message) from exc
        logger.info("Stored %d bytes at %s/%s", len(content), self._bucket, path)

    def get_public_url(self, path: str) -> str:
        """Resolve the public address of an object already stored at ``path``."""

        url = self._bucket_api().get_public_url(path)
        if not isinstance(url, str) or not url:
            raise StorageError(f"Storage returned no public URL for {path}")
        return url
