"""Uploads to backend storage buckets for chat attachments, posts and avatars."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePath
from uuid import uuid4

from ..backend import BackendClient, InvalidRequestError
from ..config import get_settings
from ..constants import MEDIA_TYPES

logger = logging.getLogger(__name__)

_CONTENT_TYPES = {"image": "image/jpeg", "video": "video/mp4"}
_DEFAULT_EXTENSIONS = {"image": "jpg", "video": "mp4"}


@dataclass(slots=True)
class MediaUpload:
    data: bytes
    media_type: str
    extension: str = ""

    def storage_path(self) -> str:
        extension = (self.extension or _DEFAULT_EXTENSIONS.get(self.media_type, "bin")).lstrip(".")
        return f"{self.media_type}s/{uuid4().hex}.{extension}"

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES[self.media_type]


def media_type_for(content_type: str | None, declared: str | None = None) -> str:
    """Resolve ``image``/``video`` from an explicit value or a MIME type."""

    if declared:
        candidate = declared
    else:
        candidate = (content_type or "").split("/", 1)[0]
    if candidate not in MEDIA_TYPES:
        raise InvalidRequestError(f"Unsupported media type '{candidate or content_type}'")
    return candidate


def extension_of(filename: str | None) -> str:
    suffix = PurePath(filename or "").suffix.lstrip(".").lower()
    return suffix[:8]


def validate_upload(media: MediaUpload) -> None:
    if media.media_type not in MEDIA_TYPES:
        raise InvalidRequestError(f"Unsupported media type '{media.media_type}'")
    if not media.data:
        raise InvalidRequestError("Upload is empty")
    limit = get_settings().max_upload_bytes
    if len(media.data) > limit:
        raise InvalidRequestError(f"Upload exceeds {limit} bytes")


async def upload_media(
    backend: BackendClient,
    media: MediaUpload,
    *,
    bucket: str | None = None,
    upsert: bool = True,
) -> str:
    """Store ``media`` and return its public URL."""

    validate_upload(media)
    bucket_name = bucket or get_settings().media_bucket
    path = media.storage_path()
    await backend.upload(bucket_name, path, media.data, content_type=media.content_type, upsert=upsert)
    logger.debug("Uploaded %d bytes to %s/%s", len(media.data), bucket_name, path)
    return backend.public_url(bucket_name, path)


__all__ = ["MediaUpload", "media_type_for", "extension_of", "validate_upload", "upload_media"]
