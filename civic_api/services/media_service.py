"""Validation and upload orchestration for report photos, videos and audio."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from fastapi import UploadFile

from ..constants import MAX_AUDIO_FILES, MAX_MEDIA_FILES
from ..errors import PayloadTooLargeError, StorageError, UnsupportedMediaTypeError, ValidationError
from .spaces_service import StoredObject

logger = logging.getLogger(__name__)

VISUAL_TYPE_PREFIXES: tuple[str, ...] = ("image/", "video/")
AUDIO_TYPE_PREFIXES: tuple[str, ...] = ("audio/",)


class MediaStorage(Protocol):
    async def upload(self, file: UploadFile, *, folder: str) -> StoredObject: ...

    async def delete(self, key: str) -> None: ...


@dataclass(frozen=True)
class MediaUploadResult:
    media_urls: list[str]
    audio_url: str | None = None


def _content_type(file: UploadFile) -> str:
    return (file.content_type or "").split(";", 1)[0].strip().lower()


def _file_size(file: UploadFile) -> int:
    size = getattr(file, "size", None)
    if size is not None:
        return int(size)
    buffer = file.file
    position = buffer.tell()
    buffer.seek(0, 2)
    end = buffer.tell()
    buffer.seek(position)
    return end


def _check_file(file: UploadFile, allowed_prefixes: tuple[str, ...], max_bytes: int) -> None:
    filename = (file.filename or "").strip()
    if not filename:
        raise ValidationError("Uploaded file must include a filename.")

    content_type = _content_type(file)
    if not content_type.startswith(allowed_prefixes):
        raise UnsupportedMediaTypeError(
            f"Unsupported media type '{content_type or 'unknown'}' for {filename}",
            error={"filename": filename, "allowed": [f"{prefix}*" for prefix in allowed_prefixes]},
        )

    size = _file_size(file)
    if size > max_bytes:
        raise PayloadTooLargeError(
            f"{filename} exceeds the {max_bytes} byte upload limit",
            error={"filename": filename, "size": size, "limit": max_bytes},
        )


async def _discard(storage: MediaStorage, stored: Sequence[StoredObject]) -> None:
    for obj in stored:
        try:
            await storage.delete(obj.key)
        except Exception:
            logger.warning("Unable to remove orphaned media object %s", obj.key, exc_info=True)


async def upload_report_media(
    storage: MediaStorage,
    media_files: Sequence[UploadFile] | None,
    audio_files: Sequence[UploadFile] | None = None,
    *,
    folder: str = "reports",
    max_bytes: int,
    concurrency: int = 4,
) -> MediaUploadResult:
    """Upload a batch of report attachments; either every file is stored or none is.

    Files are validated before any upload starts. Returned media URLs follow
    the order of ``media_files``.
    """

    visual = list(media_files or [])
    audio = list(audio_files or [])

    if not visual and not audio:
        raise ValidationError("No media files were provided")
    if len(visual) > MAX_MEDIA_FILES:
        raise PayloadTooLargeError(f"At most {MAX_MEDIA_FILES} media files can be uploaded per request")
    if len(audio) > MAX_AUDIO_FILES:
        raise PayloadTooLargeError(f"At most {MAX_AUDIO_FILES} audio file can be uploaded per request")

    for file in visual:
        _check_file(file, VISUAL_TYPE_PREFIXES, max_bytes)
    for file in audio:
        _check_file(file, AUDIO_TYPE_PREFIXES, max_bytes)

    semaphore = asyncio.Semaphore(max(1, concurrency))
    stored: list[StoredObject] = []

    async def _store(file: UploadFile) -> StoredObject:
        async with semaphore:
            obj = await storage.upload(file, folder=folder)
        stored.append(obj)
        return obj

    results = await asyncio.gather(*(_store(file) for file in [*visual, *audio]), return_exceptions=True)

    failures = [result for result in results if isinstance(result, BaseException)]
    if failures:
        await _discard(storage, stored)
        first = failures[0]
        logger.warning("Media upload to %s failed; discarded %d stored object(s)", folder, len(stored))
        if isinstance(first, StorageError) or not isinstance(first, Exception):
            raise first
        raise StorageError("Media upload failed; no files were kept") from first

    objects = [result for result in results if isinstance(result, StoredObject)]
    media_urls = [obj.url for obj in objects[: len(visual)]]
    audio_url = objects[len(visual)].url if audio else None

    logger.info("Uploaded %d media file(s) and %d audio file(s) to %s", len(visual), len(audio), folder)
    return MediaUploadResult(media_urls=media_urls, audio_url=audio_url)


async def upload_single_media(
    storage: MediaStorage,
    file: UploadFile,
    *,
    folder: str = "reports",
    max_bytes: int,
) -> str:
    """Upload one image, video or audio file and return its public URL."""

    _check_file(file, VISUAL_TYPE_PREFIXES + AUDIO_TYPE_PREFIXES, max_bytes)
    obj = await storage.upload(file, folder=folder)
    return obj.url


__all__ = [
    "AUDIO_TYPE_PREFIXES",
    "VISUAL_TYPE_PREFIXES",
    "MediaStorage",
    "MediaUploadResult",
    "upload_report_media",
    "upload_single_media",
]
