"""DigitalOcean Spaces blob storage for report media."""
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable
from urllib.parse import urlparse

from boto3.session import Session
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from ..config import get_settings
from ..errors import StorageError
from ..security.secrets import MissingSecretError, is_placeholder, require_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpacesConfig:
    """Validated connection details for the Spaces bucket."""

    key: str
    secret: str
    region: str
    bucket: str
    api_endpoint: str
    public_endpoint: str


@dataclass(frozen=True)
class StoredObject:
    """Location of an object after a successful upload."""

    url: str
    key: str
    bucket: str
    content_type: str


class SpacesConfigurationError(StorageError):
    """Raised when required Spaces settings are missing or invalid."""

    status_code = 500
    default_message = "Media storage is not configured"


@lru_cache(maxsize=1)
def load_spaces_config() -> SpacesConfig:
    """Read and validate the Spaces configuration from settings."""

    settings = get_settings()
    required = {
        "DO_SPACES_KEY": settings.spaces_key,
        "DO_SPACES_SECRET": settings.spaces_secret,
        "DO_SPACES_REGION": settings.spaces_region,
        "DO_SPACES_NAME": settings.spaces_bucket,
        "DO_SPACES_ENDPOINT": settings.spaces_endpoint,
    }
    missing = sorted(name for name, value in required.items() if is_placeholder(value))
    if missing:
        raise SpacesConfigurationError("Missing required DigitalOcean Spaces configuration: " + ", ".join(missing))

    try:
        values = {name: require_value(name, value) for name, value in required.items()}
    except MissingSecretError as exc:
        raise SpacesConfigurationError(str(exc)) from exc

    region = values["DO_SPACES_REGION"]
    bucket = values["DO_SPACES_NAME"]

    public_endpoint = values["DO_SPACES_ENDPOINT"].rstrip("/")
    parsed = urlparse(public_endpoint)
    if not parsed.scheme:
        public_endpoint = f"https://{public_endpoint.lstrip(':/')}"
        parsed = urlparse(public_endpoint)
    if not (parsed.netloc or parsed.path):
        raise SpacesConfigurationError("DO_SPACES_ENDPOINT must include a hostname.")

    return SpacesConfig(
        key=values["DO_SPACES_KEY"],
        secret=values["DO_SPACES_SECRET"],
        region=region,
        bucket=bucket,
        api_endpoint=f"https://{region}.digitaloceanspaces.com",
        public_endpoint=parsed.geturl().rstrip("/"),
    )


@lru_cache(maxsize=1)
def get_spaces_client() -> BaseClient:
    """Create a singleton boto3 S3 client for the Spaces region."""

    config = load_spaces_config()
    return Session().client(
        "s3",
        region_name=config.region,
        endpoint_url=config.api_endpoint,
        aws_access_key_id=config.key,
        aws_secret_access_key=config.secret,
    )


def _sanitize_segments(parts: Iterable[str]) -> list[str]:
    sanitized: list[str] = []
    for part in parts:
        if part in {"", ".", ".."}:
            continue
        cleaned = re.sub(r"[^A-Za-z0-9._-]", "-", part.strip())
        cleaned = re.sub(r"-+", "-", cleaned).strip("-._")
        if cleaned:
            sanitized.append(cleaned)
    return sanitized


def object_key(filename: str | None, folder: str) -> str:
    """Generate a unique key under ``folder`` keeping a safe file extension."""

    extension = Path(filename or "").suffix.lower()
    if extension and not re.fullmatch(r"\.[A-Za-z0-9]{1,10}", extension):
        extension = ""

    safe_folder = "/".join(_sanitize_segments((folder or "").replace("\\", "/").split("/"))) or "reports"
    return f"{safe_folder}/{uuid.uuid4().hex}{extension}"


class SpacesMediaStorage:
    """Media storage backed by a Spaces bucket with public-read objects."""

    def __init__(self, config: SpacesConfig, client: BaseClient | None = None) -> None:
        self._config = config
        self._client = client

    @property
    def client(self) -> BaseClient:
        if self._client is None:
            self._client = get_spaces_client()
        return self._client

    def public_url(self, key: str) -> str:
        normalized_key = key.lstrip("/")
        endpoint = self._config.public_endpoint.rstrip("/")
        return f"{endpoint}/{normalized_key}" if normalized_key else endpoint

    async def upload(self, file: UploadFile, *, folder: str) -> StoredObject:
        key = object_key(file.filename, folder)
        content_type = (file.content_type or "application/octet-stream").strip() or "application/octet-stream"
        file_obj = getattr(file, "file", None)
        if file_obj is None:
            raise StorageError("Uploaded file is missing its data buffer")

        def _upload() -> None:
            try:
                file_obj.seek(0)
                self.client.upload_fileobj(
                    file_obj,
                    self._config.bucket,
                    key,
                    ExtraArgs={"ACL": "public-read", "ContentType": content_type},
                )
            except (ClientError, BotoCoreError) as exc:  # pragma: no cover - network bound
                logger.exception("Upload of %s to Spaces failed", key)
                raise StorageError("Upload to media storage failed") from exc

        await run_in_threadpool(_upload)
        logger.info("Stored %s (%s) in bucket %s", key, content_type, self._config.bucket)
        return StoredObject(url=self.public_url(key), key=key, bucket=self._config.bucket, content_type=content_type)

    async def delete(self, key: str) -> None:
        if not key:
            return
        normalized_key = key.lstrip("/")

        def _delete() -> None:
            try:
                self.client.delete_object(Bucket=self._config.bucket, Key=normalized_key)
            except (ClientError, BotoCoreError) as exc:  # pragma: no cover - network bound
                logger.exception("Failed to delete Spaces object %s", normalized_key)
                raise StorageError("Unable to delete media from storage") from exc

        await run_in_threadpool(_delete)


def get_media_storage() -> SpacesMediaStorage:
    """FastAPI dependency returning the configured storage backend."""

    return SpacesMediaStorage(load_spaces_config())


__all__ = [
    "SpacesConfig",
    "SpacesConfigurationError",
    "SpacesMediaStorage",
    "StoredObject",
    "get_media_storage",
    "get_spaces_client",
    "load_spaces_config",
    "object_key",
]
