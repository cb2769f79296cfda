"""Integration tests for report media intake."""
from __future__ import annotations

import asyncio
import os
from io import BytesIO
from typing import Iterator

import pytest
from fastapi import UploadFile
from fastapi.testclient import TestClient
from starlette.datastructures import Headers

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_civic_reports.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from civic_api.config import get_settings  # noqa: E402
from civic_api.errors import StorageError  # noqa: E402
from civic_api.main import app  # noqa: E402
from civic_api.services import spaces_service  # noqa: E402
from civic_api.services.media_service import upload_report_media  # noqa: E402
from civic_api.services.spaces_service import SpacesConfig, SpacesMediaStorage, StoredObject, get_media_storage  # noqa: E402

BASE = "/api/v1/reports"


class FakeStorage:
    """In-memory stand-in for the Spaces bucket."""

    def __init__(self, *, fail_on: str | None = None, delays: dict[str, float] | None = None) -> None:
        self.fail_on = fail_on
        self.delays = delays or {}
        self.uploaded: list[StoredObject] = []
        self.deleted: list[str] = []

    async def upload(self, file: UploadFile, *, folder: str) -> StoredObject:
        await asyncio.sleep(self.delays.get(file.filename or "", 0))
        if file.filename == self.fail_on:
            raise StorageError("Upload to media storage failed")
        key = f"{folder}/{file.filename}"
        stored = StoredObject(
            url=f"https://cdn.test/{key}",
            key=key,
            bucket="test-bucket",
            content_type=file.content_type or "",
        )
        self.uploaded.append(stored)
        return stored

    async def delete(self, key: str) -> None:
        self.deleted.append(key)


class FakeS3Client:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):  # noqa: N803
        self.calls.append({"body": fileobj.read(), "bucket": bucket, "key": key, "extra": ExtraArgs})

    def delete_object(self, Bucket, Key):  # noqa: N803
        self.calls.append({"deleted": Key, "bucket": Bucket})


@pytest.fixture(autouse=True)
def _reset_spaces_cache() -> Iterator[None]:
    spaces_service.load_spaces_config.cache_clear()
    spaces_service.get_spaces_client.cache_clear()
    yield
    spaces_service.load_spaces_config.cache_clear()
    spaces_service.get_spaces_client.cache_clear()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def client(storage: FakeStorage) -> Iterator[TestClient]:
    app.dependency_overrides[get_media_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _upload(name: str, content_type: str, body: bytes = b"data") -> UploadFile:
    return UploadFile(file=BytesIO(body), filename=name, headers=Headers({"content-type": content_type}))


def test_upload_media_returns_urls_in_request_order(client: TestClient, storage: FakeStorage) -> None:
    storage.delays = {"first.jpg": 0.05, "second.png": 0.0, "third.mp4": 0.02}

    response = client.post(
        f"{BASE}/upload-media",
        files=[
            ("mediaFiles", ("first.jpg", b"one", "image/jpeg")),
            ("mediaFiles", ("second.png", b"two", "image/png")),
            ("mediaFiles", ("third.mp4", b"three", "video/mp4")),
            ("audioFile", ("note.m4a", b"voice", "audio/mp4")),
        ],
        data={"userId": "u1"},
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    assert body["data"]["mediaUrls"] == [
        "https://cdn.test/reports/u1/first.jpg",
        "https://cdn.test/reports/u1/second.png",
        "https://cdn.test/reports/u1/third.mp4",
    ]
    assert body["data"]["audioUrl"] == "https://cdn.test/reports/u1/note.m4a"


def test_upload_media_without_audio(client: TestClient) -> None:
    response = client.post(f"{BASE}/upload-media", files=[("mediaFiles", ("a.jpg", b"x", "image/jpeg"))])

    assert response.status_code == 200
    assert response.json()["data"] == {"mediaUrls": ["https://cdn.test/reports/a.jpg"], "audioUrl": None}


def test_upload_media_requires_files(client: TestClient) -> None:
    response = client.post(f"{BASE}/upload-media", data={"userId": "u1"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_upload_media_rejects_more_than_ten_files(client: TestClient, storage: FakeStorage) -> None:
    files = [("mediaFiles", (f"{index}.jpg", b"x", "image/jpeg")) for index in range(11)]

    response = client.post(f"{BASE}/upload-media", files=files)

    assert response.status_code == 413
    assert storage.uploaded == []


def test_upload_media_rejects_second_audio_file(client: TestClient, storage: FakeStorage) -> None:
    response = client.post(
        f"{BASE}/upload-media",
        files=[
            ("audioFile", ("a.mp3", b"x", "audio/mpeg")),
            ("audioFile", ("b.mp3", b"y", "audio/mpeg")),
        ],
    )

    assert response.status_code == 413
    assert storage.uploaded == []


@pytest.mark.parametrize(
    "field,filename,content_type",
    [
        ("mediaFiles", "notes.txt", "text/plain"),
        ("mediaFiles", "song.mp3", "audio/mpeg"),
        ("audioFile", "photo.jpg", "image/jpeg"),
    ],
)
def test_upload_media_rejects_wrong_types_before_uploading(
    client: TestClient, storage: FakeStorage, field: str, filename: str, content_type: str
) -> None:
    response = client.post(
        f"{BASE}/upload-media",
        files=[
            ("mediaFiles", ("ok.jpg", b"x", "image/jpeg")),
            (field, (filename, b"y", content_type)),
        ],
    )

    assert response.status_code == 415
    assert response.json()["error"]["filename"] == filename
    assert storage.uploaded == []


def test_upload_media_rejects_oversized_files(client: TestClient, storage: FakeStorage) -> None:
    small = get_settings().model_copy(update={"max_upload_bytes": 8})
    app.dependency_overrides[get_settings] = lambda: small

    response = client.post(
        f"{BASE}/upload-media",
        files=[("mediaFiles", ("big.jpg", b"0123456789", "image/jpeg"))],
    )

    assert response.status_code == 413
    assert storage.uploaded == []


def test_failed_upload_discards_stored_files(client: TestClient, storage: FakeStorage) -> None:
    storage.fail_on = "broken.png"

    response = client.post(
        f"{BASE}/upload-media",
        files=[
            ("mediaFiles", ("a.jpg", b"x", "image/jpeg")),
            ("mediaFiles", ("broken.png", b"y", "image/png")),
            ("audioFile", ("c.m4a", b"z", "audio/mp4")),
        ],
    )

    assert response.status_code == 502
    assert response.json()["success"] is False
    assert sorted(storage.deleted) == sorted(obj.key for obj in storage.uploaded)
    assert len(storage.deleted) == 2


def test_unexpected_upload_error_is_wrapped() -> None:
    class ExplodingStorage(FakeStorage):
        async def upload(self, file: UploadFile, *, folder: str) -> StoredObject:
            if file.filename == "b.jpg":
                raise OSError("disk on fire")
            return await super().upload(file, folder=folder)

    exploding = ExplodingStorage()

    with pytest.raises(StorageError) as excinfo:
        asyncio.run(
            upload_report_media(
                exploding,
                [_upload("a.jpg", "image/jpeg"), _upload("b.jpg", "image/jpeg")],
                max_bytes=1024,
            )
        )

    assert excinfo.value.message == "Media upload failed; no files were kept"
    assert exploding.deleted == ["reports/a.jpg"]


def test_upload_single_media(client: TestClient) -> None:
    response = client.post(
        f"{BASE}/upload-single-media",
        files={"mediaFile": ("clip.mp3", b"x", "audio/mpeg")},
        data={"userId": "u 2"},
    )

    assert response.status_code == 200, response.text
    assert response.json()["data"] == {"mediaUrl": "https://cdn.test/reports/u 2/clip.mp3"}


def test_upload_single_media_rejects_documents(client: TestClient) -> None:
    response = client.post(
        f"{BASE}/upload-single-media",
        files={"mediaFile": ("doc.pdf", b"x", "application/pdf")},
    )
    assert response.status_code == 415


def test_upload_fails_when_spaces_config_missing(monkeypatch) -> None:
    bare = get_settings().model_copy(
        update={
            "spaces_key": None,
            "spaces_secret": None,
            "spaces_region": None,
            "spaces_bucket": None,
            "spaces_endpoint": None,
        }
    )
    monkeypatch.setattr(spaces_service, "get_settings", lambda: bare)

    with TestClient(app) as client:
        response = client.post(f"{BASE}/upload-media", files=[("mediaFiles", ("a.jpg", b"x", "image/jpeg"))])

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert "DO_SPACES_KEY" in body["message"]


def test_spaces_storage_uploads_public_objects() -> None:
    config = SpacesConfig(
        key="key",
        secret="secret",
        region="blr1",
        bucket="civic-media",
        api_endpoint="https://blr1.digitaloceanspaces.com",
        public_endpoint="https://civic-media.blr1.cdn.digitaloceanspaces.com",
    )
    fake_client = FakeS3Client()
    store = SpacesMediaStorage(config, client=fake_client)

    stored = asyncio.run(store.upload(_upload("Photo.JPG", "image/jpeg", b"pixels"), folder="reports/../u 1"))

    assert stored.key.startswith("reports/u-1/")
    assert stored.key.endswith(".jpg")
    assert stored.url == f"https://civic-media.blr1.cdn.digitaloceanspaces.com/{stored.key}"
    call = fake_client.calls[0]
    assert call["body"] == b"pixels"
    assert call["bucket"] == "civic-media"
    assert call["extra"] == {"ACL": "public-read", "ContentType": "image/jpeg"}

    asyncio.run(store.delete(stored.key))
    assert fake_client.calls[-1] == {"deleted": stored.key, "bucket": "civic-media"}


def test_rollback_keeps_deleting_after_a_failed_delete() -> None:
    class FlakyDeleteStorage(FakeStorage):
        def __init__(self) -> None:
            super().__init__(fail_on="c.jpg")
            self.delete_attempts: list[str] = []

        async def delete(self, key: str) -> None:
            self.delete_attempts.append(key)
            if key.endswith("a.jpg"):
                raise OSError("bucket unavailable")
            await super().delete(key)

    flaky = FlakyDeleteStorage()

    with pytest.raises(StorageError) as excinfo:
        asyncio.run(
            upload_report_media(
                flaky,
                [_upload("a.jpg", "image/jpeg"), _upload("b.jpg", "image/jpeg"), _upload("c.jpg", "image/jpeg")],
                max_bytes=1024,
            )
        )

    assert excinfo.value.message == "Upload to media storage failed"
    assert sorted(flaky.delete_attempts) == ["reports/a.jpg", "reports/b.jpg"]
    assert flaky.deleted == ["reports/b.jpg"]
