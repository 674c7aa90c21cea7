"""Tests for the upload/delete coordination in ArtworkService."""

from __future__ import annotations

import io

import pytest
from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from artworks.service import ArtworkService, make_object_key, safe_filename
from core.errors import ObjectStoreError, RecordStoreError
from core.storage import ObjectStore


class RecordingObjectStore(ObjectStore):
    def __init__(self, *, fail_put: bool = False, fail_delete: bool = False) -> None:
        self.blobs: dict[str, tuple[bytes, str | None]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_put = fail_put
        self.fail_delete = fail_delete

    async def put(self, key, data, content_type=None):
        self.calls.append(("put", key))
        if self.fail_put:
            raise ObjectStoreError("put failed")
        self.blobs[key] = (data, content_type)
        return self.resolve(key)

    async def delete(self, key):
        self.calls.append(("delete", key))
        if self.fail_delete:
            raise ObjectStoreError("delete failed")
        del self.blobs[key]

    def resolve(self, key):
        return f"https://cdn.example/{key}"


def make_upload(filename: str | None = "cat.png", data: bytes = b"image-bytes") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": "image/png"}),
    )


@pytest.fixture
def store() -> RecordingObjectStore:
    return RecordingObjectStore()


@pytest.fixture
def service(records, store) -> ArtworkService:
    return ArtworkService(records, store)


@pytest.mark.asyncio
async def test_upload_writes_blob_then_row(service, records, store):
    artwork_id = await service.upload(make_upload(), title="Cat", description="Tabby")

    row = records.rows[artwork_id]
    assert row["title"] == "Cat"
    assert row["description"] == "Tabby"
    assert store.blobs[row["object_key"]] == (b"image-bytes", "image/png")
    assert store.calls == [("put", row["object_key"])]


@pytest.mark.asyncio
async def test_upload_without_file_raises_400(service, records, store):
    with pytest.raises(HTTPException) as exc_info:
        await service.upload(None, title="Cat")
    assert exc_info.value.status_code == 400
    assert records.rows == {}
    assert store.calls == []


@pytest.mark.asyncio
async def test_upload_with_empty_filename_raises_400(service, store):
    with pytest.raises(HTTPException) as exc_info:
        await service.upload(make_upload(filename=""))
    assert exc_info.value.status_code == 400
    assert store.calls == []


@pytest.mark.asyncio
async def test_upload_over_limit_raises_413(records, store):
    service = ArtworkService(records, store, max_upload_bytes=3)
    with pytest.raises(HTTPException) as exc_info:
        await service.upload(make_upload(data=b"12345"))
    assert exc_info.value.status_code == 413
    assert store.calls == []


@pytest.mark.asyncio
async def test_upload_put_failure_aborts_before_insert(records):
    service = ArtworkService(records, RecordingObjectStore(fail_put=True))
    with pytest.raises(ObjectStoreError):
        await service.upload(make_upload())
    assert records.rows == {}


@pytest.mark.asyncio
async def test_upload_insert_failure_keeps_blob(service, records, store):
    records.fail_insert = True
    with pytest.raises(RecordStoreError):
        await service.upload(make_upload())
    assert len(store.blobs) == 1
    assert records.rows == {}


@pytest.mark.asyncio
async def test_list_projects_urls(service, records):
    first = await service.upload(make_upload("a.png"), title="A")
    second = await service.upload(make_upload("b.png"), title="B")

    artworks = await service.list_artworks()

    assert [a.id for a in artworks] == [second, first]
    assert artworks[0].url == f"https://cdn.example/{records.rows[second]['object_key']}"
    assert artworks[0].uploaded_at == records.rows[second]["created_at"]


@pytest.mark.asyncio
async def test_delete_removes_blob_and_row(service, records, store):
    artwork_id = await service.upload(make_upload())
    key = records.rows[artwork_id]["object_key"]

    await service.delete(artwork_id)

    assert records.rows == {}
    assert store.blobs == {}
    assert store.calls[-1] == ("delete", key)


@pytest.mark.asyncio
async def test_delete_continues_when_blob_delete_fails(records, store):
    service = ArtworkService(records, store)
    keep = await service.upload(make_upload("keep.png"))
    drop = await service.upload(make_upload("drop.png"))
    store.fail_delete = True

    await service.delete(drop)

    assert list(records.rows) == [keep]
    assert len(store.blobs) == 2


@pytest.mark.asyncio
async def test_delete_unknown_id_raises_404_without_touching_store(service, store):
    with pytest.raises(HTTPException) as exc_info:
        await service.delete(42)
    assert exc_info.value.status_code == 404
    assert store.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("artwork_id", [0, -1, 2**63, 10**20])
async def test_delete_out_of_range_id_raises_404_without_lookup(service, store, artwork_id):
    service.records = None  # any store access would fail
    with pytest.raises(HTTPException) as exc_info:
        await service.delete(artwork_id)
    assert exc_info.value.status_code == 404
    assert store.calls == []


def test_object_key_keeps_filename_and_is_unique():
    first = make_object_key("cat.png")
    second = make_object_key("cat.png")
    assert first != second
    assert first.endswith("-cat.png")
    assert len(first.split("-", 1)[0]) == 32


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("cat.png", "cat.png"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\My Cat.PNG", "My_Cat.PNG"),
        ("..", "upload"),
        ("", "upload"),
    ],
)
def test_safe_filename(filename, expected):
    assert safe_filename(filename) == expected
