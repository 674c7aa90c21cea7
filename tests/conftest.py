"""Test configuration and fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from core.errors import ObjectStoreError, RecordStoreError
from core.settings import Settings
from core.storage import LocalObjectStore
from main import create_app

AUTH_TOKEN = "s3cret-token"

INT8_MAX = 2**63 - 1


def _check_int8(artwork_id: int) -> None:
    # Same failure PostgreSQL gives when an id cannot be encoded as bigint.
    if not -INT8_MAX - 1 <= artwork_id <= INT8_MAX:
        raise RecordStoreError(f"invalid input for query argument $1: {artwork_id} (value out of int64 range)")


class InMemoryRecordStore:
    """Record store with the same contract as ArtworkRepository, kept in a dict."""

    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self._next_id = 1
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.fail_insert = False
        self.fail_list = False

    async def insert(self, *, title: str | None, description: str | None, object_key: str) -> int:
        if self.fail_insert:
            raise RecordStoreError("insert failed: database is read-only")
        artwork_id = self._next_id
        self._next_id += 1
        self._clock += timedelta(seconds=1)
        self.rows[artwork_id] = {
            "id": artwork_id,
            "title": title,
            "description": description,
            "object_key": object_key,
            "created_at": self._clock,
        }
        return artwork_id

    async def list_all(self) -> list[dict[str, Any]]:
        if self.fail_list:
            raise RecordStoreError("connection refused")
        return sorted(self.rows.values(), key=lambda r: (r["created_at"], r["id"]), reverse=True)

    async def get_by_id(self, artwork_id: int) -> dict[str, Any] | None:
        _check_int8(artwork_id)
        row = self.rows.get(artwork_id)
        return dict(row) if row is not None else None

    async def delete_by_id(self, artwork_id: int) -> bool:
        _check_int8(artwork_id)
        return self.rows.pop(artwork_id, None) is not None


class BrokenPutStore(LocalObjectStore):
    async def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
        raise ObjectStoreError("disk full")


class BrokenDeleteStore(LocalObjectStore):
    async def delete(self, key: str) -> None:
        raise ObjectStoreError("bucket unreachable")


@pytest.fixture
def records() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def objects(upload_dir) -> LocalObjectStore:
    return LocalObjectStore(upload_dir)


@pytest.fixture
def make_client(records, objects) -> Iterator[Callable[..., TestClient]]:
    """Build a TestClient around the in-memory record store and a local object store."""
    clients: list[TestClient] = []

    def _make(object_store: LocalObjectStore | None = None, **settings_overrides: Any) -> TestClient:
        settings = Settings(**settings_overrides)
        app = create_app(settings, records=records, objects=object_store or objects)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


@pytest.fixture
def production_client(make_client) -> TestClient:
    return make_client(environment="production", auth_token=AUTH_TOKEN)


def upload(client: TestClient, filename: str = "cat.png", title: str | None = "Cat", **headers: str):
    data = {"title": title} if title is not None else {}
    return client.post(
        "/api/upload",
        files={"image": (filename, b"\x89PNG fake image bytes", "image/png")},
        data=data,
        headers=headers,
    )
