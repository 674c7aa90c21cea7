"""
Artwork persistence.
This module is where artwork-related SQL lives.

Every method is a single statement; there are no multi-statement transactions.
"""

from __future__ import annotations

from typing import Any, Protocol

from core.db import Database
from core.errors import RecordStoreError

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS artwork (
  id bigserial PRIMARY KEY,
  title text,
  description text,
  object_key text NOT NULL CHECK (object_key <> ''),
  created_at timestamptz NOT NULL DEFAULT now()
)
"""


class RecordStore(Protocol):
    async def insert(self, *, title: str | None, description: str | None, object_key: str) -> int: ...

    async def list_all(self) -> list[dict[str, Any]]: ...

    async def get_by_id(self, artwork_id: int) -> dict[str, Any] | None: ...

    async def delete_by_id(self, artwork_id: int) -> bool: ...


def _deleted_count(status: str) -> int:
    """
    asyncpg returns the command tag ("DELETE 1") instead of a row count.
    """
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


class ArtworkRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    async def ensure_schema(self) -> None:
        await self._db.execute(SCHEMA_SQL)

    async def insert(self, *, title: str | None, description: str | None, object_key: str) -> int:
        """
        Insert an artwork row and return its id.
        """
        artwork_id = await self._db.fetch_val(
            """
            INSERT INTO artwork (title, description, object_key)
            VALUES ($1, $2, $3)
            RETURNING id
            """,
            title,
            description,
            object_key,
        )
        if artwork_id is None:
            raise RecordStoreError("Failed to insert artwork.")
        return int(artwork_id)

    async def list_all(self) -> list[dict[str, Any]]:
        """
        All artworks, newest first. Rows sharing a created_at come back in
        descending id order.
        """
        return await self._db.fetch_all(
            """
            SELECT id, title, description, object_key, created_at
            FROM artwork
            ORDER BY created_at DESC, id DESC
            """
        )

    async def get_by_id(self, artwork_id: int) -> dict[str, Any] | None:
        return await self._db.fetch_one(
            """
            SELECT id, title, description, object_key, created_at
            FROM artwork
            WHERE id = $1
            """,
            artwork_id,
        )

    async def delete_by_id(self, artwork_id: int) -> bool:
        status = await self._db.execute("DELETE FROM artwork WHERE id = $1", artwork_id)
        return _deleted_count(status) > 0

    async def count(self) -> int:
        value = await self._db.fetch_val("SELECT count(*) FROM artwork")
        return int(value or 0)

