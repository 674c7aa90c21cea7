"""
Artwork "service layer".

Coordinates the two stores behind the HTTP routes:
- upload: write the blob first, then insert the row (abort on first failure)
- delete: look the row up, try to remove the blob, then remove the row anyway
- list: project rows into public URLs

The stores are never reconciled. A failed insert leaves an unreferenced blob,
and a failed blob delete leaves a blob with no row. Both are logged only.
"""

from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath, PureWindowsPath
from uuid import uuid4

from fastapi import HTTPException, UploadFile, status

from core.errors import ObjectStoreError, RecordStoreError
from core.settings import DEFAULT_MAX_UPLOAD_BYTES
from core.storage import ObjectStore

from . import schemas
from .repository import RecordStore

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

# artwork.id is a bigserial; anything outside this range cannot be a stored id.
MAX_ARTWORK_ID = 2**63 - 1

logger = logging.getLogger(__name__)


def safe_filename(filename: str) -> str:
    """
    Strip any client-supplied directory part and characters that don't belong
    in an object key. The extension is kept.
    """
    name = PureWindowsPath(PurePosixPath(filename or "").name).name
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name or "upload"


def make_object_key(filename: str) -> str:
    # The random prefix keeps keys unique even for repeated filenames.
    return f"{uuid4().hex}-{safe_filename(filename)}"


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read the upload into memory, enforcing a maximum size.
    """
    chunk_size = 1024 * 1024  # 1 MiB
    buf = bytearray()

    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Max is {max_bytes} bytes.",
            )

    return bytes(buf)


class ArtworkService:
    def __init__(
        self,
        records: RecordStore,
        objects: ObjectStore,
        *,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ) -> None:
        self.records = records
        self.objects = objects
        self.max_upload_bytes = max_upload_bytes

    async def upload(
        self,
        file: UploadFile | None,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> int:
        """
        Store the image, then its metadata row. Returns the new artwork id.
        """
        if file is None or not file.filename:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image file is required.")

        data = await read_upload_bytes(file, max_bytes=self.max_upload_bytes)
        object_key = make_object_key(file.filename)

        # ObjectStoreError propagates: no row is written for a blob that doesn't exist.
        await self.objects.put(object_key, data, file.content_type)

        try:
            artwork_id = await self.records.insert(
                title=title,
                description=description,
                object_key=object_key,
            )
        except RecordStoreError:
            logger.error("artwork_insert_failed orphaned_object_key=%s", object_key)
            raise

        logger.info(
            "artwork_uploaded id=%s object_key=%s size_bytes=%s",
            artwork_id,
            object_key,
            len(data),
        )
        return artwork_id

    async def list_artworks(self) -> list[schemas.ArtworkOut]:
        rows = await self.records.list_all()
        return [
            schemas.ArtworkOut(
                id=int(row["id"]),
                title=row["title"],
                description=row["description"],
                url=self.objects.resolve(str(row["object_key"])),
                uploaded_at=row["created_at"],
            )
            for row in rows
        ]

    async def delete(self, artwork_id: int) -> None:
        row = None
        if 1 <= artwork_id <= MAX_ARTWORK_ID:
            row = await self.records.get_by_id(artwork_id)
        if row is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Artwork not found.")

        object_key = str(row["object_key"])
        try:
            await self.objects.delete(object_key)
        except ObjectStoreError as exc:
            # Best-effort: a missing or unreachable blob must not block removing the row.
            logger.warning("artwork_blob_delete_failed id=%s object_key=%s error=%s", artwork_id, object_key, exc)

        deleted = await self.records.delete_by_id(artwork_id)
        if not deleted:
            # Another request removed the row between lookup and delete.
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Artwork not found.")

        logger.info("artwork_deleted id=%s object_key=%s", artwork_id, object_key)
