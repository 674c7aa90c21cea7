"""
FastAPI router for artwork endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Request, UploadFile
from starlette.datastructures import FormData

from auth import dependencies as auth_dependencies

from . import schemas
from .service import ArtworkService

router = APIRouter()


def get_artwork_service(request: Request) -> ArtworkService:
    return request.app.state.artworks


def _form_text(form: FormData, name: str) -> str | None:
    """
    Text field value as sent. FastAPI maps an empty form string to the
    parameter default, so blank and missing fields are read here instead.
    """
    value = form.get(name)
    return value if isinstance(value, str) else None


@router.post("/api/upload", response_model=schemas.UploadResponse)
async def upload_artwork(
    request: Request,
    image: UploadFile | None = File(default=None),
    _: None = Depends(auth_dependencies.require_write_access),
    service: ArtworkService = Depends(get_artwork_service),
) -> schemas.UploadResponse:
    """
    Upload one image (multipart field `image`) with optional title/description.
    """
    form = await request.form()
    artwork_id = await service.upload(
        image,
        title=_form_text(form, "title"),
        description=_form_text(form, "description"),
    )
    return schemas.UploadResponse(id=artwork_id)


@router.get("/api/artworks", response_model=list[schemas.ArtworkOut])
async def list_artworks(
    service: ArtworkService = Depends(get_artwork_service),
) -> list[schemas.ArtworkOut]:
    """
    All artworks, newest first. Public.
    """
    return await service.list_artworks()


@router.delete("/api/artworks/{artwork_id}", response_model=schemas.DeleteResponse)
async def delete_artwork(
    artwork_id: int,
    _: None = Depends(auth_dependencies.require_write_access),
    service: ArtworkService = Depends(get_artwork_service),
) -> schemas.DeleteResponse:
    await service.delete(artwork_id)
    return schemas.DeleteResponse()
