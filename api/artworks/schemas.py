"""
Artwork API schemas (response models).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ArtworkOut(BaseModel):
    id: int
    title: str | None = None
    description: str | None = None
    url: str
    uploaded_at: datetime


class UploadResponse(BaseModel):
    success: bool = True
    id: int


class DeleteResponse(BaseModel):
    success: bool = True
