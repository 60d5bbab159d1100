"""Schemas for catalog images."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Visibility = Literal["public", "private"]
SortField = Literal["stars", "created_at", "updated_at"]


class ImageResponse(BaseModel):
    """
    Image as returned by listing, detail and mutation endpoints.

    is_starred is computed per caller and is always False for anonymous callers.
    """

    id: str
    org_id: str
    name: str
    description: str
    author: str
    registry: str
    namespace: str
    repository: str
    tag: str
    digest: str
    size: int
    readme_path: str
    readme_url: str = ""
    stars: int
    visibility: str
    platform: str
    labels: list[str] = Field(default_factory=list)
    is_starred: bool = False
    created_at: datetime
    updated_at: datetime


class ImageListResponse(BaseModel):
    data: list[ImageResponse]
    total: int = Field(..., ge=0)


class ImageCreate(BaseModel):
    """Fields for a new image; the readme file travels separately as multipart."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="")
    registry: str = Field(..., min_length=1, max_length=255)
    namespace: str = Field(default="", max_length=255)
    repository: str = Field(..., min_length=1, max_length=255)
    tag: str = Field(..., min_length=1, max_length=128)
    digest: str = Field(..., min_length=1, max_length=255)
    size: int = Field(default=0, ge=0)
    visibility: Visibility = "public"
    platform: str = Field(..., min_length=1, max_length=64)
    labels: list[str] = Field(default_factory=list)


class ImageUpdate(BaseModel):
    """Partial update: None or empty string leaves a field unchanged; empty labels keep the set."""

    name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    registry: str | None = Field(default=None, max_length=255)
    namespace: str | None = Field(default=None, max_length=255)
    repository: str | None = Field(default=None, max_length=255)
    tag: str | None = Field(default=None, max_length=128)
    visibility: Visibility | None = None
    platform: str | None = Field(default=None, max_length=64)
    labels: list[str] | None = None
