"""Schemas for deployment lookups."""

from typing import Any

from pydantic import BaseModel, Field


class DeployRequest(BaseModel):
    provider_id: str = Field(..., min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)


class DeployResponse(BaseModel):
    provider_name: str
    api_url: str
    params: dict[str, Any] | None = None
