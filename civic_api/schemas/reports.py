"""Schemas for civic issue reports."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


ReportStatusFilter = Literal["resolved", "pending"]


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReportCreateRequest(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    user_id: str = Field(..., min_length=1, max_length=64)
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    category: str
    priority: str
    department: str | None = Field(default=None, max_length=120)
    media_urls: list[str] = Field(default_factory=list)
    audio_url: str | None = None
    latitude: float
    longitude: float
    address: str = Field(..., min_length=1, max_length=500)


class ReportUpdateRequest(CamelModel):
    """Partial update payload.

    Lifecycle fields are declared so the service can reject them explicitly
    instead of silently dropping them.
    """

    title: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    category: str | None = None
    priority: str | None = None
    department: str | None = Field(default=None, max_length=120)
    media_urls: list[str] | None = None
    audio_url: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    address: str | None = Field(default=None, max_length=500)

    id: str | None = None
    user_id: str | None = None
    created_at: datetime | None = None
    is_resolved: bool | None = None
    resolved_at: datetime | None = None
    time_taken_to_resolve: float | None = None


class ReportResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: UUID
    user_id: str
    title: str
    description: str | None = None
    category: str
    priority: str
    department: str
    media_urls: list[str] = Field(default_factory=list)
    audio_url: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    address: str | None = None
    is_resolved: bool
    created_at: datetime
    updated_at: datetime | None = None
    resolved_at: datetime | None = None
    time_taken_to_resolve: float | None = Field(default=None, description="Seconds from creation to resolution")
    distance_km: float | None = Field(default=None, description="Only present on nearby searches")

    @field_validator("created_at", "updated_at", "resolved_at")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        # Timestamps are stored in UTC; some backends return them naive.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ReportStatsResponse(CamelModel):
    total_reports: int
    resolved_reports: int
    pending_reports: int
    reports_by_category: dict[str, int]
    reports_by_priority: dict[str, int]
    average_resolution_time: float | None = Field(default=None, description="Mean seconds to resolve")


class MediaUploadData(CamelModel):
    media_urls: list[str]
    audio_url: str | None = None


class SingleMediaUploadData(CamelModel):
    media_url: str


__all__ = [
    "CamelModel",
    "ReportStatusFilter",
    "ReportCreateRequest",
    "ReportUpdateRequest",
    "ReportResponse",
    "ReportStatsResponse",
    "MediaUploadData",
    "SingleMediaUploadData",
]
