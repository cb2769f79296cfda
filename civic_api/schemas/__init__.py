"""Convenience exports for schema layer."""
from .envelope import ApiResponse, PaginatedResponse, error_body
from .reports import (
    MediaUploadData,
    ReportCreateRequest,
    ReportResponse,
    ReportStatsResponse,
    ReportStatusFilter,
    ReportUpdateRequest,
    SingleMediaUploadData,
)

__all__ = [
    "ApiResponse",
    "PaginatedResponse",
    "error_body",
    "MediaUploadData",
    "ReportCreateRequest",
    "ReportResponse",
    "ReportStatsResponse",
    "ReportStatusFilter",
    "ReportUpdateRequest",
    "SingleMediaUploadData",
]
