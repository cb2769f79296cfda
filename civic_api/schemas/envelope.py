"""Uniform response envelope shared by every report endpoint."""
from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import Field

from .reports import CamelModel

DataT = TypeVar("DataT")


class ApiResponse(CamelModel, Generic[DataT]):
    success: bool = True
    message: str
    data: DataT | None = None
    error: Any | None = None


class PaginatedResponse(ApiResponse[DataT], Generic[DataT]):
    total: int = Field(..., ge=0)
    current_page: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)


def error_body(message: str, error: Any = None) -> dict[str, Any]:
    """Return the failure envelope as a plain JSON-ready dict."""

    body: dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    return body


__all__ = ["ApiResponse", "PaginatedResponse", "error_body"]
