"""Project-wide constant values."""
from __future__ import annotations

REPORT_CATEGORIES: tuple[str, ...] = (
    "roads",
    "water",
    "sanitation",
    "electricity",
    "infrastructure",
    "environment",
    "safety",
    "other",
)

REPORT_PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "critical")

# Responsible department assigned when a report does not name one explicitly.
DEPARTMENT_MAP: dict[str, str] = {
    "roads": "Public Works",
    "water": "Water Board",
    "sanitation": "Sanitation Dept",
    "electricity": "Electricity Board",
    "infrastructure": "Municipal Corp",
    "environment": "Environment Dept",
    "safety": "Police Dept",
    "other": "General",
}

REPORT_STATUSES: tuple[str, ...] = ("resolved", "pending")

MAX_MEDIA_FILES = 10
MAX_AUDIO_FILES = 1

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100

__all__ = [
    "REPORT_CATEGORIES",
    "REPORT_PRIORITIES",
    "DEPARTMENT_MAP",
    "REPORT_STATUSES",
    "MAX_MEDIA_FILES",
    "MAX_AUDIO_FILES",
    "DEFAULT_PAGE_LIMIT",
    "MAX_PAGE_LIMIT",
]
