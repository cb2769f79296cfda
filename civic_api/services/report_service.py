"""Business rules and persistence for civic issue reports."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..constants import (
    DEFAULT_PAGE_LIMIT,
    DEPARTMENT_MAP,
    MAX_PAGE_LIMIT,
    REPORT_CATEGORIES,
    REPORT_PRIORITIES,
    REPORT_STATUSES,
)
from ..errors import CivicApiError, ConflictError, NotFoundError, ValidationError
from ..models import Report
from ..models.base import utcnow
from .geo import bounding_box, haversine_km, is_valid_coordinate

logger = logging.getLogger(__name__)

REQUIRED_CREATE_FIELDS: tuple[str, ...] = (
    "user_id",
    "title",
    "category",
    "priority",
    "latitude",
    "longitude",
    "address",
)

# Owned by create/resolve; never writable through update.
PROTECTED_FIELDS: frozenset[str] = frozenset(
    {"id", "user_id", "created_at", "is_resolved", "resolved_at", "time_taken_to_resolve"}
)

UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "title",
        "description",
        "category",
        "priority",
        "department",
        "media_urls",
        "audio_url",
        "latitude",
        "longitude",
        "address",
    }
)

DEFAULT_NEARBY_LIMIT = 20


@dataclass(frozen=True)
class ReportPage:
    items: list[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass(frozen=True)
class NearbyReport:
    report: Report
    distance_km: float


@dataclass(frozen=True)
class ReportStats:
    total_reports: int
    resolved_reports: int
    pending_reports: int
    reports_by_category: dict[str, int] = field(default_factory=dict)
    reports_by_priority: dict[str, int] = field(default_factory=dict)
    average_resolution_time: float | None = None


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on round trip; every stored timestamp is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_report_id(report_id: UUID | str) -> UUID:
    if isinstance(report_id, UUID):
        return report_id
    try:
        return UUID(str(report_id))
    except (TypeError, ValueError) as exc:
        raise NotFoundError() from exc


def _normalize_category(value: Any) -> str:
    category = (_clean_text(value) or "").lower()
    if category not in REPORT_CATEGORIES:
        raise ValidationError(
            f"Invalid category '{value}'",
            error={"field": "category", "allowed": list(REPORT_CATEGORIES)},
        )
    return category


def _normalize_priority(value: Any) -> str:
    priority = (_clean_text(value) or "").lower()
    if priority not in REPORT_PRIORITIES:
        raise ValidationError(
            f"Invalid priority '{value}'",
            error={"field": "priority", "allowed": list(REPORT_PRIORITIES)},
        )
    return priority


def _coerce_coordinates(latitude: Any, longitude: Any) -> tuple[float, float]:
    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Latitude and longitude must be numbers") from exc
    if not is_valid_coordinate(lat, lng):
        raise ValidationError(
            "Coordinates out of range",
            error={"latitude": "-90..90", "longitude": "-180..180"},
        )
    return lat, lng


def _normalize_media_urls(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise ValidationError("mediaUrls must be a list of URLs")
    urls: list[str] = []
    for item in value:
        url = _clean_text(item)
        if url is None:
            raise ValidationError("mediaUrls must not contain empty entries")
        urls.append(url)
    return urls


def _commit(db: Session, report: Report | None, action: str, report_id: UUID) -> None:
    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.warning("Concurrent modification while trying to %s report %s", action, report_id)
        raise ConflictError() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to %s report %s", action, report_id)
        raise CivicApiError(f"Unable to {action} report") from exc
    if report is not None:
        db.refresh(report)


def _load_for_update(db: Session, report_id: UUID | str) -> Report:
    """Fetch a report holding a row lock until the surrounding transaction ends."""

    uid = _parse_report_id(report_id)
    stmt = select(Report).where(Report.id == uid).with_for_update().execution_options(populate_existing=True)
    report = db.execute(stmt).scalar_one_or_none()
    if report is None:
        raise NotFoundError()
    return report


def create_report(db: Session, data: Mapping[str, Any]) -> Report:
    """Validate ``data`` and persist a new unresolved report."""

    missing = [name for name in REQUIRED_CREATE_FIELDS if _clean_text(data.get(name)) is None]
    if missing:
        raise ValidationError(
            "Missing required fields: " + ", ".join(missing),
            error={"missing": missing},
        )

    category = _normalize_category(data["category"])
    priority = _normalize_priority(data["priority"])
    latitude, longitude = _coerce_coordinates(data["latitude"], data["longitude"])

    report = Report(
        user_id=_clean_text(data["user_id"]),
        title=_clean_text(data["title"]),
        description=_clean_text(data.get("description")),
        category=category,
        priority=priority,
        department=_clean_text(data.get("department")) or DEPARTMENT_MAP[category],
        media_urls=_normalize_media_urls(data.get("media_urls")),
        audio_url=_clean_text(data.get("audio_url")),
        latitude=latitude,
        longitude=longitude,
        address=_clean_text(data["address"]),
        is_resolved=False,
    )

    db.add(report)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create report for user %s", report.user_id)
        raise CivicApiError("Unable to create report") from exc
    db.refresh(report)

    logger.info("Created report %s for user %s (%s)", report.id, report.user_id, report.category)
    return report


def get_report(db: Session, report_id: UUID | str) -> Report:
    report = db.get(Report, _parse_report_id(report_id))
    if report is None:
        raise NotFoundError()
    return report


def list_user_reports(
    db: Session,
    user_id: str,
    *,
    status: str | None = None,
    category: str | None = None,
    priority: str | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_LIMIT,
) -> ReportPage:
    """Return one page of a user's reports, newest first."""

    safe_page = max(1, int(page or 1))
    safe_limit = max(1, min(int(limit or DEFAULT_PAGE_LIMIT), MAX_PAGE_LIMIT))

    query = select(Report).where(Report.user_id == user_id)

    if status:
        normalized_status = status.strip().lower()
        if normalized_status not in REPORT_STATUSES:
            raise ValidationError(
                f"Invalid status '{status}'",
                error={"field": "status", "allowed": list(REPORT_STATUSES)},
            )
        query = query.where(Report.is_resolved.is_(normalized_status == "resolved"))
    if category:
        query = query.where(Report.category == _normalize_category(category))
    if priority:
        query = query.where(Report.priority == _normalize_priority(priority))

    total = int(db.scalar(select(func.count()).select_from(query.subquery())) or 0)
    rows = db.scalars(
        query.order_by(Report.created_at.desc(), Report.id)
        .offset((safe_page - 1) * safe_limit)
        .limit(safe_limit)
    ).all()

    return ReportPage(items=list(rows), total=total, page=safe_page, limit=safe_limit)


def update_report(db: Session, report_id: UUID | str, changes: Mapping[str, Any]) -> Report:
    """Apply the provided fields to an existing report."""

    protected = sorted(name for name in changes if name in PROTECTED_FIELDS)
    if protected:
        raise ValidationError(
            "Fields cannot be updated directly: " + ", ".join(protected),
            error={"protected": protected},
        )
    unknown = sorted(name for name in changes if name not in UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError("Unknown fields: " + ", ".join(unknown), error={"unknown": unknown})

    report = _load_for_update(db, report_id)
    try:
        _apply_changes(report, changes)
    except ValidationError:
        db.rollback()
        raise

    _commit(db, report, "update", report.id)
    logger.info("Updated report %s (%s)", report.id, ", ".join(sorted(changes)) or "no changes")
    return report


def _apply_changes(report: Report, changes: Mapping[str, Any]) -> None:
    for name in ("title", "address"):
        if name in changes:
            value = _clean_text(changes[name])
            if value is None:
                raise ValidationError(f"{name} cannot be empty")
            setattr(report, name, value)

    if "description" in changes:
        report.description = _clean_text(changes["description"])

    if "category" in changes:
        report.category = _normalize_category(changes["category"])
        if "department" not in changes:
            report.department = DEPARTMENT_MAP[report.category]

    if "department" in changes:
        report.department = _clean_text(changes["department"]) or DEPARTMENT_MAP[report.category]

    if "priority" in changes:
        report.priority = _normalize_priority(changes["priority"])

    if "media_urls" in changes:
        report.media_urls = _normalize_media_urls(changes["media_urls"])

    if "audio_url" in changes:
        report.audio_url = _clean_text(changes["audio_url"])

    if "latitude" in changes or "longitude" in changes:
        latitude, longitude = _coerce_coordinates(
            changes.get("latitude", report.latitude),
            changes.get("longitude", report.longitude),
        )
        report.latitude = latitude
        report.longitude = longitude


def resolve_report(
    db: Session,
    report_id: UUID | str,
    *,
    strict: bool = False,
    now: datetime | None = None,
) -> Report:
    """Mark a report resolved and record how long resolution took.

    Resolving twice is a no-op that keeps the original ``resolved_at`` unless
    ``strict`` is set, in which case :class:`ConflictError` is raised.
    """

    report = _load_for_update(db, report_id)

    if report.is_resolved:
        if strict:
            db.rollback()
            raise ConflictError("Report is already resolved")
        db.commit()
        logger.info("Report %s already resolved; leaving it unchanged", report.id)
        return report

    resolved_at = _as_utc(now or utcnow())
    elapsed = (resolved_at - _as_utc(report.created_at)).total_seconds()

    report.is_resolved = True
    report.resolved_at = resolved_at
    report.time_taken_to_resolve = max(0.0, elapsed)

    _commit(db, report, "resolve", report.id)
    logger.info("Resolved report %s after %.0f seconds", report.id, report.time_taken_to_resolve)
    return report


def delete_report(db: Session, report_id: UUID | str) -> None:
    report = _load_for_update(db, report_id)
    deleted_id = report.id
    db.delete(report)
    _commit(db, None, "delete", deleted_id)
    logger.info("Deleted report %s", deleted_id)


def list_nearby_reports(
    db: Session,
    latitude: float,
    longitude: float,
    radius_km: float = 5.0,
    *,
    category: str | None = None,
    priority: str | None = None,
    page: int = 1,
    limit: int = DEFAULT_NEARBY_LIMIT,
) -> ReportPage:
    """Return reports within ``radius_km`` of the point, closest first."""

    center_lat, center_lng = _coerce_coordinates(latitude, longitude)
    try:
        radius = float(radius_km)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Radius must be a number") from exc
    if math.isnan(radius) or math.isinf(radius) or radius < 0:
        raise ValidationError("Radius must be a non-negative number of kilometres")

    safe_page = max(1, int(page or 1))
    safe_limit = max(1, min(int(limit or DEFAULT_NEARBY_LIMIT), MAX_PAGE_LIMIT))

    box = bounding_box(center_lat, center_lng, radius)
    query = select(Report).where(
        Report.latitude.is_not(None),
        Report.longitude.is_not(None),
        Report.latitude.between(box.min_lat, box.max_lat),
    )
    if box.min_lng is not None and box.max_lng is not None:
        query = query.where(Report.longitude.between(box.min_lng, box.max_lng))
    if category:
        query = query.where(Report.category == _normalize_category(category))
    if priority:
        query = query.where(Report.priority == _normalize_priority(priority))

    matches: list[NearbyReport] = []
    for report in db.scalars(query):
        distance = haversine_km(center_lat, center_lng, report.latitude, report.longitude)
        if distance <= radius:
            matches.append(NearbyReport(report=report, distance_km=distance))

    matches.sort(key=lambda item: (item.distance_km, str(item.report.id)))

    start = (safe_page - 1) * safe_limit
    return ReportPage(
        items=matches[start : start + safe_limit],
        total=len(matches),
        page=safe_page,
        limit=safe_limit,
    )


def get_user_report_stats(db: Session, user_id: str) -> ReportStats:
    """Aggregate counts and mean resolution time for one user's reports."""

    owned = Report.user_id == user_id

    by_category = {
        category: int(count)
        for category, count in db.execute(
            select(Report.category, func.count(Report.id)).where(owned).group_by(Report.category)
        ).all()
    }
    by_priority = {
        priority: int(count)
        for priority, count in db.execute(
            select(Report.priority, func.count(Report.id)).where(owned).group_by(Report.priority)
        ).all()
    }

    total = sum(by_category.values())
    resolved = int(
        db.scalar(select(func.count(Report.id)).where(owned, Report.is_resolved.is_(True))) or 0
    )
    average = db.scalar(
        select(func.avg(Report.time_taken_to_resolve)).where(owned, Report.is_resolved.is_(True))
    )

    return ReportStats(
        total_reports=total,
        resolved_reports=resolved,
        pending_reports=total - resolved,
        reports_by_category=by_category,
        reports_by_priority=by_priority,
        average_resolution_time=float(average) if average is not None else None,
    )


__all__ = [
    "NearbyReport",
    "ReportPage",
    "ReportStats",
    "PROTECTED_FIELDS",
    "create_report",
    "get_report",
    "list_user_reports",
    "update_report",
    "resolve_report",
    "delete_report",
    "list_nearby_reports",
    "get_user_report_stats",
]
