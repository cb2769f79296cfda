"""Report endpoints: media intake, CRUD, nearby search and statistics."""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..database import get_session
from ..errors import ValidationError
from ..models import Report
from ..schemas import (
    ApiResponse,
    MediaUploadData,
    PaginatedResponse,
    ReportCreateRequest,
    ReportResponse,
    ReportStatsResponse,
    ReportStatusFilter,
    ReportUpdateRequest,
    SingleMediaUploadData,
)
from ..services import (
    AccessPolicy,
    Actor,
    MediaStorage,
    create_report,
    delete_report,
    get_access_policy,
    get_media_storage,
    get_optional_actor,
    get_report,
    get_user_report_stats,
    list_nearby_reports,
    list_user_reports,
    resolve_report,
    update_report,
    upload_report_media,
    upload_single_media,
)

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


def _to_response(report: Report, distance_km: float | None = None) -> ReportResponse:
    response = ReportResponse.model_validate(report)
    if distance_km is not None:
        response.distance_km = round(distance_km, 3)
    return response


def _upload_folder(user_id: str | None) -> str:
    owner = (user_id or "").strip()
    return f"reports/{owner}" if owner else "reports"


@router.post("/upload-media", response_model=ApiResponse[MediaUploadData])
async def upload_media_endpoint(
    media_files: list[UploadFile] | None = File(default=None, alias="mediaFiles"),
    audio_files: list[UploadFile] | None = File(default=None, alias="audioFile"),
    user_id: str | None = Form(default=None, alias="userId"),
    storage: MediaStorage = Depends(get_media_storage),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[MediaUploadData]:
    result = await upload_report_media(
        storage,
        media_files,
        audio_files,
        folder=_upload_folder(user_id),
        max_bytes=settings.max_upload_bytes,
        concurrency=settings.upload_concurrency,
    )
    return ApiResponse(
        message="Media uploaded successfully",
        data=MediaUploadData(media_urls=result.media_urls, audio_url=result.audio_url),
    )


@router.post("/upload-single-media", response_model=ApiResponse[SingleMediaUploadData])
async def upload_single_media_endpoint(
    media_file: UploadFile = File(..., alias="mediaFile"),
    user_id: str | None = Form(default=None, alias="userId"),
    storage: MediaStorage = Depends(get_media_storage),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[SingleMediaUploadData]:
    url = await upload_single_media(
        storage,
        media_file,
        folder=_upload_folder(user_id),
        max_bytes=settings.max_upload_bytes,
    )
    return ApiResponse(message="Media uploaded successfully", data=SingleMediaUploadData(media_url=url))


@router.post("/create", response_model=ApiResponse[ReportResponse], status_code=status.HTTP_201_CREATED)
async def create_report_endpoint(
    payload: ReportCreateRequest,
    db: Session = Depends(get_session),
    actor: Actor | None = Depends(get_optional_actor),
    policy: AccessPolicy = Depends(get_access_policy),
) -> ApiResponse[ReportResponse]:
    policy.authorize(actor, "create", payload.user_id)
    report = create_report(db, payload.model_dump())
    return ApiResponse(message="Report created successfully", data=_to_response(report))


@router.get("/user/{user_id}", response_model=PaginatedResponse[list[ReportResponse]])
async def list_user_reports_endpoint(
    user_id: str,
    status_filter: ReportStatusFilter | None = Query(default=None, alias="status"),
    category: str | None = None,
    priority: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_session),
) -> PaginatedResponse[list[ReportResponse]]:
    result = list_user_reports(
        db,
        user_id,
        status=status_filter,
        category=category,
        priority=priority,
        page=page,
        limit=limit,
    )
    return PaginatedResponse(
        message="User reports fetched successfully",
        data=[_to_response(report) for report in result.items],
        total=result.total,
        current_page=result.page,
        total_pages=result.total_pages,
    )


@router.get("/user/{user_id}/stats", response_model=ApiResponse[ReportStatsResponse])
async def user_report_stats_endpoint(
    user_id: str,
    db: Session = Depends(get_session),
) -> ApiResponse[ReportStatsResponse]:
    stats = get_user_report_stats(db, user_id)
    return ApiResponse(message="User report stats fetched successfully", data=ReportStatsResponse(**asdict(stats)))


@router.get("/nearby", response_model=PaginatedResponse[list[ReportResponse]])
async def nearby_reports_endpoint(
    lat: float | None = None,
    lng: float | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    radius: float | None = Query(default=None, description="Search radius in kilometres"),
    category: str | None = None,
    priority: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> PaginatedResponse[list[ReportResponse]]:
    center_lat = lat if lat is not None else latitude
    center_lng = lng if lng is not None else longitude
    if center_lat is None or center_lng is None:
        raise ValidationError("lat and lng query parameters are required")

    result = list_nearby_reports(
        db,
        center_lat,
        center_lng,
        radius if radius is not None else settings.nearby_default_radius_km,
        category=category,
        priority=priority,
        page=page,
        limit=limit,
    )
    return PaginatedResponse(
        message="Nearby reports fetched successfully",
        data=[_to_response(item.report, item.distance_km) for item in result.items],
        total=result.total,
        current_page=result.page,
        total_pages=result.total_pages,
    )


@router.get("/{report_id}", response_model=ApiResponse[ReportResponse])
async def get_report_endpoint(report_id: str, db: Session = Depends(get_session)) -> ApiResponse[ReportResponse]:
    report = get_report(db, report_id)
    return ApiResponse(message="Report fetched successfully", data=_to_response(report))


@router.put("/{report_id}", response_model=ApiResponse[ReportResponse])
async def update_report_endpoint(
    report_id: str,
    payload: ReportUpdateRequest,
    db: Session = Depends(get_session),
    actor: Actor | None = Depends(get_optional_actor),
    policy: AccessPolicy = Depends(get_access_policy),
) -> ApiResponse[ReportResponse]:
    existing = get_report(db, report_id)
    policy.authorize(actor, "update", existing.user_id)
    report = update_report(db, report_id, payload.model_dump(exclude_unset=True))
    return ApiResponse(message="Report updated successfully", data=_to_response(report))


@router.delete("/{report_id}", response_model=ApiResponse[dict[str, str]])
async def delete_report_endpoint(
    report_id: str,
    db: Session = Depends(get_session),
    actor: Actor | None = Depends(get_optional_actor),
    policy: AccessPolicy = Depends(get_access_policy),
) -> ApiResponse[dict[str, str]]:
    existing = get_report(db, report_id)
    policy.authorize(actor, "delete", existing.user_id)
    deleted_id = str(existing.id)
    delete_report(db, report_id)
    return ApiResponse(message="Report deleted successfully", data={"id": deleted_id})


@router.patch("/{report_id}/resolve", response_model=ApiResponse[ReportResponse])
async def resolve_report_endpoint(
    report_id: str,
    db: Session = Depends(get_session),
    actor: Actor | None = Depends(get_optional_actor),
    policy: AccessPolicy = Depends(get_access_policy),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[ReportResponse]:
    existing = get_report(db, report_id)
    policy.authorize(actor, "resolve", existing.user_id)
    already_resolved = bool(existing.is_resolved)
    report = resolve_report(db, report_id, strict=settings.strict_resolve)
    message = "Report was already resolved" if already_resolved else "Report resolved successfully"
    return ApiResponse(message=message, data=_to_response(report))


__all__ = ["router"]
