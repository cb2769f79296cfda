"""Convenience exports for service layer."""
from .access_policy import (
    AccessPolicy,
    OpenAccessPolicy,
    OwnerOrAdminPolicy,
    build_access_policy,
    get_access_policy,
)
from .auth_service import Actor, create_access_token, decode_access_token, get_optional_actor
from .media_service import MediaStorage, MediaUploadResult, upload_report_media, upload_single_media
from .report_service import (
    NearbyReport,
    ReportPage,
    ReportStats,
    create_report,
    delete_report,
    get_report,
    get_user_report_stats,
    list_nearby_reports,
    list_user_reports,
    resolve_report,
    update_report,
)
from .spaces_service import SpacesConfigurationError, SpacesMediaStorage, StoredObject, get_media_storage

__all__ = [
    "AccessPolicy",
    "OpenAccessPolicy",
    "OwnerOrAdminPolicy",
    "build_access_policy",
    "get_access_policy",
    "Actor",
    "create_access_token",
    "decode_access_token",
    "get_optional_actor",
    "MediaStorage",
    "MediaUploadResult",
    "upload_report_media",
    "upload_single_media",
    "NearbyReport",
    "ReportPage",
    "ReportStats",
    "create_report",
    "delete_report",
    "get_report",
    "get_user_report_stats",
    "list_nearby_reports",
    "list_user_reports",
    "resolve_report",
    "update_report",
    "SpacesConfigurationError",
    "SpacesMediaStorage",
    "StoredObject",
    "get_media_storage",
]
