"""Async HTTP client for the civic reports API.

Every call returns an :class:`ApiResult` instead of raising, so callers can
distinguish a server-side rejection from a network failure or a malformed
response without wrapping each call in ``try``/``except``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import IO, Any, Literal, Mapping, Sequence, Union

import httpx
from pydantic.alias_generators import to_camel

ResultKind = Literal["ok", "server", "network", "unexpected"]
FileContent = Union[bytes, IO[bytes]]
UploadItem = tuple[str, FileContent, str]

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings passed explicitly to each client instance."""

    base_url: str
    timeout: float = 15.0
    access_token: str | None = None
    api_prefix: str = "/api/v1/reports"

    @property
    def reports_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.api_prefix.strip('/')}/"

    def headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers


@dataclass
class ApiResult:
    success: bool
    message: str
    data: Any = None
    error: Any = None
    status_code: int | None = None
    kind: ResultKind = "ok"
    total: int | None = None
    current_page: int | None = None
    total_pages: int | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


def _camelize(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {to_camel(key): value for key, value in payload.items()}


def _clean_params(params: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None}


class ReportsClient:
    """Thin async wrapper over the report endpoints.

    Use as an async context manager so the underlying connection pool is
    closed. Payload keys are given in snake_case and sent as camelCase.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._logger = logger or logging.getLogger(__name__)
        self._http = httpx.AsyncClient(
            base_url=config.reports_url,
            timeout=config.timeout,
            headers=config.headers(),
            transport=transport,
        )

    async def __aenter__(self) -> "ReportsClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> ApiResult:
        try:
            response = await self._http.request(method, path.lstrip("/"), **kwargs)
        except httpx.TransportError as exc:
            self._logger.warning("%s %s failed: %s", method, path, exc)
            return ApiResult(success=False, message=NETWORK_ERROR_MESSAGE, error=str(exc), kind="network")
        except Exception as exc:
            self._logger.exception("Unexpected error calling %s %s", method, path)
            return ApiResult(success=False, message=str(exc) or "Unexpected error", error=repr(exc), kind="unexpected")

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            self._logger.warning("%s %s returned a non-JSON body (status %d)", method, path, response.status_code)
            return ApiResult(
                success=False,
                message="Invalid response from server",
                status_code=response.status_code,
                kind="unexpected" if response.is_success else "server",
            )

        if not response.is_success or body.get("success") is False:
            message = body.get("message") or f"Request failed with status {response.status_code}"
            self._logger.info("%s %s rejected (%d): %s", method, path, response.status_code, message)
            return ApiResult(
                success=False,
                message=message,
                error=body.get("error"),
                status_code=response.status_code,
                kind="server",
                raw=body,
            )

        self._logger.debug("%s %s -> %d", method, path, response.status_code)
        return ApiResult(
            success=True,
            message=body.get("message", ""),
            data=body.get("data"),
            status_code=response.status_code,
            total=body.get("total"),
            current_page=body.get("currentPage"),
            total_pages=body.get("totalPages"),
            raw=body,
        )

    async def create_report(self, report: Mapping[str, Any]) -> ApiResult:
        payload = _camelize(report)
        payload.setdefault("mediaUrls", [])
        return await self._request("POST", "create", json=payload)

    async def get_report(self, report_id: str) -> ApiResult:
        return await self._request("GET", str(report_id))

    async def get_user_reports(
        self,
        user_id: str,
        *,
        page: int | None = None,
        limit: int | None = None,
        status: str | None = None,
        category: str | None = None,
        priority: str | None = None,
    ) -> ApiResult:
        params = _clean_params(
            {"page": page, "limit": limit, "status": status, "category": category, "priority": priority}
        )
        return await self._request("GET", f"user/{user_id}", params=params)

    async def get_user_stats(self, user_id: str) -> ApiResult:
        return await self._request("GET", f"user/{user_id}/stats")

    async def get_nearby_reports(
        self,
        latitude: float,
        longitude: float,
        radius: float = 5.0,
        *,
        page: int | None = None,
        limit: int | None = None,
        category: str | None = None,
        priority: str | None = None,
    ) -> ApiResult:
        params = _clean_params(
            {
                "lat": latitude,
                "lng": longitude,
                "radius": radius,
                "page": page,
                "limit": limit,
                "category": category,
                "priority": priority,
            }
        )
        return await self._request("GET", "nearby", params=params)

    async def update_report(self, report_id: str, changes: Mapping[str, Any]) -> ApiResult:
        return await self._request("PUT", str(report_id), json=_camelize(changes))

    async def resolve_report(self, report_id: str) -> ApiResult:
        return await self._request("PATCH", f"{report_id}/resolve")

    async def delete_report(self, report_id: str) -> ApiResult:
        return await self._request("DELETE", str(report_id))

    async def upload_report_media(
        self,
        media: Sequence[UploadItem] = (),
        audio: UploadItem | None = None,
        *,
        user_id: str = "",
    ) -> ApiResult:
        """Upload ``(filename, content, content_type)`` tuples in one request."""

        files: list[tuple[str, UploadItem]] = [("mediaFiles", item) for item in media]
        if audio is not None:
            files.append(("audioFile", audio))
        return await self._request("POST", "upload-media", files=files, data={"userId": user_id})

    async def upload_single_media(self, item: UploadItem, *, user_id: str = "") -> ApiResult:
        return await self._request("POST", "upload-single-media", files=[("mediaFile", item)], data={"userId": user_id})


__all__ = ["ApiResult", "ClientConfig", "ReportsClient", "NETWORK_ERROR_MESSAGE"]
