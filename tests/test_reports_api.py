"""Integration tests for the report CRUD, nearby and stats endpoints."""
from __future__ import annotations

import math
import os
from datetime import datetime
from typing import Callable, Iterator
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_civic_reports.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from civic_api.config import get_settings  # noqa: E402
from civic_api.database import Base, SessionLocal, engine  # noqa: E402
from civic_api.main import app  # noqa: E402
from civic_api.models import Report  # noqa: E402
from civic_api.services import OpenAccessPolicy, get_access_policy  # noqa: E402

BASE = "/api/v1/reports"


@pytest.fixture(scope="module", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        session.execute(delete(Report))
        session.commit()
    yield


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Client with the open policy so tests focus on report semantics."""

    app.dependency_overrides[get_access_policy] = OpenAccessPolicy
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def create(client: TestClient) -> Callable[..., dict]:
    def _create(**overrides) -> dict:
        payload = {
            "userId": "u1",
            "title": "Pothole near the bus stop",
            "description": "Deep pothole in the left lane",
            "category": "roads",
            "priority": "high",
            "latitude": 12.9,
            "longitude": 77.6,
            "address": "MG Road",
        }
        payload.update(overrides)
        response = client.post(f"{BASE}/create", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def test_create_report_defaults_department_from_category(client: TestClient) -> None:
    response = client.post(
        f"{BASE}/create",
        json={
            "userId": "u1",
            "title": "Broken road",
            "category": "roads",
            "latitude": 12.9,
            "longitude": 77.6,
            "address": "MG Road",
            "priority": "high",
        },
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Report created successfully"
    data = body["data"]
    assert data["id"]
    assert data["department"] == "Public Works"
    assert data["isResolved"] is False
    assert data["resolvedAt"] is None
    assert data["timeTakenToResolve"] is None
    assert data["mediaUrls"] == []
    assert data["createdAt"]


def test_create_report_keeps_explicit_department(create) -> None:
    data = create(category="water", department="Ward 12 Office")
    assert data["department"] == "Ward 12 Office"


def test_create_report_rejects_unknown_category(client: TestClient) -> None:
    response = client.post(
        f"{BASE}/create",
        json={
            "userId": "u1",
            "title": "Noise",
            "category": "noise",
            "priority": "low",
            "latitude": 1.0,
            "longitude": 1.0,
            "address": "Somewhere",
        },
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "category" in body["message"].lower()


def test_create_report_requires_coordinates(client: TestClient) -> None:
    response = client.post(
        f"{BASE}/create",
        json={"userId": "u1", "title": "No place", "category": "water", "priority": "low", "address": "?"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    fields = {item["field"] for item in body["error"]}
    assert {"latitude", "longitude"} <= fields


def test_create_report_rejects_out_of_range_latitude(client: TestClient) -> None:
    response = client.post(
        f"{BASE}/create",
        json={
            "userId": "u1",
            "title": "Off the map",
            "category": "other",
            "priority": "low",
            "latitude": 91.0,
            "longitude": 0.0,
            "address": "Nowhere",
        },
    )

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_get_report_returns_created_record(client: TestClient, create) -> None:
    created = create(mediaUrls=["https://cdn.test/a.jpg"], audioUrl="https://cdn.test/a.m4a")

    response = client.get(f"{BASE}/{created['id']}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == created["id"]
    assert data["mediaUrls"] == ["https://cdn.test/a.jpg"]
    assert data["audioUrl"] == "https://cdn.test/a.m4a"


def test_get_unknown_or_malformed_report_is_not_found(client: TestClient) -> None:
    assert client.get(f"{BASE}/{uuid4()}").status_code == 404
    response = client.get(f"{BASE}/not-a-uuid")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Report not found"}


def test_update_applies_only_provided_fields(client: TestClient, create) -> None:
    created = create()

    response = client.put(f"{BASE}/{created['id']}", json={"title": "Pothole fixed badly", "priority": "critical"})

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["title"] == "Pothole fixed badly"
    assert data["priority"] == "critical"
    assert data["description"] == created["description"]
    assert data["address"] == created["address"]


def test_update_category_rederives_department(client: TestClient, create) -> None:
    created = create()

    response = client.put(f"{BASE}/{created['id']}", json={"category": "electricity"})

    assert response.status_code == 200
    assert response.json()["data"]["department"] == "Electricity Board"


@pytest.mark.parametrize(
    "field,value",
    [
        ("isResolved", True),
        ("resolvedAt", "2026-01-01T00:00:00Z"),
        ("createdAt", "2020-01-01T00:00:00Z"),
        ("userId", "someone-else"),
    ],
)
def test_update_rejects_lifecycle_fields(client: TestClient, create, field: str, value) -> None:
    created = create()

    response = client.put(f"{BASE}/{created['id']}", json={field: value})

    assert response.status_code == 400
    assert "cannot be updated" in response.json()["message"]
    unchanged = client.get(f"{BASE}/{created['id']}").json()["data"]
    assert unchanged["isResolved"] is False
    assert unchanged["userId"] == "u1"


def test_update_missing_report_is_not_found(client: TestClient) -> None:
    response = client.put(f"{BASE}/{uuid4()}", json={"title": "x"})
    assert response.status_code == 404


def test_resolve_sets_timestamp_and_elapsed_time(client: TestClient, create) -> None:
    created = create()

    response = client.patch(f"{BASE}/{created['id']}/resolve")

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["message"] == "Report resolved successfully"
    data = body["data"]
    assert data["isResolved"] is True
    resolved_at = _parse(data["resolvedAt"])
    created_at = _parse(data["createdAt"])
    assert resolved_at >= created_at
    assert data["timeTakenToResolve"] >= 0
    assert math.isclose(data["timeTakenToResolve"], (resolved_at - created_at).total_seconds(), abs_tol=1e-3)


def test_resolve_twice_is_idempotent(client: TestClient, create) -> None:
    created = create()
    first = client.patch(f"{BASE}/{created['id']}/resolve").json()["data"]

    second = client.patch(f"{BASE}/{created['id']}/resolve")

    assert second.status_code == 200
    assert second.json()["message"] == "Report was already resolved"
    assert second.json()["data"]["resolvedAt"] == first["resolvedAt"]
    assert second.json()["data"]["timeTakenToResolve"] == first["timeTakenToResolve"]


def test_resolve_twice_conflicts_in_strict_mode(client: TestClient, create) -> None:
    strict_settings = get_settings().model_copy(update={"strict_resolve": True})
    app.dependency_overrides[get_settings] = lambda: strict_settings
    created = create()
    assert client.patch(f"{BASE}/{created['id']}/resolve").status_code == 200

    response = client.patch(f"{BASE}/{created['id']}/resolve")

    assert response.status_code == 409
    assert response.json() == {"success": False, "message": "Report is already resolved"}


def test_delete_then_get_is_not_found(client: TestClient, create) -> None:
    created = create()

    response = client.delete(f"{BASE}/{created['id']}")

    assert response.status_code == 200
    assert response.json()["data"] == {"id": created["id"]}
    assert client.get(f"{BASE}/{created['id']}").status_code == 404
    assert client.delete(f"{BASE}/{created['id']}").status_code == 404
    assert client.patch(f"{BASE}/{created['id']}/resolve").status_code == 404


def test_list_user_reports_paginates(client: TestClient, create) -> None:
    for index in range(25):
        create(title=f"Report {index}")
    create(userId="u2", title="Somebody else's")

    everything = client.get(f"{BASE}/user/u1", params={"limit": 100}).json()
    page_two = client.get(f"{BASE}/user/u1", params={"page": 2, "limit": 10})

    assert page_two.status_code == 200
    body = page_two.json()
    assert body["total"] == 25
    assert body["currentPage"] == 2
    assert body["totalPages"] == 3
    assert [item["id"] for item in body["data"]] == [item["id"] for item in everything["data"][10:20]]


def test_list_user_reports_filters_by_status_category_and_priority(client: TestClient, create) -> None:
    road = create(category="roads", priority="high")
    create(category="water", priority="low")
    create(category="roads", priority="low")
    client.patch(f"{BASE}/{road['id']}/resolve")

    resolved = client.get(f"{BASE}/user/u1", params={"status": "resolved"}).json()
    pending_roads = client.get(f"{BASE}/user/u1", params={"status": "pending", "category": "roads"}).json()
    low = client.get(f"{BASE}/user/u1", params={"priority": "low"}).json()

    assert [item["id"] for item in resolved["data"]] == [road["id"]]
    assert pending_roads["total"] == 1
    assert pending_roads["data"][0]["priority"] == "low"
    assert low["total"] == 2


def test_list_user_reports_rejects_unknown_status(client: TestClient) -> None:
    response = client.get(f"{BASE}/user/u1", params={"status": "archived"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_nearby_returns_sorted_reports_within_radius(client: TestClient, create) -> None:
    here = create(title="Here", latitude=12.9716, longitude=77.5946)
    close = create(title="Close", latitude=12.9816, longitude=77.5946)
    create(title="Far", latitude=13.0716, longitude=77.5946)

    response = client.get(f"{BASE}/nearby", params={"lat": 12.9716, "lng": 77.5946, "radius": 5})

    assert response.status_code == 200, response.text
    body = response.json()
    assert [item["id"] for item in body["data"]] == [here["id"], close["id"]]
    assert body["total"] == 2
    distances = [item["distanceKm"] for item in body["data"]]
    assert distances == sorted(distances)
    assert all(distance <= 5 for distance in distances)


def test_nearby_accepts_long_parameter_names_and_default_radius(client: TestClient, create) -> None:
    create(latitude=12.9716, longitude=77.5946)

    response = client.get(f"{BASE}/nearby", params={"latitude": 12.9716, "longitude": 77.5946})

    assert response.status_code == 200
    assert response.json()["total"] == 1


def test_nearby_requires_a_centre(client: TestClient) -> None:
    response = client.get(f"{BASE}/nearby", params={"radius": 3})
    assert response.status_code == 400


def test_user_stats_aggregates_counts(client: TestClient, create) -> None:
    first = create(category="roads", priority="high")
    create(category="roads", priority="low")
    create(category="water", priority="low")
    client.patch(f"{BASE}/{first['id']}/resolve")

    response = client.get(f"{BASE}/user/u1/stats")

    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["totalReports"] == 3
    assert stats["resolvedReports"] == 1
    assert stats["pendingReports"] == 2
    assert stats["reportsByCategory"] == {"roads": 2, "water": 1}
    assert stats["reportsByPriority"] == {"high": 1, "low": 2}
    assert stats["averageResolutionTime"] is not None
    assert stats["averageResolutionTime"] >= 0


def test_user_stats_for_unknown_user_are_empty(client: TestClient) -> None:
    stats = client.get(f"{BASE}/user/nobody/stats").json()["data"]
    assert stats["totalReports"] == 0
    assert stats["averageResolutionTime"] is None
    assert stats["reportsByCategory"] == {}


def test_health_and_api_info(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "healthy", "database": "ok"}
    assert client.get("/api").json()["service"] == get_settings().app_name
