"""
API endpoint tests (FastAPI TestClient on a temporary SQLite store)
"""
import json

import pytest
from fastapi.testclient import TestClient

from parts_catalog.api import routes
from parts_catalog.database.sqlite_store import SqlitePartStore
from parts_catalog.models.part_models import new_id
from parts_catalog.services.catalog_service import CatalogService
from parts_catalog.services.part_generator import PartGenerator


@pytest.fixture
def client(tmp_path, monkeypatch):
    service = CatalogService(
        store=SqlitePartStore(str(tmp_path / "parts.db")),
        generator=PartGenerator(seed=3),
    )
    monkeypatch.setattr(routes, "catalog", service)
    with TestClient(routes.app) as test_client:
        yield test_client


@pytest.fixture
def generated(client):
    response = client.post("/api/parts/generate", params={"count": 12})
    assert response.status_code == 201
    return response.json()


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_empty_listing(client):
    body = client.get("/api/parts").json()

    assert body["success"] is True
    assert body["count"] == 0
    assert body["total"] == 0
    assert body["filters"] == "None"
    assert body["pagination"] == {"currentPage": 1, "totalPages": 0, "hasMore": False}
    assert body["data"] == []


def test_generate_returns_sample(generated):
    assert generated["success"] is True
    assert generated["count"] == 12
    assert generated["message"] == "Successfully generated 12 random parts"
    assert 0 < len(generated["data"]) <= 10
    assert {"partNumber", "childParts", "category", "createdAt"} <= set(generated["data"][0])


def test_generate_rejects_non_positive_count(client):
    response = client.post("/api/parts/generate", params={"count": 0})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_pagination_walk(client, generated):
    first = client.get("/api/parts", params={"limit": 5}).json()
    last = client.get("/api/parts", params={"limit": 5, "page": 3}).json()
    beyond = client.get("/api/parts", params={"limit": 5, "page": 9}).json()

    assert first["count"] == 5
    assert first["pagination"] == {"currentPage": 1, "totalPages": 3, "hasMore": True}
    assert last["count"] == 2
    assert last["pagination"]["hasMore"] is False
    assert beyond["count"] == 0
    assert beyond["pagination"] == {"currentPage": 9, "totalPages": 3, "hasMore": False}

    ids = [p["id"] for page in (1, 2, 3) for p in client.get("/api/parts", params={"limit": 5, "page": page}).json()["data"]]
    assert len(set(ids)) == 12


def test_non_numeric_page_falls_back_to_first(client, generated):
    body = client.get("/api/parts", params={"page": "abc", "limit": "zero"}).json()
    assert body["pagination"]["currentPage"] == 1
    assert body["count"] == 12


def test_filters_are_echoed(client, generated):
    body = client.get("/api/parts", params={"globalSearch": "component", "partNumber": "ignored"}).json()

    assert list(body["filters"]) == ["or"]
    assert len(body["filters"]["or"]) == 7
    assert body["total"] == 12


def test_category_filter_semantics(client, generated):
    parts = client.get("/api/parts", params={"limit": 100}).json()["data"]
    tagged = [p for p in parts if len(p["category"]) >= 2]
    target = tagged[0] if tagged else parts[0]
    tags = target["category"]

    body = client.get("/api/parts", params={"category": json.dumps(tags), "limit": 100}).json()
    assert target["id"] in {p["id"] for p in body["data"]}
    assert all(set(tags) <= set(p["category"]) for p in body["data"])

    single = client.get("/api/parts", params={"category": tags[0], "limit": 100}).json()
    assert all(tags[0] in p["category"] for p in single["data"])
    assert single["total"] >= body["total"]


def test_malformed_array_literal_is_not_an_error(client, generated):
    response = client.get("/api/parts", params={"category": "[Electronics,Mechanical"})
    assert response.status_code == 200
    assert response.json()["total"] == 0


def test_get_part_by_id(client, generated):
    part = generated["data"][0]

    response = client.get(f"/api/parts/{part['id']}")

    assert response.status_code == 200
    assert response.json()["data"]["partNumber"] == part["partNumber"]


def test_invalid_id_is_client_error(client):
    response = client.get("/api/parts/not-a-valid-id")
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid part ID format"}

    response = client.get("/api/parts/main-part/12345")
    assert response.status_code == 400


def test_unknown_id_is_not_found(client):
    response = client.get(f"/api/parts/{new_id()}")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Part not found"}


def test_main_part_lookup_resolves_child_reference(client, generated):
    parts = client.get("/api/parts", params={"limit": 100}).json()["data"]
    child = next(c for p in parts for c in p["childParts"])

    response = client.get(f"/api/parts/main-part/{child['mainPartId']}")

    assert response.status_code == 200
    main = response.json()["data"]
    assert main["id"] == child["mainPartId"]
    assert main["partNumber"] == child["partNumber"]


def test_replace_child_parts_by_code_after_generation(client, generated):
    response = client.post("/api/parts/replace-child-parts", params={"mode": "code"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["updatedCount"] == 0


def test_replace_child_parts_random(client, generated):
    response = client.post("/api/parts/replace-child-parts")

    assert response.status_code == 200
    assert response.json()["updatedCount"] >= 0


def test_replace_child_parts_unknown_mode(client):
    response = client.post("/api/parts/replace-child-parts", params={"mode": "sideways"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_store_failure_is_generic_server_error(client, monkeypatch):
    async def broken_count(predicate=None):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(routes.catalog.store, "count", broken_count)

    response = client.get("/api/parts")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Server error while fetching parts"}


def test_oversized_limit_and_page(client, generated):
    whole = client.get("/api/parts", params={"limit": str(10**20)})
    assert whole.status_code == 200
    assert whole.json()["count"] == 12
    assert whole.json()["pagination"] == {"currentPage": 1, "totalPages": 1, "hasMore": False}

    far = client.get("/api/parts", params={"page": str(10**18), "limit": 50})
    assert far.status_code == 200
    assert far.json()["count"] == 0
    assert far.json()["pagination"] == {"currentPage": 10**18, "totalPages": 1, "hasMore": False}
