"""
Unit tests for API Routers with an in-memory document store.
"""

import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from clinisearch.api import dependencies, schemas
from clinisearch.api.main import app
from clinisearch.api.dependencies import get_document_store
from clinisearch.storage.base import StoreError
from clinisearch.storage.memory_store import InMemoryDocumentStore
from clinisearch.storage.mapping import patient_to_model

store = InMemoryDocumentStore()


def override_get_document_store():
    return store


app.dependency_overrides[get_document_store] = override_get_document_store

client = TestClient(app)

HEADERS = {"X-User-ID": "u1"}


@pytest.fixture(autouse=True)
def reset_state():
    store._documents.clear()
    for principal in list(dependencies._contexts):
        dependencies.close_search_context(principal)
    yield


def create(name, phone, headers=HEADERS, **fields):
    response = client.post("/api/v1/patients/", json={"name": name, "phone": phone, **fields}, headers=headers)
    assert response.status_code == 201
    return response.json()


class TestHealth:

    def test_liveness(self):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_readiness_reports_store(self, monkeypatch):
        monkeypatch.setattr(dependencies, "_document_store", store)
        monkeypatch.setattr(store, "health_check", AsyncMock(return_value=True))

        data = client.get("/health/ready").json()

        assert data["status"] == "ready"
        assert data["checks"]["document_store"] == "healthy"


class TestPatientRouter:
    """Tests for /api/v1/patients"""

    def test_requires_principal(self):
        response = client.get("/api/v1/patients/anything")
        assert response.status_code == 401

        response = client.get("/api/v1/patients/anything", headers={"X-User-ID": "  "})
        assert response.status_code == 401

    def test_create_and_get(self):
        created = create("John Smith", "5551234567", allergies="latex")
        assert created["unique_id"] == "smith_john_5551234567_u1"

        response = client.get(f"/api/v1/patients/{created['unique_id']}", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["allergies"] == "latex"

    def test_create_rejects_blank_name(self):
        response = client.post("/api/v1/patients/", json={"name": "", "phone": "555"}, headers=HEADERS)
        assert response.status_code == 422

    def test_get_other_principals_patient_is_404(self):
        created = create("John Smith", "5551234567")

        response = client.get(f"/api/v1/patients/{created['unique_id']}", headers={"X-User-ID": "u2"})
        assert response.status_code == 404

    def test_update(self):
        created = create("John Smith", "5551234567")

        response = client.patch(
            f"/api/v1/patients/{created['unique_id']}",
            json={"present_illness": "fever"},
            headers=HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["present_illness"] == "fever"

    def test_update_keeps_identity_fields(self):
        created = create("John Smith", "5551234567")

        response = client.patch(
            f"/api/v1/patients/{created['unique_id']}",
            json={"phone": "5559990000", "family_id": "doe_jane_1", "owner_id": "u2"},
            headers=HEADERS,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["phone"] == "5559990000"
        assert data["family_id"] == created["family_id"]
        assert data["owner_id"] == "u1"
        assert data["unique_id"] == created["unique_id"]

    def test_update_without_fields_is_400(self):
        created = create("John Smith", "5551234567")

        response = client.patch(f"/api/v1/patients/{created['unique_id']}", json={}, headers=HEADERS)
        assert response.status_code == 400

    def test_update_missing_is_404(self):
        response = client.patch("/api/v1/patients/nope", json={"gender": "F"}, headers=HEADERS)
        assert response.status_code == 404

    def test_delete(self):
        created = create("John Smith", "5551234567")

        response = client.delete(f"/api/v1/patients/{created['unique_id']}", headers=HEADERS)
        assert response.status_code == 204

        response = client.get(f"/api/v1/patients/{created['unique_id']}", headers=HEADERS)
        assert response.status_code == 404

    def test_store_outage_is_503(self, monkeypatch):
        monkeypatch.setattr(store, "get_by_id", AsyncMock(side_effect=StoreError("connection refused")))

        assert client.get("/api/v1/patients/smith_john_555_u1", headers=HEADERS).status_code == 503
        assert client.delete("/api/v1/patients/smith_john_555_u1", headers=HEADERS).status_code == 503


class TestSearchRouter:
    """Tests for /api/v1/search"""

    def test_numeric_search(self):
        create("John Smith", "5551234567")
        create("Jane Doe", "4441234567")

        response = client.post("/api/v1/search/", json={"term": "555"}, headers=HEADERS)
        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "numeric"
        assert [p["name"] for p in data["results"]] == ["John Smith"]
        assert data["has_more"] is False
        assert data["search_failed"] is False

    def test_text_search_is_scoped_to_principal(self):
        create("John Smith", "5551234567")
        create("John Smith", "5551234567", headers={"X-User-ID": "u2"})

        data = client.post("/api/v1/search/", json={"term": "john"}, headers=HEADERS).json()

        assert data["mode"] == "text"
        assert [p["owner_id"] for p in data["results"]] == ["u1"]

    def test_get_returns_current_session(self):
        create("John Smith", "5551234567")
        client.post("/api/v1/search/", json={"term": "smith"}, headers=HEADERS)

        data = client.get("/api/v1/search/", headers=HEADERS).json()

        assert data["term"] == "smith"
        assert len(data["results"]) == 1

    def test_load_more_and_clear(self):
        create("John Smith", "5551234567")
        client.post("/api/v1/search/", json={"term": "555"}, headers=HEADERS)

        data = client.post("/api/v1/search/more", headers=HEADERS).json()
        assert len(data["results"]) == 1
        assert data["is_loading_more"] is False

        data = client.delete("/api/v1/search/", headers=HEADERS).json()
        assert data["mode"] == "idle"
        assert data["results"] == []

    def test_end_context(self):
        client.post("/api/v1/search/", json={"term": "john"}, headers=HEADERS)
        assert "u1" in dependencies._contexts

        response = client.delete("/api/v1/search/context", headers=HEADERS)

        assert response.status_code == 204
        assert "u1" not in dependencies._contexts

    def test_contexts_are_capped_least_recently_used_first(self, monkeypatch):
        monkeypatch.setattr(dependencies.settings, "SEARCH_MAX_CONTEXTS", 2)

        client.post("/api/v1/search/", json={"term": "john"}, headers={"X-User-ID": "u1"})
        client.post("/api/v1/search/", json={"term": "john"}, headers={"X-User-ID": "u2"})
        # u1 becomes the most recently used
        client.get("/api/v1/search/", headers={"X-User-ID": "u1"})
        client.post("/api/v1/search/", json={"term": "john"}, headers={"X-User-ID": "u3"})

        assert list(dependencies._contexts) == ["u1", "u3"]

        data = client.get("/api/v1/search/", headers={"X-User-ID": "u2"}).json()
        assert data["term"] == ""
        assert list(dependencies._contexts) == ["u3", "u2"]


class TestSchemas:

    def test_patient_response_reads_orm_rows(self, make_patient):
        patient = make_patient("John Smith", "5551234567")

        response = schemas.PatientResponse.model_validate(patient_to_model(patient))

        assert response.unique_id == patient.unique_id
        assert response.name_lower == "john smith"
        assert response.created_at == patient.created_at
