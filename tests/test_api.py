"""
API tests for the workouts and analytics endpoints.

Runs the FastAPI app through httpx.ASGITransport on the in-memory
database from conftest; the extraction service is overridden per test.
"""
import uuid
from typing import Any, Dict, Optional

import pytest

from wodlog.api.workouts import extraction_service
from wodlog.core.config import settings
from wodlog.main import app
from wodlog.services.external import ExtractionServiceError, ExtractionServiceInterface


class FakeExtractionService(ExtractionServiceInterface):
    """Returns a canned payload or raises a canned error."""

    def __init__(self, payload: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.payload = payload
        self.error = error
        self.calls = []

    async def extract(self, image_base64: str, mime_type: Optional[str] = None) -> Dict[str, Any]:
        self.calls.append((image_base64, mime_type))
        if self.error:
            raise self.error
        return self.payload


class TestHealth:
    """Service health."""

    @pytest.mark.asyncio
    async def test_health(self, api_client, monkeypatch):
        """Health endpoint reports the service name and extraction status."""
        monkeypatch.setattr(settings, "EXTRACTION_SERVICE_URL", None)

        response = await api_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "service": "wodlog-backend",
            "version": "1.0.0",
            "extraction": "disabled",
        }

    @pytest.mark.asyncio
    async def test_health_extraction_configured(self, api_client, monkeypatch):
        """A configured extraction URL is reported without exposing it."""
        monkeypatch.setattr(settings, "EXTRACTION_SERVICE_URL", "http://extract.test")

        response = await api_client.get("/health")

        assert response.json()["extraction"] == "configured"
        assert "extract.test" not in response.text


class TestPreview:
    """POST /api/workouts/preview"""

    @pytest.mark.asyncio
    async def test_preview_structured(self, api_client, amrap_payload):
        """Preview normalizes without saving and returns warnings."""
        response = await api_client.post("/api/workouts/preview", json={"data": amrap_payload})

        assert response.status_code == 200
        body = response.json()
        assert body["schema"] == "structured"
        assert body["scoreElements"][0]["type"] == "reps"
        assert body["scoreElements"][0]["metadata"]["totalReps"] == 345
        assert body["extractedData"]["reps"] == [345]
        assert [w["field"] for w in body["warnings"]] == ["type"]

        listed = await api_client.get("/api/workouts")
        assert listed.json() == []

    @pytest.mark.asyncio
    async def test_preview_legacy(self, api_client, legacy_payload):
        """Legacy flat payloads keep the legacy schema."""
        response = await api_client.post("/api/workouts/preview", json={"data": legacy_payload})

        body = response.json()
        assert body["schema"] == "legacy"
        assert body["name"] == "Helen"
        assert body["workoutElements"] == []

    @pytest.mark.asyncio
    async def test_missing_data(self, api_client):
        """The payload must be wrapped in "data"."""
        response = await api_client.post("/api/workouts/preview", json={"title": "Fran"})

        assert response.status_code == 422


class TestExtract:
    """POST /api/workouts/extract"""

    @pytest.mark.asyncio
    async def test_extract(self, api_client, fran_payload):
        """The extraction payload is normalized into a preview."""
        fake = FakeExtractionService(payload=fran_payload)
        app.dependency_overrides[extraction_service] = lambda: fake

        response = await api_client.post(
            "/api/workouts/extract",
            json={"image": "aGVsbG8=", "mimeType": "image/png", "userId": "athlete-1"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Fran"
        assert body["userId"] == "athlete-1"
        assert body["rawText"][-1] == "Finish Time: 4:06"
        assert fake.calls == [("aGVsbG8=", "image/png")]

    @pytest.mark.asyncio
    async def test_extract_service_error(self, api_client):
        """Extraction service failures map to 502."""
        fake = FakeExtractionService(error=ExtractionServiceError("HTTP 500", status_code=500))
        app.dependency_overrides[extraction_service] = lambda: fake

        response = await api_client.post("/api/workouts/extract", json={"image": "aGVsbG8="})

        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_extract_not_configured(self, api_client, monkeypatch):
        """Without a configured extraction URL the endpoint is unavailable."""
        monkeypatch.setattr(settings, "EXTRACTION_SERVICE_URL", None)

        response = await api_client.post("/api/workouts/extract", json={"image": "aGVsbG8="})

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_extract_requires_image(self, api_client):
        """An empty image is rejected."""
        fake = FakeExtractionService(payload={})
        app.dependency_overrides[extraction_service] = lambda: fake

        response = await api_client.post("/api/workouts/extract", json={"image": ""})

        assert response.status_code == 422
        assert fake.calls == []


class TestWorkoutCrud:
    """Create / get / list / update / delete."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, api_client, fran_payload):
        """A created workout reads back with the same elements and projection."""
        created = await api_client.post("/api/workouts", json={"data": fran_payload, "userId": "athlete-1"})
        assert created.status_code == 200
        body = created.json()

        fetched = await api_client.get(f"/api/workouts/{body['id']}")

        assert fetched.status_code == 200
        stored = fetched.json()
        for key in ("id", "title", "date", "userId", "workoutElements", "scoreElements", "rawText", "extractedData"):
            assert stored[key] == body[key]
        assert stored["workoutElements"][0]["movement"]["amount"] == "21-15-9"

    @pytest.mark.asyncio
    async def test_list_by_user(self, api_client, fran_payload, amrap_payload, intervals_payload):
        """Listing filters by user and orders newest first."""
        await api_client.post("/api/workouts", json={"data": amrap_payload, "userId": "athlete-1"})
        await api_client.post("/api/workouts", json={"data": fran_payload, "userId": "athlete-1"})
        await api_client.post("/api/workouts", json={"data": intervals_payload, "userId": "athlete-2"})

        response = await api_client.get("/api/workouts", params={"userId": "athlete-1"})

        assert response.status_code == 200
        assert [w["title"] for w in response.json()] == ["Fran", "Cindy-ish"]

    @pytest.mark.asyncio
    async def test_create_invalid_id(self, api_client):
        """Non-UUID ids cannot be stored."""
        response = await api_client.post("/api/workouts", json={"data": {"id": "wod-1", "title": "Fran"}})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_update(self, api_client, fran_payload, amrap_payload):
        """PUT replaces the workout but keeps its id, owner and image."""
        fran_payload["imageUrl"] = "workouts/athlete-1/fran.jpg"
        created = (await api_client.post("/api/workouts", json={"data": fran_payload, "userId": "athlete-1"})).json()

        response = await api_client.put(f"/api/workouts/{created['id']}", json={"data": amrap_payload})

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == created["id"]
        assert body["userId"] == "athlete-1"
        assert body["imageUrl"] == "workouts/athlete-1/fran.jpg"
        assert body["title"] == "Cindy-ish"

        fetched = (await api_client.get(f"/api/workouts/{created['id']}")).json()
        assert len(fetched["workoutElements"]) == 4

    @pytest.mark.asyncio
    async def test_update_keeps_unset_fields(self, api_client, fran_payload, amrap_payload):
        """An edit without date, privacy or confidence keeps the stored values."""
        fran_payload.update({"privacy": "private", "date": "2024-01-01T10:00:00Z", "confidence": 0.8})
        created = (await api_client.post("/api/workouts", json={"data": fran_payload, "userId": "athlete-1"})).json()
        for key in ("privacy", "date", "confidence"):
            amrap_payload.pop(key, None)

        response = await api_client.put(f"/api/workouts/{created['id']}", json={"data": amrap_payload})

        body = response.json()
        assert body["privacy"] == "private"
        assert body["date"] == created["date"]
        assert body["confidence"] == 0.8

        analytics = await api_client.get("/api/analytics/movements", params={"period": "7days", "userId": "athlete-1"})
        assert analytics.json()["workoutCount"] == 0

    @pytest.mark.asyncio
    async def test_update_overrides_set_fields(self, api_client, fran_payload):
        """Fields present in the edit replace the stored values."""
        fran_payload["privacy"] = "private"
        created = (await api_client.post("/api/workouts", json={"data": fran_payload})).json()
        fran_payload.update({"privacy": "public", "date": "2024-06-01T07:00:00Z"})

        body = (await api_client.put(f"/api/workouts/{created['id']}", json={"data": fran_payload})).json()

        assert body["privacy"] == "public"
        assert body["date"].startswith("2024-06-01T07:00:00")

    @pytest.mark.asyncio
    async def test_create_does_not_overwrite(self, api_client, fran_payload, amrap_payload):
        """Creating with a taken id is a 409 and leaves the stored workout alone."""
        created = (await api_client.post("/api/workouts", json={"data": fran_payload, "userId": "alice"})).json()
        amrap_payload["id"] = created["id"]

        response = await api_client.post("/api/workouts", json={"data": amrap_payload, "userId": "mallory"})

        assert response.status_code == 409
        stored = (await api_client.get(f"/api/workouts/{created['id']}")).json()
        assert stored["userId"] == "alice"
        assert stored["title"] == "Fran"

    @pytest.mark.asyncio
    async def test_update_missing(self, api_client, fran_payload):
        """Updating an unknown workout is a 404."""
        response = await api_client.put(f"/api/workouts/{uuid.uuid4()}", json={"data": fran_payload})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, api_client, fran_payload):
        """DELETE returns the image URL to clean up."""
        fran_payload["imageUrl"] = "workouts/athlete-1/fran.jpg"
        created = (await api_client.post("/api/workouts", json={"data": fran_payload})).json()

        response = await api_client.delete(f"/api/workouts/{created['id']}")

        assert response.status_code == 200
        assert response.json() == {"id": created["id"], "imageUrl": "workouts/athlete-1/fran.jpg", "deleted": True}
        assert (await api_client.get(f"/api/workouts/{created['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_get_missing(self, api_client):
        """Unknown ids are a 404, malformed ids a 422."""
        assert (await api_client.get(f"/api/workouts/{uuid.uuid4()}")).status_code == 404
        assert (await api_client.get("/api/workouts/not-a-uuid")).status_code == 422


class TestMigrationEndpoints:
    """Legacy -> structured migration over HTTP."""

    @pytest.mark.asyncio
    async def test_migrate_one(self, api_client, legacy_payload):
        """A legacy workout is converted and stored as structured."""
        created = (await api_client.post("/api/workouts", json={"data": legacy_payload})).json()
        assert created["schema"] == "legacy"

        response = await api_client.post(f"/api/workouts/{created['id']}/migrate")

        assert response.status_code == 200
        assert response.json()["schema"] == "structured"
        assert response.json()["title"] == "Helen"
        fetched = (await api_client.get(f"/api/workouts/{created['id']}")).json()
        assert fetched["schema"] == "structured"
        assert [el["movement"]["exercise"] for el in fetched["workoutElements"]] == [
            "Run", "Kettlebell Swing", "Pull-up",
        ]

    @pytest.mark.asyncio
    async def test_migrate_one_dry_run(self, api_client, legacy_payload):
        """A dry run leaves the stored workout alone."""
        created = (await api_client.post("/api/workouts", json={"data": legacy_payload})).json()

        response = await api_client.post(f"/api/workouts/{created['id']}/migrate", params={"dryRun": "true"})

        assert response.json()["schema"] == "structured"
        fetched = (await api_client.get(f"/api/workouts/{created['id']}")).json()
        assert fetched["schema"] == "legacy"

    @pytest.mark.asyncio
    async def test_bulk_migrate(self, api_client, legacy_payload, fran_payload):
        """Bulk migration reports what it converted."""
        await api_client.post("/api/workouts", json={"data": legacy_payload})
        await api_client.post("/api/workouts", json={"data": fran_payload})

        response = await api_client.post("/api/workouts/migrate", json={"dryRun": True})

        assert response.status_code == 200
        assert response.json() == {
            "total": 2,
            "migrated": 1,
            "skipped": 1,
            "errors": 0,
            "dryRun": True,
            "errorDetails": [],
        }


class TestAnalyticsEndpoint:
    """GET /api/analytics/movements"""

    @pytest.mark.asyncio
    async def test_movement_analytics(self, api_client, fran_payload, amrap_payload):
        """Pull-ups appear in both workouts and rank first."""
        await api_client.post("/api/workouts", json={"data": fran_payload, "userId": "athlete-1"})
        await api_client.post("/api/workouts", json={"data": amrap_payload, "userId": "athlete-1"})

        response = await api_client.get(
            "/api/analytics/movements", params={"period": "alltime", "userId": "athlete-1"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["workoutCount"] == 2
        assert body["topMovements"][0] == {"name": "Pull-up", "frequency": 2, "volume": 125}
        assert body["highestVolume"][0]["percentage"] == 100.0

    @pytest.mark.asyncio
    async def test_other_user_sees_nothing(self, api_client, fran_payload):
        """Analytics are scoped to the requested user."""
        await api_client.post("/api/workouts", json={"data": fran_payload, "userId": "athlete-1"})

        response = await api_client.get("/api/analytics/movements", params={"userId": "athlete-2"})

        assert response.json()["topMovements"] == []

    @pytest.mark.asyncio
    async def test_invalid_period(self, api_client):
        """Only 7days, 30days and alltime are accepted."""
        response = await api_client.get("/api/analytics/movements", params={"period": "year"})

        assert response.status_code == 422
