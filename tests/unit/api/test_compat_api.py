"""
API Tests for contributors, gender analytics, /api/ipassets and the calendar
"""
import pytest
from httpx import AsyncClient

from ipregistry.db.schema import resolve_column_map
from ipregistry.main import app
from ipregistry.services.registry import build_registry
from tests.mocks.fake_store import FakeDatabase, FakeEngine


class TestContributorsApi:

    @pytest.mark.asyncio
    async def test_list_with_all_sentinel(self, client: AsyncClient, seeded_db):
        response = await client.get("/api/contributors", params={"role": "All", "record_id": "KTTM-2"})

        body = response.json()
        assert body["count"] == 2
        assert [r["contributor_id"] for r in body["rows"]] == [3, 4]

    @pytest.mark.asyncio
    async def test_add(self, client: AsyncClient, seeded_db):
        response = await client.post("/api/contributors", json={
            "record_id": "KTTM-4", "contributor_name": "Ana Cruz", "role": "Female",
        })

        assert response.status_code == 201
        assert response.json()["row"]["contributor_name"] == "Ana Cruz"

    @pytest.mark.asyncio
    async def test_add_to_missing_record(self, client: AsyncClient, seeded_db):
        response = await client.post("/api/contributors", json={"record_id": "KTTM-404", "contributor_name": "Ana"})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_gender_stats(self, client: AsyncClient, seeded_db):
        response = await client.get("/api/gender/stats")

        assert response.json()["rows"][0] == {"gender": "Female", "contributor_count": 3, "unique_ip_records": 2}

    @pytest.mark.asyncio
    async def test_gender_by_category(self, client: AsyncClient, seeded_db):
        response = await client.get("/api/gender/by-category")

        assert response.status_code == 200
        assert len(response.json()["rows"]) == 4


class TestDegradedApi:

    @pytest.fixture
    def degraded_client(self, client: AsyncClient):
        db = FakeDatabase(contributor_columns=set())
        app.state.registry = build_registry(FakeEngine(db), resolve_column_map(db.record_columns, set()))
        return client

    @pytest.mark.asyncio
    async def test_contributors_unavailable(self, degraded_client: AsyncClient):
        response = await degraded_client.get("/api/contributors")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "CONTRIBUTORS_UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_gender_unavailable(self, degraded_client: AsyncClient):
        response = await degraded_client.get("/api/gender/stats")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_tables_lists_records_only(self, degraded_client: AsyncClient):
        response = await degraded_client.get("/api/tables")

        assert response.json()["tables"] == ["ip_records"]


class TestIpAssetsApi:

    @pytest.mark.asyncio
    async def test_listing_uses_dashboard_names(self, client: AsyncClient, seeded_db):
        response = await client.get("/api/ipassets", params={"type": "Utility Model"})

        rows = response.json()["rows"]
        assert len(rows) == 1
        row = rows[0]
        assert row["id"] == "KTTM-2"
        assert row["title"] == "Rice husk board"
        assert row["ip_type"] == "Utility Model"
        assert row["location"] == "North"
        assert row["sex"] == "Female"
        assert row["next_due_date"] is None

    @pytest.mark.asyncio
    async def test_create_accepts_legacy_location(self, client: AsyncClient, fake_db):
        response = await client.post("/api/ipassets", json={
            "title": "Seed dryer", "ip_type": "Patent", "location": "South", "shil_id_number": "PH-77",
        })

        body = response.json()
        assert response.status_code == 201
        assert body["row"]["id"] == "KTTM-1"
        assert body["row"]["location"] == "South"
        assert body["row"]["remarks"] == "Unregistered"
        assert fake_db.records["KTTM-1"]["ipophl_id"] == "PH-77"

    @pytest.mark.asyncio
    async def test_create_requires_type(self, client: AsyncClient):
        response = await client.post("/api/ipassets", json={"title": "Seed dryer"})

        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"field": "ip_type"}

    @pytest.mark.asyncio
    async def test_update_maps_fields(self, client: AsyncClient, seeded_db):
        response = await client.put("/api/ipassets/KTTM-1", json={"remarks": "Close to Expiration", "campus": "East"})

        row = response.json()["row"]
        assert row["remarks"] == "Close to Expiration"
        assert row["location"] == "East"
        assert seeded_db.records["KTTM-1"]["ip_title"] == "Solar dryer"

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, seeded_db):
        response = await client.delete("/api/ipassets/KTTM-3")

        assert response.json() == {"ok": True, "message": "IP asset deleted successfully"}
        assert "KTTM-3" not in seeded_db.records

    @pytest.mark.asyncio
    async def test_stats_type_alias(self, client: AsyncClient, seeded_db):
        response = await client.get("/api/ipassets/stats", params={"type": "Patent"})

        assert response.json()["stats"]["total"] == 1


class TestCalendarApi:

    @pytest.mark.asyncio
    async def test_events(self, client: AsyncClient, seeded_db):
        response = await client.get("/api/calendar/events")

        events = response.json()["events"]
        assert {e["record_id"] for e in events} == {"KTTM-1", "KTTM-2"}
        assert events[0] == {
            "kind": "due", "date": "2021-03-01", "record_id": "KTTM-1", "title": "Solar dryer",
            "category": "Patent", "status": "Registered", "campus": "Main",
        }

    @pytest.mark.asyncio
    async def test_upcoming_events(self, client: AsyncClient, seeded_db):
        response = await client.get("/api/calendar/events", params={"upcoming": "true", "today": "2030-01-01"})

        events = response.json()["events"]
        assert [(e["record_id"], e["kind"], e["date"]) for e in events] == [("KTTM-1", "expiry", "2040-02-29")]
