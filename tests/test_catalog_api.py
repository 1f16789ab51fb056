"""Tests for the property catalog endpoints."""

from db.seed import REFERENCE_PROPERTIES, seed_catalog


class TestListProperties:
    """Tests for GET /api/properties."""

    async def test_lists_reference_catalog(self, seeded_client) -> None:
        """All six reference listings come back with the envelope and count."""
        response = await seeded_client.get("/api/properties")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 6
        assert {p["id"] for p in body["data"]} == {p["id"] for p in REFERENCE_PROPERTIES}

    async def test_filter_by_type_is_case_insensitive(self, seeded_client) -> None:
        """type=commercial matches the two COMMERCIAL listings."""
        response = await seeded_client.get("/api/properties", params={"type": "commercial"})
        body = response.json()
        assert body["count"] == 2
        assert {p["id"] for p in body["data"]} == {"prop-002", "prop-005"}

    async def test_type_all_disables_filter(self, seeded_client) -> None:
        """type=ALL returns everything."""
        response = await seeded_client.get("/api/properties", params={"type": "ALL"})
        assert response.json()["count"] == 6

    async def test_filter_by_status(self, seeded_client) -> None:
        """status=ACTIVE returns the two active listings."""
        response = await seeded_client.get("/api/properties", params={"status": "ACTIVE"})
        assert {p["id"] for p in response.json()["data"]} == {"prop-001", "prop-003"}

    async def test_limit(self, seeded_client) -> None:
        """limit caps the number of results."""
        response = await seeded_client.get("/api/properties", params={"limit": 2})
        body = response.json()
        assert body["count"] == 2
        assert len(body["data"]) == 2

    async def test_non_positive_limit_rejected(self, seeded_client) -> None:
        """limit=0 is a 400 with the error envelope."""
        response = await seeded_client.get("/api/properties", params={"limit": 0})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid request parameters"}

    async def test_unknown_type_returns_empty(self, seeded_client) -> None:
        """A type nobody lists is an empty result, not an error."""
        response = await seeded_client.get("/api/properties", params={"type": "CASTLE"})
        body = response.json()
        assert body["success"] is True
        assert body["data"] == []
        assert body["count"] == 0

    async def test_empty_catalog(self, client) -> None:
        """Without seeding the list is empty."""
        response = await client.get("/api/properties")
        assert response.json() == {"success": True, "data": [], "count": 0}


class TestGetProperty:
    """Tests for GET /api/properties/{id}."""

    async def test_returns_camel_case_fields(self, seeded_client) -> None:
        """A fractional listing serializes with camelCase keys and computed progress."""
        response = await seeded_client.get("/api/properties/prop-001")
        assert response.status_code == 200
        prop = response.json()["data"]
        assert prop["title"] == "FAMILY HOME, ZONE 15"
        assert prop["totalValue"] == 75000
        assert prop["sharePrice"] == 250
        assert prop["sharesSold"] == 225
        assert prop["totalShares"] == 300
        assert prop["fundingProgress"] == 75
        assert prop["documents"]["photos"] == ["ar://photo1", "ar://photo2"]
        assert prop["verified"] is True

    async def test_whole_nft_has_no_shares(self, seeded_client) -> None:
        """WHOLE_NFT listings carry null share fields and zero progress."""
        prop = (await seeded_client.get("/api/properties/prop-004")).json()["data"]
        assert prop["status"] == "WHOLE_NFT"
        assert prop["sharePrice"] is None
        assert prop["totalShares"] is None
        assert prop["fundingProgress"] == 0

    async def test_coming_soon_has_launch_date(self, seeded_client) -> None:
        """prop-006 keeps its launch date and starts at 0% funded."""
        prop = (await seeded_client.get("/api/properties/prop-006")).json()["data"]
        assert prop["launchDate"] == "2025-03-01"
        assert prop["fundingProgress"] == 0
        assert prop["verified"] is False

    async def test_unknown_id_is_404(self, seeded_client) -> None:
        """Missing property → 404 envelope."""
        response = await seeded_client.get("/api/properties/prop-999")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Property not found"}


class TestStats:
    """Tests for GET /api/stats."""

    async def test_aggregates_reference_catalog(self, seeded_client) -> None:
        """Totals, funded count and mean return over the six listings."""
        response = await seeded_client.get("/api/stats")
        assert response.status_code == 200
        stats = response.json()["data"]
        assert stats["totalProperties"] == 6
        assert stats["totalValue"] == 3_650_000
        assert stats["fundedProperties"] == 1
        assert stats["averageReturn"] == 8.2

    async def test_empty_catalog_stats(self, client) -> None:
        """An empty catalog reports zeros rather than nulls."""
        stats = (await client.get("/api/stats")).json()["data"]
        assert stats == {"totalProperties": 0, "totalValue": 0, "fundedProperties": 0, "averageReturn": 0}


class TestSeed:
    """Tests for seed_catalog."""

    async def test_seed_only_once(self, db_session) -> None:
        """Seeding a non-empty catalog inserts nothing."""
        assert await seed_catalog(db_session) == 6
        assert await seed_catalog(db_session) == 0


class TestStatus:
    """Tests for the root status endpoint."""

    async def test_root(self, client) -> None:
        """GET / reports the running backends."""
        body = (await client.get("/")).json()
        assert body["status"] == "operational"
        assert body["blockchain"] == "simulation"
        assert body["storage"] == "simulation"

    async def test_health_check(self, client) -> None:
        """The deep health check reaches the database and both backends."""
        body = (await client.get("/health-check")).json()
        assert body["api"] == "ok"
        assert body["database"] == "ok"
        assert body["blockchain"].startswith("ok")
        assert body["storage"].startswith("ok")
