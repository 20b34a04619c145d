"""
Integration tests for the maintenance API and service endpoints.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tests.factories import QuotationFactory, money


class TestRecomputeTotals:
    """Integration tests for POST /api/maintenance/recompute-totals."""

    @pytest.mark.asyncio
    async def test_recompute_heals_stale_total(
        self, client: AsyncClient, db_session: AsyncSession, sample_items
    ):
        """
        WHY: A cached total that disagrees with the items is rewritten
        without moving the version.
        """
        stale = await QuotationFactory.create(db_session, items=sample_items, grand_total=money("9.99"))
        await QuotationFactory.create(db_session, items=sample_items)

        response = await client.post("/api/maintenance/recompute-totals")

        assert response.status_code == 200
        assert response.json() == {"checked": 2, "corrected": 1, "skipped": 0}

        db_session.expire_all()
        detail = (await client.get(f"/api/quotations/{stale.id}")).json()
        assert detail["grand_total"] == 262.4
        assert detail["version"] == "0.1"

    @pytest.mark.asyncio
    async def test_recompute_empty_database(self, client: AsyncClient):
        response = await client.post("/api/maintenance/recompute-totals")

        assert response.json() == {"checked": 0, "corrected": 0, "skipped": 0}


class TestServiceEndpoints:
    """Integration tests for health and root endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "running" in data["scheduler"]

    @pytest.mark.asyncio
    async def test_root(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["docs"] == "/api/docs"

    @pytest.mark.asyncio
    async def test_oversize_actor_header_rejected(self, client: AsyncClient):
        response = await client.post("/api/quotations", headers={"X-Actor": "x" * 300}, json={})

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "X-Actor"

    @pytest.mark.asyncio
    async def test_unknown_route_uses_error_envelope(self, client: AsyncClient):
        response = await client.get("/api/nowhere")

        assert response.status_code == 404
        assert response.json() == {
            "error": "HTTPException",
            "message": "Not Found",
            "status_code": 404,
            "details": None,
        }
