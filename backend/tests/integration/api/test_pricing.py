"""
Integration tests for the pricing preview API.

WHAT: Tests for the line and totals endpoints the quotation form calls
while the user types.

WHY: The preview must agree to the paisa with what a saved quotation
stores, and reject out-of-range numbers with the offending field.
"""

import pytest
from httpx import AsyncClient


class TestPriceLine:
    """Integration tests for POST /api/pricing/line."""

    @pytest.mark.asyncio
    async def test_price_line(self, client: AsyncClient):
        response = await client.post(
            "/api/pricing/line",
            json={"qty": 2, "unit_price": 100, "discount_percent": 10, "tax_rate": 18},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["gross"] == 200.0
        assert data["discount_amount"] == 20.0
        assert data["taxable_amount"] == 180.0
        assert data["tax_amount"] == 32.4
        assert data["line_total"] == 212.4

    @pytest.mark.asyncio
    async def test_missing_numbers_count_as_zero(self, client: AsyncClient):
        response = await client.post("/api/pricing/line", json={"qty": "abc", "unit_price": 50})

        assert response.status_code == 200
        assert response.json()["qty"] == 0
        assert response.json()["line_total"] == 0

    @pytest.mark.asyncio
    async def test_discount_out_of_range(self, client: AsyncClient):
        response = await client.post(
            "/api/pricing/line",
            json={"qty": 1, "unit_price": 100, "discount_percent": 150},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "ValidationError"
        assert data["details"]["field"] == "discount_percent"


class TestPriceTotals:
    """Integration tests for POST /api/pricing/totals."""

    @pytest.mark.asyncio
    async def test_totals(self, client: AsyncClient, sample_items):
        response = await client.post("/api/pricing/totals", json={"items": sample_items})

        assert response.status_code == 200
        data = response.json()
        assert data["subtotal"] == 250.0
        assert data["discount_total"] == 20.0
        assert data["tax_total"] == 32.4
        assert data["grand_total"] == 262.4
        assert len(data["items"]) == 2

    @pytest.mark.asyncio
    async def test_empty_quotation(self, client: AsyncClient):
        response = await client.post("/api/pricing/totals", json={"items": []})

        assert response.status_code == 200
        assert response.json()["grand_total"] == 0
        assert response.json()["items"] == []

    @pytest.mark.asyncio
    async def test_invalid_line_reports_position(self, client: AsyncClient, sample_items):
        items = sample_items + [{"qty": -1, "unit_price": 10}]

        response = await client.post("/api/pricing/totals", json={"items": items})

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "qty"
        assert response.json()["details"]["line"] == 3

    @pytest.mark.asyncio
    async def test_huge_line_is_a_validation_error(self, client: AsyncClient):
        response = await client.post(
            "/api/pricing/totals", json={"items": [{"qty": 1e15, "unit_price": 1e15}]}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"
        assert response.json()["details"]["field"] == "qty"
        assert response.json()["details"]["line"] == 1
