"""Health endpoint smoke test."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_healthcheck_returns_ok(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]

    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["database"] == "ok"
    assert payload["service"] == "Facility Booking Engine API"
    assert payload["currency"] == "EUR"
    assert payload["sweeps"] == "disabled"
    assert "x-request-id" in response.headers
