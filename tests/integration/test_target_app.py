"""Integration tests for the reference target service."""

import pytest
from httpx import ASGITransport, AsyncClient

from loadbench.target.app import create_app

pytestmark = pytest.mark.integration

NEW_CUSTOMER = {
    "firstName": "Marie",
    "lastName": "Joseph",
    "email": "marie.joseph@example.com",
    "city": "Chicago",
}


class TestTargetApp:
    @pytest.mark.asyncio
    async def test_health_up(self):
        transport = ASGITransport(app=create_app(seed_customers=0))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/actuator/health")
            assert response.status_code == 200
            assert response.json() == {"status": "UP"}
            assert "x-request-id" in response.headers

    @pytest.mark.asyncio
    async def test_health_down(self):
        app = create_app(seed_customers=0)
        app.state.healthy = False
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/actuator/health")
            assert response.status_code == 503
            assert response.json() == {"status": "DOWN"}

    @pytest.mark.asyncio
    async def test_get_seeded_customer(self):
        transport = ASGITransport(app=create_app(seed_customers=10))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/customers/1")
            assert response.status_code == 200
            data = response.json()
            assert data["id"] == 1
            assert {"firstName", "lastName", "email", "city", "createdAt"} <= set(data)

    @pytest.mark.asyncio
    async def test_missing_customer_is_404(self):
        transport = ASGITransport(app=create_app(seed_customers=10))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/customers/11")
            assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_search(self):
        transport = ASGITransport(app=create_app(seed_customers=0))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            await client.post("/customers", json=NEW_CUSTOMER)
            await client.post(
                "/customers",
                json={**NEW_CUSTOMER, "lastName": "Smith", "email": "m.smith@example.com"},
            )

            response = await client.get("/customers", params={"search": "joseph"})
            assert response.status_code == 200
            assert [c["lastName"] for c in response.json()] == ["Joseph"]

            everyone = await client.get("/customers")
            assert len(everyone.json()) == 2

    @pytest.mark.asyncio
    async def test_create_customer(self):
        transport = ASGITransport(app=create_app(seed_customers=5))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/customers", json=NEW_CUSTOMER)
            assert response.status_code == 201
            data = response.json()
            assert data["id"] == 6
            assert data["firstName"] == "Marie"

            fetched = await client.get("/customers/6")
            assert fetched.json()["email"] == NEW_CUSTOMER["email"]

    @pytest.mark.asyncio
    async def test_create_rejects_invalid_payload(self):
        transport = ASGITransport(app=create_app(seed_customers=0))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/customers", json={"firstName": "Marie"})
            assert response.status_code == 422
