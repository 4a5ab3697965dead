"""Pytest configuration and fixtures for dealdesk tests.

The deal management API is replaced by ``FakeDealApi``, served through
``httpx.MockTransport``; the service itself is exercised in-process
through ``httpx.ASGITransport``.
"""

import asyncio
import json
from typing import Any, AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from dealdesk.config import Settings, get_settings
from dealdesk.main import app
from dealdesk.schemas.deal import DealContext
from dealdesk.services.gateway import DealApiGateway
from dealdesk.services.wizard import WizardController

DEAL_API_BASE = "http://deal-api.test/api"


# ── Fake deal API ────────────────────────────────────────────

class FakeDealApi:
    """Scripted stand-in for the deal management API.

    Responses are registered per (method, path); paths are relative to the
    API base, e.g. ``("POST", "/deals/7/investors")``. Every request is
    recorded in ``requests``.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.gate: asyncio.Event | None = None
        self.received = asyncio.Event()

    def add(
        self,
        method: str,
        path: str,
        status: int = 200,
        json: Any = None,
        content: bytes | None = None,
        error: bool = False,
    ) -> None:
        self.routes[(method, path)] = {
            "status": status, "json": json, "content": content, "error": error,
        }

    def hold(self) -> None:
        """Park requests until ``release()`` is called."""
        self.gate = asyncio.Event()

    def release(self) -> None:
        if self.gate is not None:
            self.gate.set()

    def calls(self) -> list[tuple[str, str]]:
        return [(r.method, _relative(r)) for r in self.requests]

    def body(self, index: int) -> Any:
        return json.loads(self.requests[index].content)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.received.set()
        if self.gate is not None:
            await self.gate.wait()

        route = self.routes.get((request.method, _relative(request)))
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        if route["error"]:
            raise httpx.ConnectError("connection refused", request=request)
        if route["content"] is not None:
            return httpx.Response(route["status"], content=route["content"])
        return httpx.Response(route["status"], json=route["json"])


def _relative(request: httpx.Request) -> str:
    return request.url.path.removeprefix("/api")


@pytest.fixture
def fake_api() -> FakeDealApi:
    return FakeDealApi()


@pytest_asyncio.fixture
async def http_client(fake_api: FakeDealApi) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(fake_api.handler),
        base_url=DEAL_API_BASE,
    ) as client:
        yield client


@pytest.fixture
def gateway(http_client: httpx.AsyncClient) -> DealApiGateway:
    return DealApiGateway(http_client)


# ── Wizard fixtures ──────────────────────────────────────────

@pytest.fixture
def deal() -> DealContext:
    return DealContext(deal_id=7, title="Solar Farm II", price_per_security=250)


@pytest.fixture
def controller(deal: DealContext, gateway: DealApiGateway) -> WizardController:
    return WizardController(deal, gateway)


@pytest.fixture
def basic_info() -> dict[str, str]:
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "phone": "555-123-4567",
    }


@pytest.fixture
def details() -> dict[str, str]:
    return {
        "investor_type": "individuals",
        "street_address": "12 Analytical Way",
        "city": "London",
        "postal_code": "N1 9GU",
        "state": "Greater London",
        "country": "UK",
        "date_of_birth": "1990-04-07",
        "taxpayer_id": "123-45-6789",
    }


# ── Service client ───────────────────────────────────────────

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        deal_api_base_url=DEAL_API_BASE,
        default_deal_id="",
        redirect_on_access_link=False,
        profile_link_encoding="json",
    )


@pytest_asyncio.fixture
async def client(
    gateway: DealApiGateway,
    test_settings: Settings,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Service client wired to the fake deal API (lifespan not run)."""
    app.state.gateway = gateway
    app.state.wizard = None
    app.dependency_overrides[get_settings] = lambda: test_settings

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
    app.state.wizard = None


# ── Test Markers ─────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: Service endpoint tests")
