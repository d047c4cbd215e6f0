"""Pytest configuration and fixtures."""

from io import BytesIO

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from quotedesk.main import app
from quotedesk.api.dependencies import get_builder_dependency, get_store_dependency
from quotedesk.services.excel_generator import QuotationWorkbookBuilder
from quotedesk.services.photo_fetcher import PhotoFetcher
from quotedesk.services.quotation_template import QuotationTemplateLoader
from quotedesk.store import InMemoryStore


def make_png(width: int = 40, height: int = 20, color: str = "red") -> bytes:
    """Create PNG bytes for tests."""
    output = BytesIO()
    Image.new("RGB", (width, height), color).save(output, format="PNG")
    return output.getvalue()


def photo_transport(routes: dict[str, httpx.Response]) -> httpx.MockTransport:
    """MockTransport that serves ``routes`` by URL path; anything else is a connect error."""

    def handler(request: httpx.Request) -> httpx.Response:
        response = routes.get(request.url.path)
        if response is None:
            raise httpx.ConnectError("connection refused", request=request)
        return response

    return httpx.MockTransport(handler)


@pytest.fixture
def png_bytes() -> bytes:
    """40x20 red PNG."""
    return make_png()


@pytest.fixture
def png_factory():
    """Factory for PNG bytes of a given size."""
    return make_png


@pytest.fixture
def transport_factory():
    """Factory for a MockTransport serving a path -> response mapping."""
    return photo_transport


@pytest.fixture
def mock_store():
    """Create fresh in-memory store."""
    return InMemoryStore(cache_ttl=60)


@pytest.fixture
def template_loader():
    """Loader reading the bundled quotation template."""
    return QuotationTemplateLoader()


@pytest.fixture
def photo_routes(png_bytes: bytes) -> dict[str, httpx.Response]:
    """Default photo URLs served by the mock transport."""
    return {
        "/photos/ok.png": httpx.Response(200, content=png_bytes),
        "/photos/missing.png": httpx.Response(404, content=b"not found"),
        "/photos/not-an-image.png": httpx.Response(200, content=b"<html>oops</html>"),
    }


@pytest.fixture
def photo_fetcher(photo_routes) -> PhotoFetcher:
    """PhotoFetcher backed by the mock transport."""
    return PhotoFetcher(timeout_seconds=2, concurrency=2, transport=photo_transport(photo_routes))


@pytest.fixture
def builder(template_loader, photo_fetcher) -> QuotationWorkbookBuilder:
    """Workbook builder that never touches the network."""
    return QuotationWorkbookBuilder(template_loader=template_loader, photo_fetcher=photo_fetcher)


@pytest.fixture
def client(mock_store, builder):
    """Create FastAPI test client with isolated store and offline builder."""
    app.dependency_overrides[get_store_dependency] = lambda: mock_store
    app.dependency_overrides[get_builder_dependency] = lambda: builder
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_quotation_payload():
    """Sample quotation request body (camelCase, as sent by the UI)."""
    return {
        "referenceNo": "Q-100",
        "date": "10/17/2026",
        "companyName": "Acme Trading",
        "address": "Pasig City",
        "telNo": "+63 2 8123 4567",
        "email": "buyer@acme.example",
        "attention": "Juan Dela Cruz, Pasig City",
        "subject": "For Quotation",
        "items": [
            {
                "itemNo": 1,
                "qty": 2,
                "unitPrice": 50,
                "totalAmount": 100,
                "description": "Color||Red",
                "referencePhoto": "",
            }
        ],
        "vatType": "VAT Inc",
        "totalPrice": 100,
    }


@pytest.fixture
def sample_activity_payload():
    """Sample activity body with a consistent product group."""
    return {
        "activity_reference_number": "ACT-0001",
        "account_reference_number": "ACC-0001",
        "status": "Quote-Done",
        "type_activity": "Quotation Preparation",
        "referenceid": "TSA-001",
        "tsm": "TSM-001",
        "product_category": "Lighting,Poles",
        "product_quantity": "2,1",
        "product_amount": "100,5000",
        "product_description": "Color||Red",
        "product_photo": "https://cdn.example.test/a.png,https://cdn.example.test/b.png",
        "product_sku": "LED-150,POLE-8M",
        "product_title": "LED Floodlight,Lamp Pole",
        "quotation_number": "Q-100",
        "quotation_amount": 5100,
        "remarks": "",
    }
