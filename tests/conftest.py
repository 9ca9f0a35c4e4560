"""
Shared test fixtures and configuration for Product Customizer tests.
"""
import json
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

from customizer import create_app
from customizer.config import TestConfig
from customizer.services.storefront_client import StorefrontClient, normalize_product
from customizer.storage.customization_store import CustomizationStore


# Test fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"
API_RESPONSES_DIR = FIXTURES_DIR / "api_responses"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: fast tests with no app or network")
    config.addinivalue_line("markers", "integration: tests that drive the Flask app")


SHOP_DOMAIN = "example.myshopify.com"
STOREFRONT_URL = f"https://{SHOP_DOMAIN}/api/2024-01/graphql.json"


@pytest.fixture
def app(tmp_path: Path) -> Flask:
    """Create and configure a test Flask application instance."""

    class _Config(TestConfig):
        DATA_DIR = tmp_path / "data"
        UPLOADS_DIR = tmp_path / "data" / "uploads"

    app = create_app(_Config)
    yield app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """Create a Flask test client."""
    return app.test_client()


@pytest.fixture
def customization_store(tmp_path: Path) -> CustomizationStore:
    """CustomizationStore writing into a temporary directory."""
    return CustomizationStore(tmp_path / "store")


@pytest.fixture
def storefront_client() -> StorefrontClient:
    """StorefrontClient with a token, so it talks to the (mocked) API."""
    return StorefrontClient(
        store_domain=SHOP_DOMAIN,
        storefront_token="test_storefront_token",
        api_version="2024-01",
    )


@pytest.fixture
def mock_storefront_client() -> StorefrontClient:
    """StorefrontClient without a token, serving the built-in sample products."""
    return StorefrontClient(store_domain=SHOP_DOMAIN, storefront_token=None)


@pytest.fixture
def storefront_product_response() -> dict:
    """Raw Storefront API productByHandle response."""
    return load_fixture("storefront_product.json")


@pytest.fixture
def sample_product(storefront_product_response) -> dict:
    """Normalized product: variant 998 sold out, 999 available, two images."""
    return normalize_product(storefront_product_response["data"]["productByHandle"])


@pytest.fixture
def patched_routes(app, mocker, sample_product, customization_store):
    """Give the app a storefront mock returning `sample_product`."""
    client = mocker.Mock(spec=StorefrontClient)
    client.is_mock = False
    client.get_product_by_handle.return_value = sample_product
    client.list_products.return_value = []
    app.extensions["storefront_client"] = client
    app.extensions["customization_store"] = customization_store
    return client


@pytest.fixture
def sample_image_bytes() -> bytes:
    """A tiny PNG."""
    from io import BytesIO
    from PIL import Image

    buf = BytesIO()
    Image.new("RGBA", (20, 20), (255, 0, 0, 255)).save(buf, "PNG")
    return buf.getvalue()


# Helper functions for tests

def load_fixture(filename: str) -> dict:
    """Load a JSON fixture file."""
    fixture_path = API_RESPONSES_DIR / filename
    with open(fixture_path) as f:
        return json.load(f)


@pytest.fixture
def valid_form() -> dict:
    """The posted customizer form for the Large (999) variant."""
    return {
        "text": "Buddy",
        "fontFamily": "Georgia",
        "fontSize": "20",
        "color": "#FF0000",
        "variantId": "gid://shopify/ProductVariant/999",
        "position": "bottom",
    }