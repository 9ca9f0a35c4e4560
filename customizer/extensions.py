# customizer/extensions.py
from flask import current_app
from flask_cors import CORS

from .storage.customization_store import CustomizationStore
from .services.image_storage import build_image_storage
from .services.storefront_client import StorefrontClient

# CORS is a real Flask extension (keeps init_app)
cors = CORS()


def init_services(app):
    """Build the per-app services from app.config so they all agree on the shop."""
    # Without a Storefront token the client serves mock products
    app.extensions["storefront_client"] = StorefrontClient(
        store_domain=app.config.get("SHOPIFY_DOMAIN"),
        storefront_token=app.config.get("SHOPIFY_STOREFRONT_API_TOKEN"),
        api_version=app.config.get("SHOPIFY_API_VERSION", "2024-01"),
    )
    # Audit trail of submitted customizations
    app.extensions["customization_store"] = CustomizationStore(app.config["DATA_DIR"])
    app.extensions["image_storage"] = build_image_storage(app.config)


def storefront_client() -> StorefrontClient:
    return current_app.extensions["storefront_client"]


def customization_store() -> CustomizationStore:
    return current_app.extensions["customization_store"]


def image_storage():
    return current_app.extensions["image_storage"]
