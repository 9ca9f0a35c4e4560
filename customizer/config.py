import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    BASE_DIR = Path(__file__).resolve().parent.parent
    DATA_DIR = BASE_DIR / "data"
    UPLOADS_DIR = DATA_DIR / "uploads"
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-customizer-secret")

    SHOPIFY_DOMAIN = os.getenv("SHOPIFY_DOMAIN")
    SHOPIFY_STOREFRONT_API_TOKEN = os.getenv("SHOPIFY_STOREFRONT_API_TOKEN")
    SHOPIFY_API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2024-01")

    # bridge | storefront | ajax
    CART_STRATEGY = os.getenv("CART_STRATEGY", "bridge")
    BRIDGE_MAX_RETRIES = int(os.getenv("BRIDGE_MAX_RETRIES", "3"))

    GCS_BUCKET_NAME = os.getenv("GCS_BUCKET_NAME")
    GCS_HMAC_ACCESS_KEY = os.getenv("GCS_HMAC_ACCESS_KEY")
    GCS_HMAC_SECRET = os.getenv("GCS_HMAC_SECRET")
    USE_MOCK_STORAGE = _flag("USE_MOCK_STORAGE")

    MAX_CONTENT_LENGTH = 10 * 1024 * 1024


class DevConfig(Config):
    DEBUG = True
    USE_MOCK_STORAGE = True


class ProdConfig(Config):
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SHOPIFY_DOMAIN = "example.myshopify.com"
    SHOPIFY_STOREFRONT_API_TOKEN = None
    CART_STRATEGY = "bridge"
    BRIDGE_MAX_RETRIES = 3
    USE_MOCK_STORAGE = True
