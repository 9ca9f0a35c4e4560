import logging

import httpx

from ..errors import ConfigurationError, RemoteApiError

log = logging.getLogger(__name__)

PRODUCT_FIELDS = """
  id
  title
  handle
  descriptionHtml
  variants(first: 100) {
    edges {
      node {
        id
        title
        price {
          amount
          currencyCode
        }
        availableForSale
      }
    }
  }
  images(first: 10) {
    edges {
      node {
        url
        altText
      }
    }
  }
"""

PRODUCT_BY_HANDLE_QUERY = """
query getProduct($handle: String!) {
  productByHandle(handle: $handle) {%s}
}
""" % PRODUCT_FIELDS

PRODUCTS_QUERY = """
query listProducts($first: Int!) {
  products(first: $first) {
    edges {
      node {
        id
        title
        handle
        description
        featuredImage {
          url
          altText
        }
      }
    }
  }
}
"""

CART_CREATE_MUTATION = """
mutation cartCreate($input: CartInput!) {
  cartCreate(input: $input) {
    cart {
      id
      checkoutUrl
    }
    userErrors {
      field
      message
    }
  }
}
"""

CART_LINES_ADD_MUTATION = """
mutation cartLinesAdd($cartId: ID!, $lines: [CartLineInput!]!) {
  cartLinesAdd(cartId: $cartId, lines: $lines) {
    cart {
      id
      checkoutUrl
    }
    userErrors {
      field
      message
    }
  }
}
"""


def _mock_product(number: str) -> dict:
    return {
        "id": f"gid://shopify/Product/{number}",
        "title": f"Sample Product {number}",
        "handle": f"sample-product-{number}",
        "description": f"<p>This is a detailed description for Sample Product {number}. "
                       f"This appears when the Storefront API token is not configured.</p>",
        "variants": [
            {
                "id": f"gid://shopify/ProductVariant/{number}1",
                "title": "Default",
                "price": "19.99",
                "available_for_sale": True,
            }
        ],
        "images": [
            {"url": "https://via.placeholder.com/800x600", "alt_text": f"Sample product {number} image"}
        ],
    }


MOCK_PRODUCTS = {p["handle"]: p for p in (_mock_product("1"), _mock_product("2"))}


def _edges(conn: dict | None) -> list[dict]:
    return [e.get("node") or {} for e in ((conn or {}).get("edges") or [])]


def normalize_product(node: dict) -> dict:
    """Flatten a Storefront product node into the shape the customizer uses."""
    title = node.get("title") or ""
    variants = []
    for v in _edges(node.get("variants")):
        price = v.get("price")
        variants.append({
            "id": v.get("id"),
            "title": v.get("title"),
            "price": price.get("amount") if isinstance(price, dict) else price,
            "available_for_sale": bool(v.get("availableForSale")),
        })
    images = [
        {"url": img.get("url"), "alt_text": img.get("altText") or title}
        for img in _edges(node.get("images"))
        if img.get("url")
    ]
    return {
        "id": node.get("id"),
        "title": title,
        "handle": node.get("handle"),
        "description": node.get("descriptionHtml") or node.get("description") or "",
        "variants": variants,
        "images": images,
    }


class StorefrontClient:
    """Storefront GraphQL client. Without an access token it serves mock products."""

    def __init__(self, store_domain: str | None, storefront_token: str | None,
                 api_version: str = "2024-01", timeout: float = 30):
        self.domain = store_domain
        self.token = storefront_token
        self.api_version = api_version
        self.timeout = timeout
        self.base = f"https://{self.domain}/api/{self.api_version}"
        self.headers = {
            "X-Shopify-Storefront-Access-Token": self.token or "",
            "Content-Type": "application/json",
        }

    @property
    def is_mock(self) -> bool:
        return not self.token

    def _graphql(self, query: str, variables: dict | None = None) -> dict:
        if not self.domain:
            raise ConfigurationError("SHOPIFY_DOMAIN is not configured")
        url = f"{self.base}/graphql.json"
        payload = {"query": query, "variables": variables or {}}
        try:
            with httpx.Client(timeout=self.timeout) as client:
                r = client.post(url, headers=self.headers, json=payload)
                r.raise_for_status()
                body = r.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            log.warning("Storefront API returned HTTP %s for %s", status, url)
            raise RemoteApiError(f"Storefront API returned HTTP {status}", retryable=status >= 500) from e
        except httpx.HTTPError as e:
            log.warning("Storefront API request failed: %s", e)
            raise RemoteApiError(retryable=True) from e
        except ValueError as e:
            raise RemoteApiError("Storefront API returned an unreadable response") from e

        if body.get("errors"):
            messages = ", ".join(e.get("message", "Unknown GraphQL error") for e in body["errors"])
            raise RemoteApiError(messages)
        return body.get("data") or {}

    @staticmethod
    def _check_user_errors(payload: dict):
        user_errors = payload.get("userErrors") or []
        if user_errors:
            raise RemoteApiError(user_errors[0].get("message") or "Shopify rejected the cart update")

    def get_product_by_handle(self, handle: str) -> dict | None:
        """Return the normalized product for `handle`, or None when the shop has no such product."""
        if self.is_mock:
            log.warning("SHOPIFY_STOREFRONT_API_TOKEN is not set, returning mock data")
            return MOCK_PRODUCTS.get(handle)
        data = self._graphql(PRODUCT_BY_HANDLE_QUERY, {"handle": handle})
        node = data.get("productByHandle")
        return normalize_product(node) if node else None

    def list_products(self, first: int = 20) -> list[dict]:
        if self.is_mock:
            return [
                {
                    "id": p["id"],
                    "title": p["title"],
                    "handle": p["handle"],
                    "description": p["description"],
                    "featured_image": p["images"][0],
                }
                for p in MOCK_PRODUCTS.values()
            ]
        data = self._graphql(PRODUCTS_QUERY, {"first": first})
        products = []
        for node in _edges(data.get("products")):
            img = node.get("featuredImage")
            products.append({
                "id": node.get("id"),
                "title": node.get("title"),
                "handle": node.get("handle"),
                "description": node.get("description") or "",
                "featured_image": (
                    {"url": img.get("url"), "alt_text": img.get("altText") or node.get("title")}
                    if img else None
                ),
            })
        return products

    def cart_create(self, lines: list[dict] | None = None) -> dict:
        """Create a cart (optionally with lines); returns {id, checkoutUrl}."""
        data = self._graphql(CART_CREATE_MUTATION, {"input": {"lines": lines or []}})
        payload = data.get("cartCreate") or {}
        self._check_user_errors(payload)
        cart = payload.get("cart") or {}
        if not cart.get("checkoutUrl"):
            raise RemoteApiError("Shopify did not return a checkout URL")
        return cart

    def cart_lines_add(self, cart_id: str, lines: list[dict]) -> dict:
        data = self._graphql(CART_LINES_ADD_MUTATION, {"cartId": cart_id, "lines": lines})
        payload = data.get("cartLinesAdd") or {}
        self._check_user_errors(payload)
        cart = payload.get("cart") or {}
        if not cart.get("checkoutUrl"):
            raise RemoteApiError("Shopify did not return a checkout URL")
        return cart
