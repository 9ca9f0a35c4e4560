"""
Ways of getting a customized line item into the shopper's cart.

The shopper's cart lives in a cookie on the storefront domain, which this app
cannot touch. The bridge strategy hands the customization to a page on the
storefront itself (``/pages/add-to-cart-bridge``) that calls ``/cart/add.js``
with the shopper's own session, so it is the default. The Storefront API and
AJAX strategies are kept for shops without a bridge page.
"""
import logging
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from ..customization import Customization
from ..errors import ConfigurationError, RemoteApiError, ValidationError
from ..utils.shopify_ids import to_numeric_id, to_variant_gid
from .storefront_client import StorefrontClient

log = logging.getLogger(__name__)

ADD_BRIDGE_PATH = "/pages/add-to-cart-bridge"
UPDATE_BRIDGE_PATH = "/pages/update-cart-item-bridge"


def encode_uri_component(value) -> str:
    """Percent-encode like JavaScript's encodeURIComponent."""
    return quote(str(value), safe="-_.!~*'()")


def normalize_shop_domain(value: str | None) -> str:
    domain = str(value or "").strip()
    for scheme in ("https://", "http://"):
        if domain.lower().startswith(scheme):
            domain = domain[len(scheme):]
    return domain.strip("/").lower()


@dataclass
class CartResult:
    redirect_url: str
    message: str


class CartIntegrationStrategy:
    name = ""

    def __init__(self, shop_domain: str | None):
        self.shop_domain = normalize_shop_domain(shop_domain)
        if not self.shop_domain:
            raise ConfigurationError("Could not determine Shopify domain")

    @property
    def shop_url(self) -> str:
        return f"https://{self.shop_domain}"

    def add_to_cart(self, customization: Customization) -> CartResult:
        raise NotImplementedError

    def update_cart_item(self, customization: Customization) -> CartResult:
        raise ConfigurationError(f"The {self.name} cart strategy cannot edit items already in the cart")


class BridgeRedirectStrategy(CartIntegrationStrategy):
    name = "bridge"

    def bridge_params(self, customization: Customization) -> list[tuple[str, str]]:
        params = [
            ("variant_id", to_numeric_id(customization.variant_id)),
            ("custom_text", customization.text),
            ("font_family", customization.font_family),
            ("font_size", str(customization.font_size)),
            ("text_color", customization.text_color),
            ("position", customization.position),
        ]
        if customization.uploaded_image_url:
            params.append(("pet_photo_url", customization.uploaded_image_url))
        return params

    def build_url(self, path: str, params: list[tuple[str, str]]) -> str:
        query = "&".join(f"{key}={encode_uri_component(value)}" for key, value in params)
        return f"{self.shop_url}{path}?{query}"

    def add_to_cart(self, customization: Customization) -> CartResult:
        url = self.build_url(ADD_BRIDGE_PATH, self.bridge_params(customization))
        log.info("Generated add-to-cart bridge URL: %s", url)
        return CartResult(url, "Redirecting to add to cart bridge")

    def update_cart_item(self, customization: Customization) -> CartResult:
        if not customization.item_key:
            raise ValidationError("Missing item key - required for editing existing items", fields=["itemKey"])
        params = self.bridge_params(customization)
        # item_key goes right after the styling fields, before the optional photo
        params.insert(6, ("item_key", customization.item_key))
        url = self.build_url(UPDATE_BRIDGE_PATH, params)
        log.info("Generated update bridge URL: %s", url)
        return CartResult(url, "Redirecting to update item bridge")


class StorefrontCartStrategy(CartIntegrationStrategy):
    """cartCreate + cartLinesAdd through the Storefront API, redirecting to checkout."""

    name = "storefront"

    def __init__(self, shop_domain: str | None, client: StorefrontClient):
        super().__init__(shop_domain)
        self.client = client

    def permalink_url(self, customization: Customization) -> str:
        attrs = "&".join(
            f"attributes[{encode_uri_component(a['key'])}]={encode_uri_component(a['value'])}"
            for a in customization.attributes()
        )
        return f"{self.shop_url}/cart/{to_numeric_id(customization.variant_id)}:1?{attrs}"

    def add_to_cart(self, customization: Customization) -> CartResult:
        if self.client.is_mock:
            log.warning("SHOPIFY_STOREFRONT_API_TOKEN is not set, returning cart permalink")
            return CartResult(self.permalink_url(customization), "Added to cart (test mode)")

        cart = self.client.cart_create()
        line = {
            "merchandiseId": to_variant_gid(customization.variant_id),
            "quantity": 1,
            "attributes": customization.attributes(),
        }
        cart = self.client.cart_lines_add(cart["id"], [line])
        return CartResult(cart["checkoutUrl"], "Added to cart")


class AjaxCartStrategy(CartIntegrationStrategy):
    """POST to the storefront's /cart/add.js; only useful when the shopper's cookies are at hand."""

    name = "ajax"

    def __init__(self, shop_domain: str | None, cookies: dict | None = None, timeout: float = 30):
        super().__init__(shop_domain)
        self.cookies = cookies or {}
        self.timeout = timeout

    def payload(self, customization: Customization) -> dict:
        return {
            "id": int(to_numeric_id(customization.variant_id)),
            "quantity": 1,
            "properties": customization.properties(),
        }

    def add_to_cart(self, customization: Customization) -> CartResult:
        url = f"{self.shop_url}/cart/add.js"
        try:
            with httpx.Client(timeout=self.timeout, cookies=self.cookies) as client:
                r = client.post(url, json=self.payload(customization), headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            log.warning("cart/add.js request failed: %s", e)
            raise RemoteApiError(retryable=True) from e

        if r.status_code >= 300:
            try:
                description = (r.json() or {}).get("description")
            except ValueError:
                description = None
            raise RemoteApiError(description or f"Store returned HTTP {r.status_code} while adding to cart")
        return CartResult(f"{self.shop_url}/cart", "Added to cart")


STRATEGIES = {
    BridgeRedirectStrategy.name: BridgeRedirectStrategy,
    StorefrontCartStrategy.name: StorefrontCartStrategy,
    AjaxCartStrategy.name: AjaxCartStrategy,
}


def select_strategy(name: str | None, shop_domain: str | None,
                    storefront_client: StorefrontClient | None = None,
                    cookies: dict | None = None) -> CartIntegrationStrategy:
    key = (name or BridgeRedirectStrategy.name).strip().lower()
    if key not in STRATEGIES:
        raise ConfigurationError(f"Unknown cart strategy {name!r}; expected one of {', '.join(STRATEGIES)}")
    if key == StorefrontCartStrategy.name:
        if storefront_client is None:
            raise ConfigurationError("The storefront cart strategy needs a Storefront API client")
        return StorefrontCartStrategy(shop_domain, storefront_client)
    if key == AjaxCartStrategy.name:
        return AjaxCartStrategy(shop_domain, cookies=cookies)
    return BridgeRedirectStrategy(shop_domain)
