"""
Unit tests for the cart integration strategies.
"""
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
import respx

from customizer.customization import Customization
from customizer.errors import ConfigurationError, RemoteApiError, ValidationError
from customizer.services.cart_strategies import (
    AjaxCartStrategy,
    BridgeRedirectStrategy,
    StorefrontCartStrategy,
    encode_uri_component,
    normalize_shop_domain,
    select_strategy,
)

STOREFRONT_URL = "https://example.myshopify.com/api/2024-01/graphql.json"


@pytest.fixture
def customization(valid_form) -> Customization:
    return Customization.from_form(valid_form)


@pytest.mark.unit
class TestEncoding:
    """Tests for encodeURIComponent-style escaping."""

    def test_ampersand_and_spaces(self):
        assert encode_uri_component("Mom & Dad") == "Mom%20%26%20Dad"

    def test_reserved_and_unicode(self):
        assert encode_uri_component("#FF0000") == "%23FF0000"
        assert encode_uri_component("a=b/c?") == "a%3Db%2Fc%3F"
        assert encode_uri_component("Café ♥") == "Caf%C3%A9%20%E2%99%A5"

    def test_unreserved_marks_are_kept(self):
        assert encode_uri_component("it's(fun)!*~-_.") == "it's(fun)!*~-_."

    @pytest.mark.parametrize("value", [
        "example.myshopify.com",
        "https://example.myshopify.com/",
        " Example.MyShopify.com ",
    ])
    def test_normalize_shop_domain(self, value):
        assert normalize_shop_domain(value) == "example.myshopify.com"


@pytest.mark.unit
class TestBridgeRedirectStrategy:
    """Tests for the bridge page URLs."""

    def test_end_to_end_add_url(self, customization):
        result = BridgeRedirectStrategy("example.myshopify.com").add_to_cart(customization)

        assert result.redirect_url == (
            "https://example.myshopify.com/pages/add-to-cart-bridge"
            "?variant_id=999&custom_text=Buddy&font_family=Georgia&font_size=20"
            "&text_color=%23FF0000&position=bottom"
        )

    def test_text_with_ampersand_is_escaped(self, valid_form):
        valid_form["text"] = "Mom & Dad"

        url = BridgeRedirectStrategy("example.myshopify.com").add_to_cart(Customization.from_form(valid_form)).redirect_url

        assert "custom_text=Mom%20%26%20Dad&" in url
        assert parse_qs(urlparse(url).query)["custom_text"] == ["Mom & Dad"]

    def test_uploaded_photo_is_appended(self, valid_form):
        valid_form["uploadedImage"] = "https://storage.googleapis.com/bucket/rex 1.png"

        url = BridgeRedirectStrategy("example.myshopify.com").add_to_cart(Customization.from_form(valid_form)).redirect_url

        assert url.endswith("&pet_photo_url=https%3A%2F%2Fstorage.googleapis.com%2Fbucket%2Frex%201.png")

    def test_update_url_carries_item_key(self, valid_form):
        valid_form["itemKey"] = "44012345:9f8e&x=1"
        valid_form["uploadedImage"] = "/uploads/rex.png"

        result = BridgeRedirectStrategy("example.myshopify.com").update_cart_item(Customization.from_form(valid_form))

        parsed = urlparse(result.redirect_url)
        assert parsed.path == "/pages/update-cart-item-bridge"
        query = parse_qs(parsed.query)
        assert query["item_key"] == ["44012345:9f8e&x=1"]
        assert query["pet_photo_url"] == ["/uploads/rex.png"]
        assert list(query)[-2:] == ["item_key", "pet_photo_url"]

    def test_update_requires_item_key(self, customization):
        with pytest.raises(ValidationError) as exc:
            BridgeRedirectStrategy("example.myshopify.com").update_cart_item(customization)
        assert exc.value.fields == ["itemKey"]

    @pytest.mark.parametrize("domain", [None, "", "   "])
    def test_missing_domain(self, domain):
        with pytest.raises(ConfigurationError):
            BridgeRedirectStrategy(domain)


@pytest.mark.unit
class TestStorefrontCartStrategy:
    """Tests for the cartCreate/cartLinesAdd path."""

    @respx.mock
    def test_creates_cart_and_adds_line(self, storefront_client, customization):
        route = respx.post(STOREFRONT_URL).mock(side_effect=[
            httpx.Response(200, json={"data": {"cartCreate": {
                "cart": {"id": "gid://shopify/Cart/c1", "checkoutUrl": "https://example.myshopify.com/cart/c/c1"},
                "userErrors": [],
            }}}),
            httpx.Response(200, json={"data": {"cartLinesAdd": {
                "cart": {"id": "gid://shopify/Cart/c1", "checkoutUrl": "https://example.myshopify.com/cart/c/c1?key=k"},
                "userErrors": [],
            }}}),
        ])

        result = StorefrontCartStrategy("example.myshopify.com", storefront_client).add_to_cart(customization)

        assert result.redirect_url == "https://example.myshopify.com/cart/c/c1?key=k"
        assert route.call_count == 2
        body = json.loads(route.calls.last.request.content)
        line = body["variables"]["lines"][0]
        assert body["variables"]["cartId"] == "gid://shopify/Cart/c1"
        assert line["merchandiseId"] == "gid://shopify/ProductVariant/999"
        assert line["quantity"] == 1
        assert {"key": "Custom Text", "value": "Buddy"} in line["attributes"]

    @respx.mock
    def test_user_errors_surface_first_message(self, storefront_client, customization):
        respx.post(STOREFRONT_URL).mock(side_effect=[
            httpx.Response(200, json={"data": {"cartCreate": {
                "cart": {"id": "gid://shopify/Cart/c1", "checkoutUrl": "https://x/c1"}, "userErrors": []}}}),
            httpx.Response(200, json={"data": {"cartLinesAdd": {"cart": None, "userErrors": [
                {"field": ["lines"], "message": "Variant is sold out"},
                {"field": ["lines"], "message": "Second problem"},
            ]}}}),
        ])

        with pytest.raises(RemoteApiError) as exc:
            StorefrontCartStrategy("example.myshopify.com", storefront_client).add_to_cart(customization)
        assert exc.value.message == "Variant is sold out"
        assert exc.value.retryable is False

    @respx.mock
    def test_transport_failure_is_retryable(self, storefront_client, customization):
        respx.post(STOREFRONT_URL).mock(side_effect=httpx.ConnectError("boom"))

        with pytest.raises(RemoteApiError) as exc:
            StorefrontCartStrategy("example.myshopify.com", storefront_client).add_to_cart(customization)
        assert exc.value.retryable is True
        assert exc.value.message == RemoteApiError.GENERIC_MESSAGE

    def test_mock_mode_returns_permalink(self, mock_storefront_client, customization):
        result = StorefrontCartStrategy("example.myshopify.com", mock_storefront_client).add_to_cart(customization)

        assert result.redirect_url.startswith("https://example.myshopify.com/cart/999:1?")
        assert "attributes[Custom%20Text]=Buddy" in result.redirect_url
        assert "attributes[Text%20Color]=%23FF0000" in result.redirect_url
        assert result.message == "Added to cart (test mode)"

    def test_cannot_update_items(self, mock_storefront_client, customization):
        with pytest.raises(ConfigurationError):
            StorefrontCartStrategy("example.myshopify.com", mock_storefront_client).update_cart_item(customization)


@pytest.mark.unit
class TestAjaxCartStrategy:
    """Tests for POSTing to /cart/add.js."""

    @respx.mock
    def test_posts_numeric_id_and_properties(self, customization):
        route = respx.post("https://example.myshopify.com/cart/add.js").mock(
            return_value=httpx.Response(200, json={"id": 999, "quantity": 1})
        )

        result = AjaxCartStrategy("example.myshopify.com", cookies={"cart": "abc"}).add_to_cart(customization)

        assert result.redirect_url == "https://example.myshopify.com/cart"
        body = json.loads(route.calls.last.request.content)
        assert body == {
            "id": 999,
            "quantity": 1,
            "properties": {
                "Custom Text": "Buddy",
                "Font": "Georgia",
                "Font Size": "20",
                "Text Color": "#FF0000",
                "Position": "bottom",
            },
        }
        assert "cart=abc" in route.calls.last.request.headers["cookie"]

    @respx.mock
    def test_non_2xx_uses_store_description(self, customization):
        respx.post("https://example.myshopify.com/cart/add.js").mock(
            return_value=httpx.Response(422, json={"status": 422, "description": "Sold out"})
        )

        with pytest.raises(RemoteApiError) as exc:
            AjaxCartStrategy("example.myshopify.com").add_to_cart(customization)
        assert exc.value.message == "Sold out"

    @respx.mock
    def test_non_json_error(self, customization):
        respx.post("https://example.myshopify.com/cart/add.js").mock(return_value=httpx.Response(500, text="oops"))

        with pytest.raises(RemoteApiError) as exc:
            AjaxCartStrategy("example.myshopify.com").add_to_cart(customization)
        assert "HTTP 500" in exc.value.message


@pytest.mark.unit
class TestSelectStrategy:
    """Tests for picking the configured strategy."""

    def test_default_is_bridge(self):
        assert isinstance(select_strategy(None, "example.myshopify.com"), BridgeRedirectStrategy)

    def test_named_strategies(self, mock_storefront_client):
        assert isinstance(
            select_strategy("Storefront", "example.myshopify.com", storefront_client=mock_storefront_client),
            StorefrontCartStrategy,
        )
        assert isinstance(select_strategy("ajax", "example.myshopify.com"), AjaxCartStrategy)

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError):
            select_strategy("carrier-pigeon", "example.myshopify.com")

    def test_storefront_needs_client(self):
        with pytest.raises(ConfigurationError):
            select_strategy("storefront", "example.myshopify.com")

    def test_no_domain_fails_before_network(self):
        with respx.mock(assert_all_called=False) as router:
            with pytest.raises(ConfigurationError):
                select_strategy("ajax", None)
            assert len(router.calls) == 0
