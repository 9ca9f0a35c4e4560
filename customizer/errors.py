class CustomizerError(Exception):
    """Base class for errors surfaced to the shopper."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message}


class ValidationError(CustomizerError):
    """A required customization field is missing or malformed."""

    status_code = 400

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = list(fields or [])

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.fields:
            data["fields"] = self.fields
        return data


class RemoteApiError(CustomizerError):
    """Shopify rejected the request (GraphQL errors, userErrors or non-2xx)."""

    status_code = 502
    GENERIC_MESSAGE = "Could not reach the store right now. Please try again."

    def __init__(self, message: str | None = None, retryable: bool = False):
        super().__init__(message or self.GENERIC_MESSAGE)
        self.retryable = retryable

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retryable"] = self.retryable
        return data


class RedirectExhaustedError(CustomizerError):
    status_code = 409

    def __init__(self, message: str = "Unable to add item to cart after multiple attempts. "
                                      "Please try again manually or return to your cart."):
        super().__init__(message)


class ConfigurationError(CustomizerError):
    """The app cannot determine where the shop lives; no network call is attempted."""

    status_code = 500


class ProductNotFoundError(CustomizerError):
    status_code = 404

    def __init__(self, handle: str):
        super().__init__("Product not found")
        self.handle = handle
