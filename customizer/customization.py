"""
Customization form state: the field set, the options the form offers, and the
rules that turn what the shopper picked into a submission.

The same options drive the form template and validation so the two never
drift apart.
"""
import re
from dataclasses import dataclass, asdict

from .errors import ValidationError
from .utils.shopify_ids import resolve_variant_id

FONT_OPTIONS = ["Arial", "Helvetica", "Georgia", "Times New Roman", "Courier New", "Verdana"]
FONT_SIZE_OPTIONS = [12, 16, 20, 24, 28, 32, 36]
MIN_FONT_SIZE = 8
MAX_FONT_SIZE = 36
COLOR_OPTIONS = [
    {"label": "Black", "value": "#000000"},
    {"label": "White", "value": "#FFFFFF"},
    {"label": "Red", "value": "#FF0000"},
    {"label": "Blue", "value": "#0000FF"},
    {"label": "Green", "value": "#00FF00"},
    {"label": "Gold", "value": "#FFD700"},
    {"label": "Silver", "value": "#C0C0C0"},
]
POSITIONS = ("top", "center", "bottom", "left", "right")

DEFAULTS = {
    "text": "",
    "font_family": "Arial",
    "font_size": 16,
    "text_color": "#000000",
    "position": "center",
    "variant_id": "",
    "preview_image": "",
    "item_key": "",
}

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")

# snake_case wins over camelCase when a link carries both
QUERY_ALIASES = {
    "text": ("custom_text", "customText"),
    "font_family": ("font_family", "fontFamily"),
    "font_size": ("font_size", "fontSize"),
    "text_color": ("text_color", "textColor"),
    "position": ("position",),
    "preview_image": ("pet_photo_url", "petPhotoUrl"),
    "variant_id": ("variant_id", "variantId"),
    "item_key": ("item_key", "itemKey"),
}

# posted form name -> state field
FORM_FIELDS = {
    "text": "text",
    "fontFamily": "font_family",
    "fontSize": "font_size",
    "color": "text_color",
    "position": "position",
    "variantId": "variant_id",
    "uploadedImage": "preview_image",
    "itemKey": "item_key",
}


def parse_font_size(value) -> int:
    try:
        size = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"Font size must be a whole number, got {value!r}", fields=["fontSize"])
    if not MIN_FONT_SIZE <= size <= MAX_FONT_SIZE:
        raise ValidationError(
            f"Font size must be between {MIN_FONT_SIZE} and {MAX_FONT_SIZE}", fields=["fontSize"]
        )
    return size


def parse_color(value) -> str:
    color = str(value or "").strip()
    if not _HEX_COLOR.match(color):
        raise ValidationError(f"Text color must be a hex color like #FF0000, got {value!r}", fields=["color"])
    return color


def parse_position(value) -> str:
    position = str(value or "").strip().lower() or DEFAULTS["position"]
    if position not in POSITIONS:
        raise ValidationError(f"Position must be one of {', '.join(POSITIONS)}", fields=["position"])
    return position


@dataclass
class Customization:
    text: str
    font_family: str
    font_size: int
    text_color: str
    position: str
    variant_id: str
    uploaded_image_url: str | None = None
    item_key: str | None = None

    @classmethod
    def from_form(cls, form) -> "Customization":
        """Build from the posted form (camelCase field names) with no product to check against."""
        return CustomizationState.from_form(form).to_submission()

    def attributes(self) -> list[dict]:
        """Cart line attributes as Shopify's cart APIs expect them."""
        attrs = [
            {"key": "Custom Text", "value": self.text},
            {"key": "Font", "value": self.font_family},
            {"key": "Font Size", "value": str(self.font_size)},
            {"key": "Text Color", "value": self.text_color},
            {"key": "Position", "value": self.position},
        ]
        if self.uploaded_image_url:
            attrs.append({"key": "Uploaded Image", "value": self.uploaded_image_url})
        return attrs

    def properties(self) -> dict:
        return {a["key"]: a["value"] for a in self.attributes()}

    def to_dict(self) -> dict:
        return asdict(self)


def initial_values_from_query(args) -> dict:
    """Read prefilled values from a link, accepting snake_case or camelCase names."""
    values = {}
    for field_name, names in QUERY_ALIASES.items():
        for name in names:
            raw = args.get(name)
            if raw:
                values[field_name] = raw
                break
    return values


class CustomizationState:
    """Holds the in-progress form values for one product."""

    FIELDS = tuple(DEFAULTS)

    def __init__(self, product: dict | None = None, **overrides):
        self.product = product or {}
        self.values = dict(DEFAULTS)
        for name, value in overrides.items():
            if value not in (None, ""):
                self.set_field(name, value)

    @classmethod
    def from_form(cls, form, product: dict | None = None) -> "CustomizationState":
        values = {field: str(form.get(key) or "").strip() for key, field in FORM_FIELDS.items()}
        return cls(product, **values)

    def set_field(self, name: str, value):
        if name not in self.FIELDS:
            raise ValidationError(f"Unknown customization field: {name}", fields=[name])
        self.values[name] = value

    def get(self, name: str):
        return self.values.get(name)

    @property
    def image_urls(self) -> list[str]:
        return [img.get("url") for img in (self.product.get("images") or []) if img.get("url")]

    def load_defaults(self, product: dict):
        """Pick the variant and preview image for `product`, keeping explicit overrides."""
        self.product = product or {}
        variants = self.product.get("variants") or []

        resolved = resolve_variant_id(self.values.get("variant_id"), variants)
        if resolved:
            self.values["variant_id"] = resolved
        elif variants:
            available = next((v for v in variants if v.get("available_for_sale")), None)
            self.values["variant_id"] = (available or variants[0]).get("id")
        else:
            self.values["variant_id"] = ""

        if not self.values.get("preview_image") and self.image_urls:
            self.values["preview_image"] = self.image_urls[0]
        return self

    def canonical_variant_id(self) -> str:
        variant_id = str(self.values.get("variant_id") or "")
        return resolve_variant_id(variant_id, self.product.get("variants") or []) or variant_id

    def missing_fields(self) -> list[str]:
        missing = []
        if not str(self.values.get("text") or "").strip():
            missing.append("text")
        variant_id = self.values.get("variant_id")
        variants = self.product.get("variants") or []
        if not variant_id or (variants and not resolve_variant_id(variant_id, variants)):
            missing.append("variantId")
        return missing

    @property
    def can_submit(self) -> bool:
        return not self.missing_fields()

    def uploaded_image(self) -> str | None:
        preview = self.values.get("preview_image")
        if preview and preview not in self.image_urls:
            return preview
        return None

    def to_submission(self) -> Customization:
        missing = self.missing_fields()
        if missing:
            raise ValidationError("Missing required fields", fields=missing)
        return Customization(
            text=str(self.values["text"]).strip(),
            font_family=str(self.values.get("font_family") or DEFAULTS["font_family"]),
            font_size=parse_font_size(self.values.get("font_size") or DEFAULTS["font_size"]),
            text_color=parse_color(self.values.get("text_color") or DEFAULTS["text_color"]),
            position=parse_position(self.values.get("position")),
            variant_id=self.canonical_variant_id(),
            uploaded_image_url=self.uploaded_image(),
            item_key=self.values.get("item_key") or None,
        )

    def form_data(self) -> dict:
        """The posted form as the browser would submit it."""
        data = {
            "text": self.values.get("text") or "",
            "fontFamily": self.values.get("font_family"),
            "fontSize": str(self.values.get("font_size")),
            "color": self.values.get("text_color"),
            "variantId": self.values.get("variant_id") or "",
            "position": self.values.get("position"),
        }
        uploaded = self.uploaded_image()
        if uploaded:
            data["uploadedImage"] = uploaded
        if self.values.get("item_key"):
            data["itemKey"] = self.values["item_key"]
        return data
