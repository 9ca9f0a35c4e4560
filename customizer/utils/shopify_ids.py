from ..errors import ValidationError

VARIANT_GID_PREFIX = "gid://shopify/ProductVariant/"


def to_numeric_id(value) -> str:
    """Return the bare numeric id used by cart permalinks and /cart/add.js."""
    vid = str(value or "").strip()
    if vid.startswith(VARIANT_GID_PREFIX):
        vid = vid[len(VARIANT_GID_PREFIX):]
    if not vid.isdigit():
        raise ValidationError(f"Invalid variant id: {value!r}", fields=["variantId"])
    return vid


def to_variant_gid(value) -> str:
    """Return the gid://shopify/ProductVariant/<id> form expected by GraphQL."""
    return f"{VARIANT_GID_PREFIX}{to_numeric_id(value)}"


def same_variant(a, b) -> bool:
    if a and str(a) == str(b):
        return True
    try:
        return to_numeric_id(a) == to_numeric_id(b)
    except ValidationError:
        return False


def resolve_variant_id(candidate, variants: list[dict]) -> str | None:
    """Map a GID or bare id onto the matching variant's own id, or None."""
    if not candidate:
        return None
    for v in variants or []:
        if same_variant(candidate, v.get("id")):
            return v.get("id")
    return None
