from flask import Blueprint, current_app, jsonify, request

from ..customization import Customization, CustomizationState
from ..errors import CustomizerError, ValidationError
from ..extensions import customization_store, image_storage, storefront_client
from ..services.image_storage import unique_file_name

bp = Blueprint("api", __name__)


@bp.get("/products/<handle>")
def api_get_product(handle):
    """Product plus the form defaults the customizer would start from."""
    try:
        product = storefront_client().get_product_by_handle(handle)
    except CustomizerError as e:
        current_app.logger.exception("Failed to load product %s", handle)
        return jsonify({"error": e.message}), e.status_code
    if not product:
        return jsonify({"error": "Product not found"}), 404
    state = CustomizationState(product).load_defaults(product)
    return jsonify({"product": product, "defaults": state.values})


@bp.get("/customizations")
def list_customizations():
    return jsonify(customization_store().list(request.args.get("shop")))


@bp.get("/customizations/<record_id>")
def get_customization(record_id):
    record = customization_store().get(record_id)
    if not record:
        return jsonify({"error": "Customization not found"}), 404
    return jsonify(record)


@bp.post("/customizations")
def create_customization():
    """
    JSON body:
      { "text", "fontFamily", "fontSize", "color", "position"?, "productId", "variantId", "shop" }
    Stores an audit record; does not touch any cart.
    """
    data = request.get_json(silent=True) or {}
    missing = [k for k in ("text", "fontFamily", "fontSize", "color", "productId", "variantId", "shop") if not data.get(k)]
    if missing:
        return jsonify({"error": "Missing required fields", "fields": missing}), 400
    try:
        customization = Customization.from_form(data)
    except ValidationError as e:
        return jsonify(e.to_dict()), e.status_code

    try:
        record = customization_store().record(customization, data["shop"], data["productId"])
    except OSError:
        current_app.logger.exception("Error saving customization")
        return jsonify({"error": "Failed to save customization"}), 500
    return jsonify({"success": True, "customization": record}), 201


@bp.post("/upload-url")
def create_upload_url():
    body = request.get_json(silent=True) or {}
    file_name = body.get("fileName")
    content_type = body.get("contentType")
    if not file_name or not content_type:
        return jsonify({"error": "Missing fileName or contentType"}), 400
    if not str(content_type).startswith("image/"):
        return jsonify({"error": "contentType must be an image type"}), 400

    try:
        signed = image_storage().signed_upload(unique_file_name(file_name), content_type)
    except ValidationError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Error generating upload URL")
        return jsonify({"error": "Failed to generate upload URL"}), 500
    return jsonify({"success": True, **signed})


@bp.put("/mock-upload")
def mock_upload():
    storage = image_storage()
    if not storage.is_mock:
        return jsonify({"error": "Mock uploads are disabled"}), 404

    file_name = request.args.get("fileName")
    content_type = request.args.get("contentType")
    if not file_name or not content_type:
        return jsonify({"error": "Missing fileName or contentType"}), 400

    try:
        file_url = storage.save(file_name, request.get_data())
    except ValidationError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"success": True, "fileUrl": file_url})
