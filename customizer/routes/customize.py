from flask import (
    Blueprint, current_app, flash, jsonify, redirect, render_template, request,
    send_from_directory, session, url_for,
)

from ..customization import (
    COLOR_OPTIONS, FONT_OPTIONS, FONT_SIZE_OPTIONS, POSITIONS,
    Customization, CustomizationState, initial_values_from_query,
)
from ..errors import (
    CustomizerError, ProductNotFoundError, RedirectExhaustedError, RemoteApiError, ValidationError,
)
from ..extensions import customization_store, storefront_client
from ..services.bridge_tracker import EXHAUSTED, BridgeTracker
from ..services.cart_strategies import BridgeRedirectStrategy, select_strategy

bp = Blueprint("customize_pages", __name__)


def _tracker() -> BridgeTracker:
    return BridgeTracker(
        session,
        max_retries=current_app.config["BRIDGE_MAX_RETRIES"],
        shop_domain=current_app.config.get("SHOPIFY_DOMAIN"),
    )


def _wants_json() -> bool:
    accept = request.accept_mimetypes
    return request.is_json or (accept.accept_json and not accept.accept_html)


def _error_response(err: CustomizerError, back_to: str):
    if _wants_json():
        payload = err.to_dict()
        payload["message"] = err.message
        return jsonify(payload), err.status_code
    flash(err.message, "error")
    return redirect(back_to)


def _render_form(handle: str, mode: str, initial: dict | None = None):
    """Load the product and render the customizer form, or an error page."""
    try:
        product = storefront_client().get_product_by_handle(handle)
    except CustomizerError as e:
        current_app.logger.exception("Failed to load product %s", handle)
        return render_template("customize.html", error=e.message, product=None, mode=mode), e.status_code
    if not product:
        err = ProductNotFoundError(handle)
        return render_template("customize.html", error=err.message, product=None, mode=mode), err.status_code

    state = CustomizationState(product, **(initial or {})).load_defaults(product)
    tracker = _tracker()
    return render_template(
        "customize.html",
        error=None,
        mode=mode,
        product=product,
        state=state,
        bridge=tracker.to_dict(),
        font_options=FONT_OPTIONS,
        font_size_options=FONT_SIZE_OPTIONS,
        color_options=COLOR_OPTIONS,
        positions=POSITIONS,
    )


def _resume_bridge(handle: str) -> str | None:
    """Bridge URL to go back to when the shopper bounced off the bridge page; None otherwise."""
    try:
        resume_url = _tracker().resume(request.referrer)
    except RedirectExhaustedError as e:
        flash(e.message, "error")
        return None
    if resume_url:
        current_app.logger.info("Resuming bridge request for %s", handle)
    return resume_url


def _record(customization: Customization, product: dict):
    try:
        customization_store().record(customization, current_app.config.get("SHOPIFY_DOMAIN"), product.get("id"))
    except OSError:
        # history is best effort; the cart handoff already succeeded
        current_app.logger.exception("Failed to record customization for %s", product.get("handle"))


def _submit(handle: str, update: bool):
    back_to = request.path
    tracker = _tracker()
    # a fresh submission never resumes an older bridge request
    tracker.clear()

    state = CustomizationState.from_form(request.form)
    try:
        # reject an incomplete form before any call to Shopify
        missing = state.missing_fields()
        if missing:
            raise ValidationError("Missing required fields", fields=missing)
        strategy = select_strategy(
            current_app.config.get("CART_STRATEGY"),
            current_app.config.get("SHOPIFY_DOMAIN"),
            storefront_client=storefront_client(),
        )
        product = storefront_client().get_product_by_handle(handle)
        if not product:
            raise ProductNotFoundError(handle)
        state.product = product
        customization = state.to_submission()
        result = strategy.update_cart_item(customization) if update else strategy.add_to_cart(customization)
    except ValidationError as e:
        current_app.logger.info("Rejected customization for %s: %s %s", handle, e.message, e.fields)
        return _error_response(e, back_to)
    except ProductNotFoundError as e:
        return _error_response(e, url_for(".list_products"))
    except RemoteApiError as e:
        current_app.logger.warning("Cart update for %s failed: %s", handle, e.message)
        return _error_response(e, back_to)
    except CustomizerError as e:
        current_app.logger.exception("Cart update for %s failed", handle)
        return _error_response(e, back_to)

    if isinstance(strategy, BridgeRedirectStrategy):
        tracker.begin(result.redirect_url)
    _record(customization, product)

    if _wants_json():
        key = "bridgeUrl" if isinstance(strategy, BridgeRedirectStrategy) else "checkoutUrl"
        return jsonify({"success": True, key: result.redirect_url, "message": result.message})
    return redirect(result.redirect_url)


@bp.get("/")
def index():
    return redirect(url_for(".list_products"))


@bp.get("/customize")
def list_products():
    try:
        products = storefront_client().list_products(first=20)
    except CustomizerError as e:
        current_app.logger.exception("Failed to list products")
        return render_template("customize_index.html", products=[], error=e.message), e.status_code
    return render_template("customize_index.html", products=products, error=None)


@bp.get("/customize/bridge")
def bridge_status():
    return jsonify(_tracker().to_dict())


@bp.post("/customize/bridge/retry")
def bridge_retry():
    tracker = _tracker()
    back_to = request.form.get("next") or request.referrer or url_for(".list_products")
    try:
        url = tracker.retry()
    except RedirectExhaustedError as e:
        return _error_response(e, back_to)

    if not url:
        if tracker.state == EXHAUSTED:
            return _error_response(RedirectExhaustedError(), back_to)
        if _wants_json():
            return jsonify({"success": False, "message": "No pending cart request to retry"}), 404
        return redirect(back_to)

    if _wants_json():
        return jsonify({"success": True, "bridgeUrl": url, "retryCount": tracker.retry_count})
    return redirect(url)


@bp.post("/customize/bridge/cancel")
def bridge_cancel():
    _tracker().clear()
    if _wants_json():
        return jsonify({"success": True})
    return redirect(request.form.get("next") or url_for(".list_products"))


@bp.get("/customize/<handle>")
def customize_product(handle):
    resume_url = _resume_bridge(handle)
    if resume_url:
        return redirect(resume_url)
    return _render_form(handle, mode="add")


@bp.post("/customize/<handle>")
def submit_customization(handle):
    return _submit(handle, update=False)


@bp.get("/edit/<handle>")
def edit_product(handle):
    resume_url = _resume_bridge(handle)
    if resume_url:
        return redirect(resume_url)
    initial = initial_values_from_query(request.args)
    if not initial.get("item_key"):
        flash("Missing item key - required for editing existing items", "error")
    return _render_form(handle, mode="edit", initial=initial)


@bp.post("/edit/<handle>")
def submit_edit(handle):
    return _submit(handle, update=True)


@bp.get("/uploads/<path:filename>")
def uploaded_file(filename):
    return send_from_directory(current_app.config["UPLOADS_DIR"], filename)
