from .customization import POSITIONS


def _position_class(value):
    position = str(value or "").lower()
    return f"overlay-{position if position in POSITIONS else 'center'}"


def register_filters(app):
    app.jinja_env.filters["position_class"] = _position_class
