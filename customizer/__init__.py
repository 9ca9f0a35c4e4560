from flask import Flask
from .config import Config
from .extensions import cors, init_services
from .filters import register_filters


def create_app(config_class: type[Config] = Config):
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_object(config_class)

    # Extensions
    cors.init_app(app)
    init_services(app)

    # Filters
    register_filters(app)

    # Blueprints
    from .routes.customize import bp as customize_pages
    from .routes.api import bp as api

    app.register_blueprint(customize_pages)
    app.register_blueprint(api, url_prefix="/api")

    return app
