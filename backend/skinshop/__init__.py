# backend/skinshop/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate
from .services import notification_service
from .services.payment_gateway import GatewayConfig, VNPayGateway



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # One gateway per process, built from config at startup
    app.extensions["payment_gateway"] = VNPayGateway(GatewayConfig.from_app_config(app.config))
    notification_service.init_app(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp, catalog_bp
    from .routes.promotions import promotions_bp
    from .routes.orders import orders_bp
    from .routes.feedback import feedback_bp
    from .routes.routines import routines_bp
    from .routes.accounts import customers_bp, managers_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(promotions_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(feedback_bp)
    app.register_blueprint(routines_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(managers_bp)

    allowed_origins = set(app.config.get("CORS_ORIGINS") or [])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
