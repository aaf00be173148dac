# --- lumina/__init__.py ---
import logging
from flask import Flask, jsonify

from .config import Config
from .extensions import db, cors, migrate, cache


def create_app(config_object=Config):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    config_object.init_app(app)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Init extensions
    db.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})
    migrate.init_app(app, db)
    cache.clear()

    from .services.courier import init_courier
    init_courier(app)

    from .errors import register_error_handlers
    register_error_handlers(app)

    # Register blueprints
    from .category import bp as category_bp; app.register_blueprint(category_bp)
    from .product import bp as product_bp; app.register_blueprint(product_bp)
    from .coupon import bp as coupon_bp; app.register_blueprint(coupon_bp)
    from .cart import bp as cart_bp; app.register_blueprint(cart_bp)
    from .tracking import bp as tracking_bp; app.register_blueprint(tracking_bp)
    from .order import bp as order_bp; app.register_blueprint(order_bp)
    from .settings import bp as settings_bp; app.register_blueprint(settings_bp)
    from .webhook import bp as webhook_bp; app.register_blueprint(webhook_bp)
    from .analytics import bp as analytics_bp; app.register_blueprint(analytics_bp)

    from .cli import register_cli
    register_cli(app)

    @app.get("/")
    def health():
        return jsonify(ok=True, msg="API running")

    with app.app_context():
        from . import model  # noqa: F401  (register tables)
        db.create_all()
        app.logger.debug("routes: %s", sorted(r.rule for r in app.url_map.iter_rules()))

    return app
